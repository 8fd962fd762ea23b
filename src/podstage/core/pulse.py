"""Read-only pod phase queries.

Every answer is re-derived from the filesystem on each call and is only
true at the instant it was sampled. Lock checks are shared and
non-blocking, and are released before the query returns.

Locations are scanned in forward lifecycle order. Pods only ever move
forward, so a pod renamed while a scan is in progress is found at its new
location later in the same scan.
"""

import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from uuid import UUID

from ..errors import CorruptStateError
from ..models import SCAN_ORDER, PodInfo, PodLocation, PodStatus, derive_phase
from .lock_manager import is_locked
from .pod_dirs import get_pod_dir, iter_pod_entries

logger = logging.getLogger(__name__)


def _observe(pods_dir: Path, location: PodLocation, pod_uuid: UUID) -> PodInfo | None:
    """Sample a pod at one location, or None if it is not (or no longer) there."""
    path = get_pod_dir(pods_dir, location, pod_uuid)
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return None
    if not stat.S_ISDIR(st.st_mode):
        raise CorruptStateError(path, "not a directory")

    locked = None
    if location.lock_disambiguates:
        try:
            locked = is_locked(path)
        except FileNotFoundError:
            return None

    return PodInfo(
        uuid=str(pod_uuid),
        location=location,
        phase=derive_phase(location, locked),
        path=path,
        changed_at=datetime.fromtimestamp(st.st_ctime),
    )


def _check_unique(pods_dir: Path, pod_uuid: UUID, info: PodInfo) -> None:
    """Raise if the pod also sits at a later location.

    A pod renamed forward during the check is not a duplicate, so the
    original location is re-checked after a later hit.
    """
    later = SCAN_ORDER[SCAN_ORDER.index(info.location) + 1 :]
    for location in later:
        other = get_pod_dir(pods_dir, location, pod_uuid)
        if os.path.lexists(other) and os.path.lexists(info.path):
            raise CorruptStateError(other, f"pod also present in {info.location.value}/")


def inspect_pod(pods_dir: Path, pod_uuid: UUID) -> PodInfo | None:
    """Find a pod and derive its phase.

    Raises:
        CorruptStateError: A non-directory sits where the pod should be, or
            the pod is present in more than one location
    """
    for location in SCAN_ORDER:
        info = _observe(pods_dir, location, pod_uuid)
        if info is not None:
            _check_unique(pods_dir, pod_uuid, info)
            return info
    return None


def query_phase(pods_dir: Path, pod_uuid: UUID) -> PodStatus:
    """Sample a pod's status.

    The result may be stale by the time the caller acts on it.
    """
    info = inspect_pod(pods_dir, pod_uuid)
    if info is None:
        return PodStatus.NOT_FOUND
    return info.status


def list_pods(pods_dir: Path) -> list[PodInfo]:
    """Sample every pod in the directory set.

    A pod that moves forward during the listing is reported once, at the
    first location it was seen. Corrupt entries and duplicates are logged
    and skipped.
    """
    seen: dict[UUID, Path] = {}
    pods = []
    for location in SCAN_ORDER:
        for entry in iter_pod_entries(pods_dir, location):
            if entry.corrupt:
                logger.warning(f"Skipping corrupt entry {entry.path}: {entry.corrupt}")
                continue
            if entry.uuid in seen:
                if os.path.lexists(seen[entry.uuid]):
                    logger.warning(f"Pod {entry.uuid} also present at {entry.path}")
                continue
            try:
                info = _observe(pods_dir, location, entry.uuid)
            except CorruptStateError as e:
                logger.warning(f"Skipping corrupt entry {e.path}: {e.reason}")
                continue
            if info is None:
                continue
            seen[entry.uuid] = info.path
            pods.append(info)
    return pods
