"""Pod directory set utilities.

The directory set is a fixed group of sibling directories under the pods
root, each a flat namespace of UUID-named pod directories::

    embryo/<uuid>/  prepare/<uuid>/  prepared/<uuid>/
    run/<uuid>/     exited-garbage/<uuid>/  garbage/<uuid>/
"""

import logging
import os
import uuid as uuidlib
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from ..errors import InvalidPodUUIDError
from ..models import SCAN_ORDER, PodLocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PodEntry:
    """One entry found in a location directory.

    Exactly one of ``uuid`` and ``corrupt`` is set.
    """

    location: PodLocation
    path: Path
    uuid: UUID | None = None
    corrupt: str | None = None


def generate_pod_uuid() -> UUID:
    """Generate a fresh pod UUID."""
    return uuidlib.uuid4()


def parse_pod_uuid(value: str | UUID) -> UUID:
    """Parse a pod UUID, accepting only the canonical directory form.

    Raises:
        InvalidPodUUIDError: If value is not a canonical UUID string
    """
    if isinstance(value, UUID):
        return value
    try:
        parsed = UUID(value)
    except ValueError:
        raise InvalidPodUUIDError(f"invalid pod UUID: {value!r}") from None
    if str(parsed) != value.lower():
        raise InvalidPodUUIDError(f"pod UUID not in canonical form: {value!r}")
    return parsed


def get_location_dir(pods_dir: Path, location: PodLocation) -> Path:
    """Get the top-level directory for a location."""
    return pods_dir / location.value


def get_pod_dir(pods_dir: Path, location: PodLocation, pod_uuid: UUID) -> Path:
    """Get the directory a pod occupies while at ``location``."""
    return get_location_dir(pods_dir, location) / str(pod_uuid)


def ensure_pod_dirs(pods_dir: Path) -> Path:
    """Create the pods root and every location directory.

    Returns:
        The pods root
    """
    pods_dir.mkdir(mode=0o750, parents=True, exist_ok=True)
    for location in SCAN_ORDER:
        get_location_dir(pods_dir, location).mkdir(mode=0o750, exist_ok=True)
    return pods_dir


def _classify(location: PodLocation, path: Path) -> PodEntry:
    if not path.is_dir() or path.is_symlink():
        return PodEntry(location, path, corrupt="not a directory")
    try:
        pod_uuid = parse_pod_uuid(path.name)
    except InvalidPodUUIDError:
        return PodEntry(location, path, corrupt="name is not a pod UUID")
    return PodEntry(location, path, uuid=pod_uuid)


def iter_pod_entries(pods_dir: Path, location: PodLocation) -> Iterator[PodEntry]:
    """Iterate entries of one location directory, sorted by name.

    The listing is a snapshot: entries may be renamed away by other
    processes while the caller works through them.
    """
    location_dir = get_location_dir(pods_dir, location)
    try:
        names = sorted(p.name for p in location_dir.iterdir())
    except FileNotFoundError:
        return
    for name in names:
        entry = _classify(location, location_dir / name)
        if entry.corrupt and not os.path.lexists(entry.path):
            # Renamed away between listing and classification
            continue
        yield entry


def find_pod_locations(pods_dir: Path, pod_uuid: UUID) -> list[PodLocation]:
    """List every location currently holding a directory named after the pod.

    More than one result means the layout is corrupt.
    """
    return [
        location
        for location in SCAN_ORDER
        if os.path.lexists(get_pod_dir(pods_dir, location, pod_uuid))
    ]
