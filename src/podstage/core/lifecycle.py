"""Pod lifecycle state machine.

Each transition is a single atomic rename of the pod directory between
locations, performed while holding the lock the source phase requires.
Locks are always taken before the rename, so a pod never sits in
``prepare/`` or ``run/`` unlocked while still valid.

Transitions::

    embryo --enter_prepare--> prepare --prepare_succeeded_to_prepared--> prepared
                              prepare --prepare_succeeded_to_run-------> run
                              prepare --prepare_failed (unlock only)
    prepared --resume_from_prepared--> run

Exit has no transition: the kernel drops the run lock when the owning
process dies, and the collector notices.
"""

import errno
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from ..errors import CorruptStateError, PodExistsError, PodNotFoundError
from ..models import PodLocation
from .lock_manager import DirLock, LockBusyError, LockMode, acquire_lock
from .pod_dirs import ensure_pod_dirs, find_pod_locations, generate_pod_uuid, get_pod_dir

logger = logging.getLogger(__name__)

# rename(2) failures meaning the target name is already taken
_TARGET_OCCUPIED = frozenset({errno.ENOTEMPTY, errno.EEXIST, errno.ENOTDIR, errno.EISDIR})


@dataclass(frozen=True)
class RaceLost:
    """A concurrent actor completed the same transition first.

    Returned instead of raised: losing a race is a normal outcome and the
    filesystem was left untouched by the loser.
    """

    uuid: UUID
    source: PodLocation
    target: PodLocation


@dataclass
class EmbryoRef:
    """Pod being assembled in ``embryo/``. Not yet visible as in-phase."""

    pods_dir: Path
    uuid: UUID

    @property
    def path(self) -> Path:
        return get_pod_dir(self.pods_dir, PodLocation.EMBRYO, self.uuid)


@dataclass
class PrepareRef:
    """Pod in ``prepare/``, exclusively locked by the preparing process."""

    pods_dir: Path
    uuid: UUID
    lock: DirLock

    @property
    def path(self) -> Path:
        return get_pod_dir(self.pods_dir, PodLocation.PREPARE, self.uuid)


@dataclass
class PreparedRef:
    """Pod parked in ``prepared/``, waiting to be resumed."""

    pods_dir: Path
    uuid: UUID

    @property
    def path(self) -> Path:
        return get_pod_dir(self.pods_dir, PodLocation.PREPARED, self.uuid)


@dataclass
class RunRef:
    """Pod in ``run/``. The pod is running for as long as ``lock`` stays open."""

    pods_dir: Path
    uuid: UUID
    lock: DirLock

    @property
    def path(self) -> Path:
        return get_pod_dir(self.pods_dir, PodLocation.RUN, self.uuid)


def move_pod(
    pods_dir: Path,
    pod_uuid: UUID,
    source: PodLocation,
    target: PodLocation,
) -> Path | RaceLost:
    """Atomically rename a pod directory from one location to another.

    The caller must hold whatever lock the source phase requires.

    Returns:
        The new pod directory, or RaceLost if the source vanished

    Raises:
        CorruptStateError: The target already exists, so the rename would
            duplicate or overwrite the pod
        OSError: Any other filesystem failure
    """
    src = get_pod_dir(pods_dir, source, pod_uuid)
    dst = get_pod_dir(pods_dir, target, pod_uuid)
    # rename(2) silently replaces an empty target directory. Target is checked
    # before source, so a concurrent mover is never mistaken for a duplicate.
    if os.path.lexists(dst) and os.path.lexists(src):
        raise CorruptStateError(dst, f"pod also present in {target.value}/")
    try:
        os.rename(src, dst)
    except FileNotFoundError:
        logger.debug(f"Pod {pod_uuid}: {source.value} -> {target.value} lost race")
        return RaceLost(pod_uuid, source, target)
    except OSError as e:
        if e.errno not in _TARGET_OCCUPIED:
            raise
        if not os.path.lexists(src):
            logger.debug(f"Pod {pod_uuid}: {source.value} -> {target.value} lost race")
            return RaceLost(pod_uuid, source, target)
        raise CorruptStateError(dst, f"pod also present in {target.value}/") from e
    logger.debug(f"Pod {pod_uuid}: {source.value} -> {target.value}")
    return dst


def create_embryo(pods_dir: Path, pod_uuid: UUID | None = None) -> EmbryoRef:
    """Create the embryo directory for a new pod.

    Args:
        pods_dir: Pods root, the directory set is created if missing
        pod_uuid: UUID to use, generated if omitted

    Raises:
        PodExistsError: The UUID already names a pod somewhere in the set
    """
    ensure_pod_dirs(pods_dir)
    if pod_uuid is None:
        pod_uuid = generate_pod_uuid()
    existing = find_pod_locations(pods_dir, pod_uuid)
    if existing:
        raise PodExistsError(f"pod {pod_uuid} already exists in {existing[0].value}/")

    embryo = EmbryoRef(pods_dir, pod_uuid)
    try:
        embryo.path.mkdir()
    except FileExistsError:
        raise PodExistsError(f"pod {pod_uuid} already exists in embryo/") from None
    logger.debug(f"Pod {pod_uuid}: created embryo")
    return embryo


def enter_prepare(embryo: EmbryoRef) -> PrepareRef:
    """Lock an embryo and move it into ``prepare/``.

    Raises:
        PodNotFoundError: The embryo directory does not exist
        LockBusyError: Another process holds the embryo lock
    """
    try:
        lock = acquire_lock(embryo.path, LockMode.EXCLUSIVE, blocking=False)
    except FileNotFoundError:
        raise PodNotFoundError(f"pod {embryo.uuid} has no embryo directory") from None

    try:
        moved = move_pod(embryo.pods_dir, embryo.uuid, PodLocation.EMBRYO, PodLocation.PREPARE)
    except BaseException:
        lock.release()
        raise
    if isinstance(moved, RaceLost):
        lock.release()
        raise PodNotFoundError(f"pod {embryo.uuid} left embryo/ while being locked")
    return PrepareRef(embryo.pods_dir, embryo.uuid, lock)


def prepare_succeeded_to_prepared(prepare: PrepareRef) -> PreparedRef:
    """Park a successfully prepared pod in ``prepared/`` and unlock it.

    The lock is released whether or not the rename succeeds.

    Raises:
        PodNotFoundError: The pod left ``prepare/`` while we held its lock
    """
    try:
        moved = move_pod(prepare.pods_dir, prepare.uuid, PodLocation.PREPARE, PodLocation.PREPARED)
    finally:
        prepare.lock.release()
    if isinstance(moved, RaceLost):
        raise PodNotFoundError(f"pod {prepare.uuid} vanished from prepare/")
    return PreparedRef(prepare.pods_dir, prepare.uuid)


def prepare_succeeded_to_run(prepare: PrepareRef) -> RunRef:
    """Move a prepared pod straight into ``run/``, keeping the same lock.

    Raises:
        PodNotFoundError: The pod left ``prepare/`` while we held its lock
    """
    try:
        moved = move_pod(prepare.pods_dir, prepare.uuid, PodLocation.PREPARE, PodLocation.RUN)
    except BaseException:
        prepare.lock.release()
        raise
    if isinstance(moved, RaceLost):
        prepare.lock.release()
        raise PodNotFoundError(f"pod {prepare.uuid} vanished from prepare/")
    return RunRef(prepare.pods_dir, prepare.uuid, prepare.lock)


def prepare_failed(prepare: PrepareRef) -> None:
    """Abandon a preparation.

    Only the lock is dropped. An unlocked pod in ``prepare/`` is what marks
    it as failed for the collector.
    """
    prepare.lock.release()
    logger.debug(f"Pod {prepare.uuid}: preparation failed, left in prepare/")


def resume_from_prepared(pods_dir: Path, pod_uuid: UUID) -> RunRef | RaceLost:
    """Lock a prepared pod and move it into ``run/``.

    When several callers race to resume the same pod, exactly one gets a
    RunRef. The others get RaceLost and change nothing.

    Returns:
        RunRef holding the exclusive lock, or RaceLost
    """
    prepared = PreparedRef(pods_dir, pod_uuid)
    try:
        lock = acquire_lock(prepared.path, LockMode.EXCLUSIVE, blocking=False)
    except (FileNotFoundError, LockBusyError):
        logger.debug(f"Pod {pod_uuid}: resume lost race")
        return RaceLost(pod_uuid, PodLocation.PREPARED, PodLocation.RUN)

    try:
        moved = move_pod(pods_dir, pod_uuid, PodLocation.PREPARED, PodLocation.RUN)
    except BaseException:
        lock.release()
        raise
    if isinstance(moved, RaceLost):
        # We locked the inode after the winner had already renamed it away
        lock.release()
        return moved
    return RunRef(pods_dir, pod_uuid, lock)
