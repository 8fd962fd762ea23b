"""Mark-and-sweep garbage collection of pod directories.

Marking is a rename out of a live location; sweeping is a recursive delete
of a marked pod once its grace period has elapsed. Both passes only act on
pods they can lock without blocking, so they are safe to run concurrently
with each other, with themselves and with live pods. A collector that dies
part way leaves every pod either in its old location (re-markable) or in a
garbage location (re-sweepable).
"""

import logging
import os
import shutil
import time
from datetime import timedelta
from pathlib import Path

from ..constants import DEFAULT_EXPIRE_PREPARED, DEFAULT_GC_GRACE_PERIOD
from ..errors import CorruptStateError
from ..models import GCReport, PodLocation
from .lifecycle import RaceLost, move_pod
from .lock_manager import LockMode, try_acquire_lock
from .pod_dirs import PodEntry, iter_pod_entries

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = timedelta(seconds=DEFAULT_GC_GRACE_PERIOD)
DEFAULT_PREPARED_EXPIRY = timedelta(seconds=DEFAULT_EXPIRE_PREPARED)

GARBAGE_LOCATIONS = (PodLocation.EXITED_GARBAGE, PodLocation.GARBAGE)


def _pod_entries(pods_dir: Path, location: PodLocation, report: GCReport) -> list[PodEntry]:
    """List valid pod entries, recording corrupt ones in the report."""
    entries = []
    for entry in iter_pod_entries(pods_dir, location):
        if entry.corrupt:
            logger.error(f"Corrupt entry left untouched: {entry.path} ({entry.corrupt})")
            report.corrupt.append(str(entry.path))
            continue
        entries.append(entry)
    return entries


def _change_age(path: Path, now: float) -> float | None:
    """Seconds since the directory's change-time, or None if it vanished."""
    try:
        return now - os.stat(path).st_ctime
    except FileNotFoundError:
        return None


def _mark(
    pods_dir: Path,
    source: PodLocation,
    target: PodLocation,
    marked: list[str],
    report: GCReport,
) -> None:
    """Move every pod at ``source`` that nobody holds exclusively to ``target``."""
    for entry in _pod_entries(pods_dir, source, report):
        pod_id = str(entry.uuid)
        try:
            lock = try_acquire_lock(entry.path, LockMode.SHARED)
        except FileNotFoundError:
            report.race_lost.append(pod_id)
            continue
        if lock is None:
            report.busy.append(pod_id)
            continue
        try:
            with lock:
                moved = move_pod(pods_dir, entry.uuid, source, target)
        except CorruptStateError as e:
            logger.error(f"Pod {pod_id} not marked: {e}")
            report.corrupt.append(str(e.path))
            continue
        if isinstance(moved, RaceLost):
            report.race_lost.append(pod_id)
            continue
        logger.info(f"Marked pod {pod_id}: {source.value} -> {target.value}")
        marked.append(pod_id)


def mark_exited_pods(pods_dir: Path, report: GCReport | None = None) -> GCReport:
    """Move exited pods from ``run/`` to ``exited-garbage/``.

    A pod in ``run/`` whose directory can be share-locked has no owning
    process anymore.
    """
    report = GCReport() if report is None else report
    _mark(pods_dir, PodLocation.RUN, PodLocation.EXITED_GARBAGE, report.marked_exited, report)
    return report


def mark_failed_preparations(pods_dir: Path, report: GCReport | None = None) -> GCReport:
    """Move abandoned preparations from ``prepare/`` to ``garbage/``."""
    report = GCReport() if report is None else report
    _mark(pods_dir, PodLocation.PREPARE, PodLocation.GARBAGE, report.marked_failed, report)
    return report


def expire_prepared_pods(
    pods_dir: Path,
    expire_after: timedelta = DEFAULT_PREPARED_EXPIRY,
    now: float | None = None,
    report: GCReport | None = None,
) -> GCReport:
    """Move prepared pods nobody resumed within ``expire_after`` to ``garbage/``.

    The exclusive lock excludes a concurrent resume: whichever side locks
    first wins, and the other sees a busy lock or a vanished source.
    """
    report = GCReport() if report is None else report
    now = time.time() if now is None else now
    for entry in _pod_entries(pods_dir, PodLocation.PREPARED, report):
        pod_id = str(entry.uuid)
        age = _change_age(entry.path, now)
        if age is None:
            report.race_lost.append(pod_id)
            continue
        if age < expire_after.total_seconds():
            continue
        try:
            lock = try_acquire_lock(entry.path, LockMode.EXCLUSIVE)
        except FileNotFoundError:
            report.race_lost.append(pod_id)
            continue
        if lock is None:
            report.busy.append(pod_id)
            continue
        try:
            with lock:
                moved = move_pod(pods_dir, entry.uuid, PodLocation.PREPARED, PodLocation.GARBAGE)
        except CorruptStateError as e:
            logger.error(f"Pod {pod_id} not expired: {e}")
            report.corrupt.append(str(e.path))
            continue
        if isinstance(moved, RaceLost):
            report.race_lost.append(pod_id)
            continue
        logger.info(f"Expired prepared pod {pod_id}")
        report.expired_prepared.append(pod_id)
    return report


def sweep_garbage(
    pods_dir: Path,
    location: PodLocation,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    now: float | None = None,
    report: GCReport | None = None,
) -> GCReport:
    """Delete marked pods whose grace period has elapsed.

    The grace period counts from the directory change-time, which the
    marking rename updated.

    Args:
        pods_dir: Pods root
        location: exited-garbage or garbage
        grace_period: Minimum dwell time before deletion
        now: Reference time (epoch seconds), current time if omitted
        report: Report to accumulate into

    Returns:
        The report
    """
    if location not in GARBAGE_LOCATIONS:
        raise ValueError(f"cannot sweep {location.value}/")
    report = GCReport() if report is None else report
    now = time.time() if now is None else now
    for entry in _pod_entries(pods_dir, location, report):
        pod_id = str(entry.uuid)
        age = _change_age(entry.path, now)
        if age is None:
            report.race_lost.append(pod_id)
            continue
        if age < grace_period.total_seconds():
            report.within_grace.append(pod_id)
            continue
        try:
            lock = try_acquire_lock(entry.path, LockMode.EXCLUSIVE)
        except FileNotFoundError:
            report.race_lost.append(pod_id)
            continue
        if lock is None:
            report.busy.append(pod_id)
            continue
        with lock:
            try:
                shutil.rmtree(entry.path)
            except FileNotFoundError:
                # Another sweeper deleted it before we locked the inode
                report.race_lost.append(pod_id)
                continue
        logger.info(f"Deleted pod {pod_id} from {location.value}/")
        report.deleted.append(pod_id)
    return report


def collect_garbage(
    pods_dir: Path,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    expire_prepared: timedelta | None = DEFAULT_PREPARED_EXPIRY,
    now: float | None = None,
) -> GCReport:
    """Run a full collection: mark, expire, then sweep.

    Args:
        pods_dir: Pods root
        grace_period: Dwell time in a garbage location before deletion
        expire_prepared: Age at which unused prepared pods are collected,
            None to keep them forever
        now: Reference time (epoch seconds) for age checks

    Returns:
        Report of everything the collector did and skipped
    """
    report = GCReport()
    mark_exited_pods(pods_dir, report)
    mark_failed_preparations(pods_dir, report)
    if expire_prepared is not None:
        expire_prepared_pods(pods_dir, expire_prepared, now=now, report=report)
    for location in GARBAGE_LOCATIONS:
        sweep_garbage(pods_dir, location, grace_period, now=now, report=report)
    logger.debug(
        f"GC done: {len(report.deleted)} deleted, "
        f"{len(report.within_grace)} within grace, {len(report.busy)} busy"
    )
    return report
