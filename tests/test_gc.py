"""Tests for the mark-and-sweep garbage collector."""

import time
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from uuid import UUID

import pytest

from podstage.core import (
    collect_garbage,
    create_embryo,
    enter_prepare,
    expire_prepared_pods,
    find_pod_locations,
    mark_exited_pods,
    mark_failed_preparations,
    prepare_succeeded_to_prepared,
    prepare_succeeded_to_run,
    query_phase,
    resume_from_prepared,
    sweep_garbage,
)
from podstage.core.lock_manager import LockMode, acquire_lock
from podstage.models import GCReport, PodLocation, PodStatus

GRACE = timedelta(minutes=30)


def after_grace() -> float:
    """A reference time just past the default grace period."""
    return time.time() + GRACE.total_seconds() + 1


class TestMarkExited:
    """Tests for mark_exited_pods function."""

    def test_skips_running_pod(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """A pod whose lock is held is never marked."""
        run = prepare_succeeded_to_run(enter_prepare(create_embryo(pods_dir, pod_uuid)))
        try:
            report = mark_exited_pods(pods_dir)
            assert report.busy == [str(pod_uuid)]
            assert report.marked_exited == []
            assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.RUN]
        finally:
            run.lock.release()

    def test_marks_exited_pod(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """An unlocked pod in run/ moves to exited-garbage/."""
        run = prepare_succeeded_to_run(enter_prepare(create_embryo(pods_dir, pod_uuid)))
        run.lock.release()
        report = mark_exited_pods(pods_dir)
        assert report.marked_exited == [str(pod_uuid)]
        assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.EXITED_GARBAGE]

    def test_marks_with_concurrent_shared_holder(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """A status query holding a shared lock does not keep a pod alive."""
        path = make_pod(PodLocation.RUN)
        with acquire_lock(path, LockMode.SHARED):
            report = mark_exited_pods(pods_dir)
        assert report.marked_exited == [str(pod_uuid)]

    def test_rename_updates_change_time(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """Marking stamps the pod with a fresh change-time."""
        make_pod(PodLocation.RUN)
        before = time.time()
        mark_exited_pods(pods_dir)
        moved = pods_dir / "exited-garbage" / str(pod_uuid)
        assert moved.stat().st_ctime >= before - 1


class TestMarkFailedPreparations:
    """Tests for mark_failed_preparations function."""

    def test_skips_preparing_pod(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """A preparation in progress is left alone."""
        prepare = enter_prepare(create_embryo(pods_dir, pod_uuid))
        try:
            report = mark_failed_preparations(pods_dir)
            assert report.busy == [str(pod_uuid)]
            assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.PREPARE]
        finally:
            prepare.lock.release()

    def test_crashed_preparation_is_collected(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """embryo -> prepare -> crash ends in garbage/, then deleted after grace."""
        prepare = enter_prepare(create_embryo(pods_dir, pod_uuid))
        prepare.lock.release()  # what process death does

        report = collect_garbage(pods_dir)
        assert report.marked_failed == [str(pod_uuid)]
        assert report.within_grace == [str(pod_uuid)]
        assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.GARBAGE]

        report = collect_garbage(pods_dir, now=after_grace())
        assert report.deleted == [str(pod_uuid)]
        assert find_pod_locations(pods_dir, pod_uuid) == []


class TestSweep:
    """Tests for sweep_garbage function."""

    def test_respects_grace_period(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """Repeated sweeps inside the grace period delete nothing."""
        make_pod(PodLocation.EXITED_GARBAGE)
        for _ in range(3):
            report = sweep_garbage(pods_dir, PodLocation.EXITED_GARBAGE, GRACE)
            assert report.deleted == []
            assert report.within_grace == [str(pod_uuid)]
        assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.EXITED_GARBAGE]

    def test_deletes_once_after_grace(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """The first sweep after the grace period deletes; the second finds nothing."""
        make_pod(PodLocation.EXITED_GARBAGE)
        now = after_grace()
        first = sweep_garbage(pods_dir, PodLocation.EXITED_GARBAGE, GRACE, now=now)
        second = sweep_garbage(pods_dir, PodLocation.EXITED_GARBAGE, GRACE, now=now)
        assert first.deleted == [str(pod_uuid)]
        assert second == GCReport()

    def test_skips_locked_pod(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """A pod being inspected or swept elsewhere is skipped."""
        path = make_pod(PodLocation.GARBAGE)
        with acquire_lock(path, LockMode.SHARED):
            report = sweep_garbage(pods_dir, PodLocation.GARBAGE, GRACE, now=after_grace())
        assert report.busy == [str(pod_uuid)]
        assert path.exists()

    def test_zero_grace_deletes_immediately(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """A zero grace period deletes on the first sweep."""
        path = make_pod(PodLocation.GARBAGE)
        (path / "stage1" / "rootfs").mkdir(parents=True)
        report = sweep_garbage(pods_dir, PodLocation.GARBAGE, timedelta(0))
        assert report.deleted == [str(pod_uuid)]
        assert not path.exists()

    def test_refuses_live_locations(self, pods_dir: Path) -> None:
        """Only garbage locations can be swept."""
        with pytest.raises(ValueError, match="cannot sweep"):
            sweep_garbage(pods_dir, PodLocation.RUN)


class TestExpirePrepared:
    """Tests for expire_prepared_pods function."""

    @pytest.fixture
    def prepared_uuid(self, pods_dir: Path, pod_uuid: UUID) -> UUID:
        prepare_succeeded_to_prepared(enter_prepare(create_embryo(pods_dir, pod_uuid)))
        return pod_uuid

    def test_young_prepared_pod_kept(self, pods_dir: Path, prepared_uuid: UUID) -> None:
        """Prepared pods within the expiry window stay."""
        report = expire_prepared_pods(pods_dir, timedelta(hours=24))
        assert report.expired_prepared == []
        assert find_pod_locations(pods_dir, prepared_uuid) == [PodLocation.PREPARED]

    def test_old_prepared_pod_expired(self, pods_dir: Path, prepared_uuid: UUID) -> None:
        """Prepared pods past expiry move to garbage/."""
        now = time.time() + 25 * 3600
        report = expire_prepared_pods(pods_dir, timedelta(hours=24), now=now)
        assert report.expired_prepared == [str(prepared_uuid)]
        assert find_pod_locations(pods_dir, prepared_uuid) == [PodLocation.GARBAGE]

    def test_resume_in_progress_blocks_expiry(self, pods_dir: Path, prepared_uuid: UUID) -> None:
        """A resumer holding the lock wins against expiry."""
        path = pods_dir / "prepared" / str(prepared_uuid)
        with acquire_lock(path, LockMode.EXCLUSIVE):
            report = expire_prepared_pods(pods_dir, timedelta(0))
        assert report.busy == [str(prepared_uuid)]
        assert find_pod_locations(pods_dir, prepared_uuid) == [PodLocation.PREPARED]

    def test_disabled_in_collect(self, pods_dir: Path, prepared_uuid: UUID) -> None:
        """expire_prepared=None keeps prepared pods forever."""
        collect_garbage(pods_dir, expire_prepared=None, now=time.time() + 10 * 24 * 3600)
        assert find_pod_locations(pods_dir, prepared_uuid) == [PodLocation.PREPARED]


class TestCollectGarbage:
    """Tests for a full collect_garbage pass."""

    def test_exit_mark_and_sweep(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """An exited pod is marked on the first pass and deleted after grace."""
        prepare = enter_prepare(create_embryo(pods_dir, pod_uuid))
        prepared = prepare_succeeded_to_prepared(prepare)
        run = resume_from_prepared(pods_dir, prepared.uuid)
        run.lock.release()

        report = collect_garbage(pods_dir)
        assert report.marked_exited == [str(pod_uuid)]
        assert query_phase(pods_dir, pod_uuid) is PodStatus.DELETING

        report = collect_garbage(pods_dir, now=after_grace())
        assert report.deleted == [str(pod_uuid)]
        assert query_phase(pods_dir, pod_uuid) is PodStatus.NOT_FOUND

    def test_never_touches_live_pods(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """Running and preparing pods survive any number of late passes."""
        other = UUID("0a9b8c7d-6e5f-4a3b-8c2d-1e0f9a8b7c6d")
        run = prepare_succeeded_to_run(enter_prepare(create_embryo(pods_dir, pod_uuid)))
        prepare = enter_prepare(create_embryo(pods_dir, other))
        try:
            for _ in range(2):
                report = collect_garbage(pods_dir, now=after_grace())
                assert report.deleted == []
            assert query_phase(pods_dir, pod_uuid) is PodStatus.RUNNING
            assert query_phase(pods_dir, other) is PodStatus.PREPARING
        finally:
            run.lock.release()
            prepare.lock.release()

    def test_embryos_untouched(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """Embryos are outside the collector's reach."""
        create_embryo(pods_dir, pod_uuid)
        collect_garbage(pods_dir, now=after_grace())
        assert find_pod_locations(pods_dir, pod_uuid) == [PodLocation.EMBRYO]

    def test_corrupt_entries_reported_not_repaired(self, pods_dir: Path) -> None:
        """Plain files and stray names are reported and left in place."""
        stray_file = pods_dir / "run" / "6f1d2b8e-3c4a-4f5e-9a7b-0c1d2e3f4a5b"
        stray_file.write_text("not a pod")
        stray_dir = pods_dir / "garbage" / "scratch"
        stray_dir.mkdir()

        report = collect_garbage(pods_dir, now=after_grace())
        assert sorted(report.corrupt) == sorted([str(stray_file), str(stray_dir)])
        assert stray_file.exists()
        assert stray_dir.exists()

    def test_dangling_symlink_reported(self, pods_dir: Path, pod_uuid: UUID) -> None:
        """A symlink to nowhere is corrupt, not a pod that was renamed away."""
        link = pods_dir / "run" / str(pod_uuid)
        link.symlink_to(pods_dir / "missing")

        report = collect_garbage(pods_dir, now=after_grace())
        assert report.corrupt == [str(link)]
        assert report.marked_exited == []
        assert link.is_symlink()

    def test_duplicate_target_reported(
        self, pods_dir: Path, make_pod: Callable[..., Path], pod_uuid: UUID
    ) -> None:
        """A pod that would be duplicated by marking is left where it is."""
        make_pod(PodLocation.RUN)
        make_pod(PodLocation.EXITED_GARBAGE)
        report = collect_garbage(pods_dir)
        assert report.marked_exited == []
        assert report.corrupt == [str(pods_dir / "exited-garbage" / str(pod_uuid))]
        assert (pods_dir / "run" / str(pod_uuid)).exists()

    def test_missing_pods_dir(self, tmp_path: Path) -> None:
        """Collecting an uninitialized root is a no-op."""
        assert collect_garbage(tmp_path / "nope") == GCReport()
