"""Core pod lifecycle logic for podstage.

This package contains the filesystem state machine and its readers:
- lock_manager: flock-based advisory locks on pod directories
- pod_dirs: the pod directory set and UUID handling
- lifecycle: phase transitions by lock-then-rename
- gc: mark-and-sweep collection of exited and failed pods
- pulse: point-in-time phase queries and listing
- stage1: lock descriptor handoff to the executing process
"""

from .gc import (
    collect_garbage,
    expire_prepared_pods,
    mark_exited_pods,
    mark_failed_preparations,
    sweep_garbage,
)
from .lifecycle import (
    EmbryoRef,
    PreparedRef,
    PrepareRef,
    RaceLost,
    RunRef,
    create_embryo,
    enter_prepare,
    move_pod,
    prepare_failed,
    prepare_succeeded_to_prepared,
    prepare_succeeded_to_run,
    resume_from_prepared,
)
from .lock_manager import (
    DirLock,
    LockBusyError,
    LockError,
    LockMode,
    acquire_lock,
    is_locked,
    try_acquire_lock,
)
from .pod_dirs import (
    PodEntry,
    ensure_pod_dirs,
    find_pod_locations,
    generate_pod_uuid,
    get_location_dir,
    get_pod_dir,
    iter_pod_entries,
    parse_pod_uuid,
)
from .pulse import inspect_pod, list_pods, query_phase
from .stage1 import adopt_lock_fd, exec_stage1, export_lock_fd

__all__ = [
    "DirLock",
    "EmbryoRef",
    "LockBusyError",
    "LockError",
    "LockMode",
    "PodEntry",
    "PrepareRef",
    "PreparedRef",
    "RaceLost",
    "RunRef",
    "acquire_lock",
    "adopt_lock_fd",
    "collect_garbage",
    "create_embryo",
    "ensure_pod_dirs",
    "enter_prepare",
    "exec_stage1",
    "expire_prepared_pods",
    "export_lock_fd",
    "find_pod_locations",
    "generate_pod_uuid",
    "get_location_dir",
    "get_pod_dir",
    "inspect_pod",
    "is_locked",
    "iter_pod_entries",
    "list_pods",
    "mark_exited_pods",
    "mark_failed_preparations",
    "move_pod",
    "parse_pod_uuid",
    "prepare_failed",
    "prepare_succeeded_to_prepared",
    "prepare_succeeded_to_run",
    "query_phase",
    "resume_from_prepared",
    "sweep_garbage",
    "try_acquire_lock",
]
