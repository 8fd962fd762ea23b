"""Pod locations and derived lifecycle phases.

A pod's phase is never stored. It is a pure function of which top-level
directory holds the pod and, for some directories, whether that pod
directory is currently locked. ``derive_phase`` is the only place that
mapping lives.
"""

from enum import Enum


class PodLocation(str, Enum):
    """Top-level directories of the pod directory set."""

    EMBRYO = "embryo"
    PREPARE = "prepare"
    PREPARED = "prepared"
    RUN = "run"
    EXITED_GARBAGE = "exited-garbage"
    GARBAGE = "garbage"

    @property
    def lock_disambiguates(self) -> bool:
        """True when the lock state is part of the phase at this location."""
        return self not in (PodLocation.EMBRYO, PodLocation.PREPARED)


# Forward lifecycle order. Pods only ever move towards the end of this tuple.
SCAN_ORDER: tuple[PodLocation, ...] = (
    PodLocation.EMBRYO,
    PodLocation.PREPARE,
    PodLocation.PREPARED,
    PodLocation.RUN,
    PodLocation.EXITED_GARBAGE,
    PodLocation.GARBAGE,
)


class PodStatus(str, Enum):
    """Coarse pod status reported to callers of the status query."""

    NOT_FOUND = "not-found"
    EMBRYO = "embryo"
    PREPARING = "preparing"
    PREPARE_FAILED = "prepare-failed"
    PREPARED = "prepared"
    RUNNING = "running"
    EXITED = "exited"
    DELETING = "deleting"


class Phase(str, Enum):
    """Derived lifecycle phase of a pod."""

    EMBRYO = "embryo"
    PREPARING = "preparing"
    PREPARE_FAILED = "prepare-failed"
    PREPARED = "prepared"
    RUNNING = "running"
    EXITED = "exited"
    EXITED_DELETING = "exited-deleting"
    EXITED_GARBAGE = "exited-garbage"
    GARBAGE_DELETING = "garbage-deleting"
    GARBAGE = "garbage"

    @property
    def status(self) -> PodStatus:
        return _PHASE_STATUS[self]


_PHASE_TABLE: dict[tuple[PodLocation, bool | None], Phase] = {
    (PodLocation.EMBRYO, None): Phase.EMBRYO,
    (PodLocation.PREPARE, True): Phase.PREPARING,
    (PodLocation.PREPARE, False): Phase.PREPARE_FAILED,
    (PodLocation.PREPARED, None): Phase.PREPARED,
    (PodLocation.RUN, True): Phase.RUNNING,
    (PodLocation.RUN, False): Phase.EXITED,
    (PodLocation.EXITED_GARBAGE, True): Phase.EXITED_DELETING,
    (PodLocation.EXITED_GARBAGE, False): Phase.EXITED_GARBAGE,
    (PodLocation.GARBAGE, True): Phase.GARBAGE_DELETING,
    (PodLocation.GARBAGE, False): Phase.GARBAGE,
}

_PHASE_STATUS: dict[Phase, PodStatus] = {
    Phase.EMBRYO: PodStatus.EMBRYO,
    Phase.PREPARING: PodStatus.PREPARING,
    Phase.PREPARE_FAILED: PodStatus.PREPARE_FAILED,
    Phase.PREPARED: PodStatus.PREPARED,
    Phase.RUNNING: PodStatus.RUNNING,
    Phase.EXITED: PodStatus.EXITED,
    Phase.EXITED_DELETING: PodStatus.DELETING,
    Phase.EXITED_GARBAGE: PodStatus.DELETING,
    Phase.GARBAGE_DELETING: PodStatus.DELETING,
    Phase.GARBAGE: PodStatus.DELETING,
}


def derive_phase(location: PodLocation, locked: bool | None) -> Phase:
    """Derive a pod's phase from its location and lock state.

    Args:
        location: Top-level directory holding the pod
        locked: Whether the pod directory is held by another process, or
            None for locations where the lock carries no meaning

    Returns:
        The phase from the lifecycle table

    Raises:
        ValueError: If the lock state does not fit the location
    """
    try:
        return _PHASE_TABLE[(location, locked)]
    except KeyError:
        expected = "a lock state" if location.lock_disambiguates else "no lock state"
        raise ValueError(f"location {location.value!r} takes {expected}, got {locked!r}") from None
