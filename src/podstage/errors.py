"""Pod lifecycle errors."""

from pathlib import Path


class PodError(Exception):
    """Base exception for pod lifecycle errors."""


class PodNotFoundError(PodError):
    """Raised when a pod directory does not exist where it is expected."""


class PodExistsError(PodError):
    """Raised when a pod UUID is already present in the directory set."""


class InvalidPodUUIDError(PodError):
    """Raised when a string is not a valid pod UUID."""


class CorruptStateError(PodError):
    """Raised when the on-disk layout violates the pod invariants.

    Never repaired automatically; the operator has to look at ``path``.
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class Stage1Error(PodError):
    """Raised when the stage-1 handoff cannot be performed."""
