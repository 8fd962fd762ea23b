"""Garbage collection report model."""

from pydantic import BaseModel, Field


class GCReport(BaseModel):
    """Outcome of one garbage collector invocation.

    Every list holds pod UUIDs except ``corrupt``, which holds paths of
    entries that violate the directory layout and were left untouched.
    """

    marked_exited: list[str] = Field(default_factory=list, description="Moved run -> exited-garbage")
    marked_failed: list[str] = Field(default_factory=list, description="Moved prepare -> garbage")
    expired_prepared: list[str] = Field(
        default_factory=list, description="Moved prepared -> garbage after expiry"
    )
    deleted: list[str] = Field(default_factory=list, description="Removed from disk")
    busy: list[str] = Field(default_factory=list, description="Skipped, lock held elsewhere")
    within_grace: list[str] = Field(
        default_factory=list, description="Skipped, grace period not elapsed"
    )
    race_lost: list[str] = Field(
        default_factory=list, description="Skipped, a concurrent actor moved the pod first"
    )
    corrupt: list[str] = Field(default_factory=list, description="Invalid entries (paths)")

    @property
    def has_corruption(self) -> bool:
        return bool(self.corrupt)
