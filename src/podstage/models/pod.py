"""Serializable view of a pod at the instant it was sampled."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, computed_field

from .phase import Phase, PodLocation, PodStatus


class PodInfo(BaseModel):
    """Point-in-time observation of a pod.

    Only valid at the instant it was sampled: the pod may have moved or
    exited by the time the caller reads it.

    Attributes:
        uuid: Pod UUID in canonical form.
        location: Top-level directory the pod was found in.
        phase: Phase derived from location and lock state.
        path: Pod directory path at sampling time.
        changed_at: Change-time of the pod directory (set by the last rename).
    """

    uuid: str = Field(description="Pod UUID")
    location: PodLocation = Field(description="Directory holding the pod")
    phase: Phase = Field(description="Derived lifecycle phase")
    path: Path = Field(description="Pod directory at sampling time")
    changed_at: datetime = Field(description="Directory change-time")

    @computed_field
    @property
    def status(self) -> PodStatus:
        return self.phase.status
