"""Pydantic data models and enums for podstage.

This package defines:
- Pod locations, derived phases and coarse statuses (PodLocation, Phase, PodStatus)
- Point-in-time pod observations (PodInfo)
- Garbage collection reports (GCReport)
- The stage-1 image manifest subset (ImageManifest, Annotation)

Phases are never stored; ``derive_phase`` builds them from a location and
a lock state.
"""

from .gc import GCReport
from .manifest import Annotation, ImageManifest
from .phase import SCAN_ORDER, Phase, PodLocation, PodStatus, derive_phase
from .pod import PodInfo

__all__ = [
    "SCAN_ORDER",
    "Annotation",
    "GCReport",
    "ImageManifest",
    "Phase",
    "PodInfo",
    "PodLocation",
    "PodStatus",
    "derive_phase",
]
