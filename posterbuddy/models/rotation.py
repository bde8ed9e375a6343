"""Kiosk rotation state (transient, never persisted)."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from posterbuddy.models.poster import Poster


class RotationPhase(str, Enum):
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class RotationSnapshot:
    """Point-in-time view of the rotation for the kiosk page."""
    phase: RotationPhase
    index: Optional[int]  # None unless phase is READY
    total: int
    cycle_speed: float
    poster: Optional[Poster]
    error: Optional[str] = None
