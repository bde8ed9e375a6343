"""Data models for posters, settings, and rotation state."""
from posterbuddy.models.poster import DisplaySettings, Poster, UploadedFile
from posterbuddy.models.rotation import RotationPhase, RotationSnapshot

__all__ = [
    "DisplaySettings",
    "Poster",
    "RotationPhase",
    "RotationSnapshot",
    "UploadedFile",
]
