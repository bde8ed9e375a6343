"""Core services: data store adapter, backends, rotation, sync, upload."""
from posterbuddy.core.adapter import DataStoreAdapter, OpResult
from posterbuddy.core.rotation import RotationController

__all__ = ["DataStoreAdapter", "OpResult", "RotationController"]
