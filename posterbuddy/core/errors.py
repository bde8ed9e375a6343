"""Store failures raised by backends and turned into OpResult values by the adapter."""
from typing import List, Sequence, Tuple


class StoreError(Exception):
    """Base class; `kind` is the stable machine-readable category."""

    kind = "store"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NetworkFailure(StoreError):
    """Store unreachable or timed out."""

    kind = "network"


class PosterNotFound(StoreError):
    kind = "not_found"

    def __init__(self, poster_id: str) -> None:
        super().__init__(f"Poster {poster_id!r} not found")
        self.poster_id = poster_id


class PosterExists(StoreError):
    """Create with a caller-chosen id that is already taken."""

    kind = "conflict"

    def __init__(self, poster_id: str) -> None:
        super().__init__(f"Poster {poster_id!r} already exists")
        self.poster_id = poster_id


class ValidationFailure(StoreError):
    """Rejected input: malformed upload set, bad cycle speed, unreadable image."""

    kind = "validation"


class PartialBatchFailure(StoreError):
    """Some items of a concurrent batch failed; `succeeded` and `failed` say which."""

    kind = "partial_batch"

    def __init__(self, succeeded: Sequence[str], failed: Sequence[Tuple[str, str]]) -> None:
        super().__init__(f"{len(failed)} of {len(succeeded) + len(failed)} items failed")
        self.succeeded: List[str] = list(succeeded)
        self.failed: List[Tuple[str, str]] = list(failed)
