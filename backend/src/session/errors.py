"""Error taxonomy for ingestion, traversal and annotation bookkeeping."""

from __future__ import annotations


class ViewerError(RuntimeError):
    """Base class for errors surfaced by the viewer core."""


class FetchError(ViewerError):
    """Raised when a single frame cannot be fetched or classified."""

    def __init__(self, identity: str, message: str | None = None) -> None:
        self.identity = identity
        base = message or "Frame fetch failed"
        super().__init__(f"{base}: {identity}")


class BusyError(ViewerError):
    """Raised when an image walk is requested while a load is in flight."""

    def __init__(self, operation: str | None = None) -> None:
        self.operation = operation
        base = "Images are still loading"
        if operation:
            base = f"Cannot {operation} while images are still loading"
        super().__init__(base)


class ValidationError(ViewerError, ValueError):
    """Raised when an annotation document is malformed.

    Nothing is mutated when this is raised.
    """


class EmptyStateError(ValidationError):
    """Raised when an operation needs loaded images and there are none."""

    def __init__(self, operation: str | None = None) -> None:
        self.operation = operation
        base = "No images loaded"
        if operation:
            base = f"Cannot {operation}: no images loaded"
        super().__init__(base)


class PartialImportWarning(UserWarning):
    """A single import record was skipped; the rest were applied."""

    def __init__(self, sop_instance_uid: str, reason: str) -> None:
        self.sop_instance_uid = sop_instance_uid
        self.reason = reason
        super().__init__(f"Skipped annotations for {sop_instance_uid}: {reason}")
