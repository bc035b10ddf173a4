"""Viewer session wiring and error taxonomy."""

from .errors import (
    BusyError,
    EmptyStateError,
    FetchError,
    PartialImportWarning,
    ValidationError,
    ViewerError,
)

__all__ = [
    "BusyError",
    "EmptyStateError",
    "FetchError",
    "PartialImportWarning",
    "ValidationError",
    "ViewerError",
]
