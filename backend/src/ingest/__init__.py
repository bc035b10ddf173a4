"""Frame ingestion: bounded concurrent fetches feeding the series hierarchy."""

from .config import ExtensionMode, IngestionConfig, ViewerSettings, get_settings
from .core import IngestionController, IngestionFailure, IngestionResult
from .progress import IngestionProgress, ProgressTracker
from .store import DicomFileStore, FrameStore, MemoryFrameStore

__all__ = [
    "DicomFileStore",
    "ExtensionMode",
    "FrameStore",
    "IngestionConfig",
    "IngestionController",
    "IngestionFailure",
    "IngestionProgress",
    "IngestionResult",
    "MemoryFrameStore",
    "ProgressTracker",
    "ViewerSettings",
    "get_settings",
]
