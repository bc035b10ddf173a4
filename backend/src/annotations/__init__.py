"""Portable per-image annotation export and import."""

from .io import load_document, save_document
from .models import AnnotationDocument, AnnotationRecord
from .store import AnnotationStore, ImportResult

__all__ = [
    "AnnotationDocument",
    "AnnotationRecord",
    "AnnotationStore",
    "ImportResult",
    "load_document",
    "save_document",
]
