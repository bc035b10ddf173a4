"""Reading and writing annotation documents as JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from session.errors import ValidationError

from .models import AnnotationDocument


logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "annotations.json"


def save_document(document: AnnotationDocument, path: Path) -> Path:
    """Write *document* to *path*; a directory receives ``annotations.json``."""

    if path.is_dir():
        path = path / DEFAULT_FILENAME
    elif not path.suffix:
        path = path.with_suffix(".json")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document.to_payload(), indent=2), encoding="utf-8")
    logger.info("Wrote %d annotation records to %s", len(document), path)
    return path


def load_document(path: Path) -> AnnotationDocument:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(f"{path} is not valid UTF-8 JSON: {exc}") from exc
    document = AnnotationDocument.from_payload(payload)
    logger.debug("Read %d annotation records from %s", len(document), path)
    return document
