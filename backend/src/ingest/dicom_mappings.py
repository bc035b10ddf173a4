"""Mapping of DICOM header attributes onto viewer frames."""

from __future__ import annotations

from typing import Any, Callable

from pydicom.dataset import Dataset

from series.models import Frame
from session.errors import FetchError


Converter = Callable[[Any], Any]


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


# frame field -> (DICOM keyword, converter)
FRAME_FIELD_MAP: dict[str, tuple[str, Converter]] = {
    "study_id": ("StudyInstanceUID", _to_str),
    "series_id": ("SeriesInstanceUID", _to_str),
    "sop_instance_uid": ("SOPInstanceUID", _to_str),
    "series_number": ("SeriesNumber", _to_int),
    "instance_number": ("InstanceNumber", _to_int),
    "study_description": ("StudyDescription", _to_str),
    "series_description": ("SeriesDescription", _to_str),
    "modality": ("Modality", _to_str),
}

REQUIRED_FIELDS = ("series_id", "sop_instance_uid")

# Keywords needed for a header-only read
FRAME_KEYWORDS = [keyword for keyword, _ in FRAME_FIELD_MAP.values()]


def extract_frame_fields(dataset: Dataset) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for name, (keyword, converter) in FRAME_FIELD_MAP.items():
        fields[name] = converter(dataset.get(keyword))
    return fields


def frame_from_dataset(identity: str, dataset: Dataset) -> Frame:
    """Build a frame from a parsed header; series and SOP instance UIDs are required."""

    fields = extract_frame_fields(dataset)
    missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
    if missing:
        keywords = ", ".join(FRAME_FIELD_MAP[name][0] for name in missing)
        raise FetchError(identity, f"Missing {keywords}")
    if not fields.get("study_id"):
        fields["study_id"] = ""
    return Frame(image_identity=identity, **fields)
