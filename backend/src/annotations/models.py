"""Pydantic models for the portable annotation document."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from session.errors import ValidationError
from viewer.tools import ToolKind
from viewer.viewport import Geometry


# Field names written by older viewer exports
LEGACY_KIND_KEYS: dict[str, ToolKind] = {
    "lengthData": ToolKind.LENGTH,
    "rectangleData": ToolKind.RECTANGLE,
}


class AnnotationRecord(BaseModel):
    """Annotations of one image, keyed by its SOP instance UID."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    study_id: str = Field(
        default="",
        validation_alias=AliasChoices("studyId", "studyID", "study_id"),
        serialization_alias="studyId",
    )
    series_id: str = Field(
        default="",
        validation_alias=AliasChoices("seriesId", "seriesID", "series_id"),
        serialization_alias="seriesId",
    )
    sop_instance_uid: str = Field(
        min_length=1,
        validation_alias=AliasChoices("sopInstanceUid", "SOPInstanceUID", "sop_instance_uid"),
        serialization_alias="sopInstanceUid",
    )
    # a non-object value is kept as-is and rejected per record on import
    annotations: Any = Field(default_factory=dict)

    @field_validator("study_id", "series_id", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("annotations", mode="before")
    @classmethod
    def _normalize_kind_keys(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            return value
        normalized: dict[str, Any] = {}
        for key, payload in value.items():
            kind = LEGACY_KIND_KEYS.get(key)
            normalized[kind.value if kind else str(key)] = payload
        return normalized

    def is_keyed(self) -> bool:
        return isinstance(self.annotations, Mapping)

    def payload_for(self, kind: ToolKind) -> Any:
        if not self.is_keyed():
            return None
        return self.annotations.get(kind.value)

    def has_annotations(self) -> bool:
        if not self.is_keyed():
            return False
        return any(payload is not None for payload in self.annotations.values())


def parse_geometry(kind: ToolKind, payload: Any) -> Optional[Geometry]:
    """Validate one kind's payload: null, or a list of measurement objects."""

    if payload is None:
        return None
    if not isinstance(payload, list):
        raise ValueError(f"{kind.value} data must be a list, got {type(payload).__name__}")
    geometry: Geometry = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise ValueError(f"{kind.value} item {index} must be an object, got {type(item).__name__}")
        geometry.append(dict(item))
    return geometry


class AnnotationDocument(BaseModel):
    """Ordered annotation records; order follows traversal at export time."""

    records: list[AnnotationRecord] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "AnnotationDocument":
        """Validate a decoded JSON document.

        Raises :class:`session.errors.ValidationError` when the payload is not
        a list of record objects each carrying a SOP instance UID.
        """

        if not isinstance(payload, list):
            raise ValidationError(
                f"Annotation document must be a list of records, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate({"records": payload})
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()[:5]
            )
            raise ValidationError(f"Malformed annotation document ({problems})") from exc

    def to_payload(self) -> list[dict[str, Any]]:
        return [record.model_dump(by_alias=True) for record in self.records]

    def identity_map(self) -> dict[str, AnnotationRecord]:
        """Map SOP instance UID to record; later duplicates win."""

        mapping: dict[str, AnnotationRecord] = {}
        for record in self.records:
            mapping[record.sop_instance_uid] = record
        return mapping

    def __len__(self) -> int:
        return len(self.records)
