"""Dataclasses for the Study -> Series -> Image hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


def ordering_key(value: Optional[int]) -> tuple[int, int]:
    """Sort key that places missing numbers after every numbered item."""

    if value is None:
        return (1, 0)
    return (0, value)


@dataclass(frozen=True)
class Frame:
    """One fetched imaging unit.

    ``image_identity`` is the store key used for lookups and eviction;
    ``sop_instance_uid`` is the identity annotations are correlated by and
    survives a re-fetch under a different store key.
    """

    image_identity: str
    study_id: str
    series_id: str
    sop_instance_uid: str
    series_number: Optional[int] = None
    instance_number: Optional[int] = None
    study_description: Optional[str] = None
    series_description: Optional[str] = None
    modality: Optional[str] = None


@dataclass
class Series:
    """Frames sharing a SeriesInstanceUID, kept sorted by instance number.

    Precondition: callers do not absorb two frames with the same
    ``sop_instance_uid`` into one series; duplicates are kept as-is.
    """

    series_id: str
    study_id: str
    series_number: Optional[int] = None
    study_description: Optional[str] = None
    series_description: Optional[str] = None
    images: list[Frame] = field(default_factory=list)

    @classmethod
    def from_frame(cls, frame: Frame) -> "Series":
        return cls(
            series_id=frame.series_id,
            study_id=frame.study_id,
            series_number=frame.series_number,
            study_description=frame.study_description,
            series_description=frame.series_description,
            images=[frame],
        )

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def sort_key(self) -> tuple[int, int]:
        return ordering_key(self.series_number)

    def add(self, frame: Frame) -> None:
        # list.sort is stable, so equal instance numbers keep arrival order
        self.images.append(frame)
        self.images.sort(key=lambda item: ordering_key(item.instance_number))
