"""Incremental classification of frames into an ordered series list."""

from __future__ import annotations

import bisect
import logging
from typing import Iterator, Optional

from .models import Frame, Series


logger = logging.getLogger(__name__)


class SeriesAggregator:
    """Maintain the study-level series list as frames arrive in any order.

    Series are ordered by ``series_number`` (missing numbers last); ties keep
    the order in which each series' first frame arrived.
    """

    def __init__(self) -> None:
        self._series: list[Series] = []
        self._keys: list[tuple[int, int]] = []
        self._by_id: dict[str, Series] = {}

    def absorb(self, frame: Frame) -> int:
        """Classify *frame* and return the index of the series holding it."""

        existing = self._by_id.get(frame.series_id)
        if existing is not None:
            existing.add(frame)
            return self._series.index(existing)

        series = Series.from_frame(frame)
        key = series.sort_key
        # bisect_right inserts after equal keys: stable on ties
        index = bisect.bisect_right(self._keys, key)
        self._keys.insert(index, key)
        self._series.insert(index, series)
        self._by_id[series.series_id] = series
        logger.debug(
            "New series %s (number=%s) at index %d of %d",
            series.series_id,
            series.series_number,
            index,
            len(self._series),
        )
        return index

    def reset(self) -> None:
        self._series.clear()
        self._keys.clear()
        self._by_id.clear()

    @property
    def series(self) -> list[Series]:
        return self._series

    @property
    def series_count(self) -> int:
        return len(self._series)

    @property
    def image_count(self) -> int:
        return sum(item.image_count for item in self._series)

    def get(self, index: int) -> Series:
        return self._series[index]

    def index_of(self, series_id: str) -> Optional[int]:
        series = self._by_id.get(series_id)
        if series is None:
            return None
        return self._series.index(series)

    def iter_frames(self) -> Iterator[tuple[int, int, Frame]]:
        """Yield ``(series_index, image_index, frame)`` in traversal order."""

        for series_index, series in enumerate(self._series):
            for image_index, frame in enumerate(series.images):
                yield series_index, image_index, frame

    def study_ids(self) -> list[str]:
        seen: list[str] = []
        for series in self._series:
            if series.study_id not in seen:
                seen.append(series.study_id)
        return seen
