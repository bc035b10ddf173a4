"""Traversal position over the series list and stepping primitives."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from series.aggregator import SeriesAggregator
from series.models import Frame, Series

from .viewport import Viewport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraversalPosition:
    series_index: int = 0
    image_index: int = 0


class TraversalCursor:
    """Current ``(series, image)`` coordinate, mirrored onto the viewport.

    The image index is owned by the viewport; the cursor only records which
    series was last pushed to it.
    """

    def __init__(self, aggregator: SeriesAggregator, viewport: Viewport) -> None:
        self._aggregator = aggregator
        self._viewport = viewport
        self.current_series_index = 0

    @property
    def current_image_index(self) -> int:
        if self.current_series is None:
            return 0
        return self._viewport.current_index

    @property
    def current_series(self) -> Optional[Series]:
        if not 0 <= self.current_series_index < self._aggregator.series_count:
            return None
        return self._aggregator.get(self.current_series_index)

    @property
    def image_count(self) -> int:
        """Number of images in the current series."""

        series = self.current_series
        return series.image_count if series is not None else 0

    @property
    def current_frame(self) -> Optional[Frame]:
        series = self.current_series
        if series is None or not series.images:
            return None
        return series.images[self.current_image_index]

    def select_series(self, index: int) -> Series:
        if not 0 <= index < self._aggregator.series_count:
            raise IndexError(f"Series index {index} out of range for {self._aggregator.series_count} series")
        series = self._aggregator.get(index)
        self.current_series_index = index
        self._viewport.select_series(series.images)
        return series

    def seek(self, image_index: int) -> None:
        """Display *image_index* of the current series directly."""

        count = self.image_count
        if not 0 <= image_index < count:
            raise IndexError(f"Image index {image_index} out of range for {count} images")
        if self._viewport.current_index != image_index:
            self._viewport.display_image(image_index)

    def step_forward(self) -> bool:
        index = self.current_image_index
        if index + 1 >= self.image_count:
            return False
        self._viewport.display_image(index + 1)
        return True

    def step_backward(self) -> bool:
        index = self.current_image_index
        if index <= 0:
            return False
        self._viewport.display_image(index - 1)
        return True

    def series_inserted(self, index: int) -> None:
        """Keep naming the displayed series after a new one lands at *index*."""

        if self._aggregator.series_count > 1 and index <= self.current_series_index:
            self.current_series_index += 1

    def reselect(self, keep: Optional[Frame] = None) -> None:
        """Re-push the current series, staying on *keep* when it is still listed."""

        series = self.select_series(self.current_series_index)
        if keep is not None and keep in series.images:
            self.seek(series.images.index(keep))

    def redisplay(self) -> None:
        """Re-render the current image, e.g. after tool state was cleared."""

        if self.image_count:
            self._viewport.display_image(self.current_image_index)

    def save_state(self) -> TraversalPosition:
        return TraversalPosition(self.current_series_index, self.current_image_index)

    def restore_state(self, position: TraversalPosition) -> None:
        if self._aggregator.series_count == 0:
            self.current_series_index = 0
            return
        self.select_series(position.series_index)
        self.seek(position.image_index)
        logger.debug(
            "Restored traversal position series=%d image=%d",
            position.series_index,
            position.image_index,
        )

    def reset(self) -> None:
        self.current_series_index = 0
        self._viewport.reset()
