"""Tool mode state machine and annotation undo/reset."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from session.errors import EmptyStateError

if TYPE_CHECKING:
    from .cursor import TraversalCursor
    from .viewport import Viewport


logger = logging.getLogger(__name__)


class ToolMode(str, Enum):
    """The single active interaction mode of the viewer."""

    NONE = "none"
    PAN = "pan"
    ZOOM = "zoom"
    WINDOWING = "windowing"
    SCROLL = "scroll"
    LENGTH = "length"
    RECTANGLE = "rectangle"


class ToolKind(str, Enum):
    """Kinds of annotation geometry a viewport can hold per image."""

    LENGTH = "length"
    RECTANGLE = "rectangle"
    ANGLE = "angle"
    PROBE = "probe"
    ELLIPSE = "ellipse"


DEFAULT_TRACKED_TOOLS: tuple[ToolKind, ...] = (ToolKind.LENGTH, ToolKind.RECTANGLE)

_ANNOTATING_MODES: dict[ToolMode, ToolKind] = {
    ToolMode.LENGTH: ToolKind.LENGTH,
    ToolMode.RECTANGLE: ToolKind.RECTANGLE,
}


class ToolController:
    """Holds the active tool mode and the history of annotation tools used.

    Undo is coarse-grained: it removes every annotation of the most recently
    activated kind across the entire loaded data set, not a single drawing.
    """

    def __init__(
        self,
        viewport: "Viewport",
        cursor: "TraversalCursor",
        image_count: Callable[[], int],
    ) -> None:
        self._viewport = viewport
        self._cursor = cursor
        self._image_count = image_count
        self._mode = ToolMode.NONE
        self._history: list[ToolKind] = []

    @property
    def mode(self) -> ToolMode:
        return self._mode

    @property
    def history(self) -> tuple[ToolKind, ...]:
        return tuple(self._history)

    def activate(self, mode: ToolMode) -> ToolMode:
        if self._image_count() <= 0:
            raise EmptyStateError(f"activate {mode.value}")
        kind = _ANNOTATING_MODES.get(mode)
        if kind is not None:
            self._history.append(kind)
        if mode != self._mode:
            logger.debug("Tool mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        return mode

    def reset(self) -> ToolMode:
        """Return to panning, the default interaction."""

        return self.activate(ToolMode.PAN)

    def undo(self) -> Optional[ToolKind]:
        """Clear every annotation of the last activated kind.

        Returns the cleared kind, or None when there is nothing to undo.
        """

        if not self._history:
            return None
        kind = self._history.pop()
        self._viewport.clear_annotations(kind)
        self._cursor.redisplay()
        logger.info("Undo removed all %s annotations", kind.value)
        return kind

    def clear_all_annotations(self) -> None:
        if self._image_count() <= 0:
            raise EmptyStateError("clear annotations")
        for kind in ToolKind:
            self._viewport.clear_annotations(kind)
        self._cursor.redisplay()
        logger.info("Cleared all annotations")

    def forget(self) -> None:
        """Drop mode and history, used when the loaded data set is replaced."""

        self._mode = ToolMode.NONE
        self._history.clear()
