"""Render surface and tool-state contract consumed by the viewer core.

Pixel rendering and mouse bindings live outside this package. The core only
needs to push a sorted stack of frames, move the displayed index, and read or
write per-image annotation geometry.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from series.models import Frame

from .tools import ToolKind


logger = logging.getLogger(__name__)

# One tool kind's annotations on one image: a list of measurement objects.
Geometry = list[dict[str, Any]]


@runtime_checkable
class Viewport(Protocol):
    @property
    def current_index(self) -> int: ...

    def select_series(self, images: Sequence[Frame]) -> None: ...

    def display_image(self, index: int) -> None: ...

    def get_annotations(self, image_identity: str, kind: ToolKind) -> Optional[Geometry]: ...

    def set_annotations(self, image_identity: str, kind: ToolKind, geometry: Geometry) -> None: ...

    def clear_annotations(self, kind: ToolKind) -> None: ...

    def refresh(self) -> None: ...

    def reset(self) -> None: ...


class MemoryViewport:
    """Headless viewport keeping tool state in dictionaries.

    Used by the CLI and tests, and as a reference for real render adapters.
    Geometry is deep-copied on the way in and out so callers never share
    mutable state with the viewport.
    """

    def __init__(self) -> None:
        self.images: list[Frame] = []
        self._current_index = 0
        self._tool_state: dict[str, dict[ToolKind, Geometry]] = {}
        self.refresh_count = 0
        self.select_count = 0

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_image(self) -> Optional[Frame]:
        if not self.images:
            return None
        return self.images[self._current_index]

    def select_series(self, images: Sequence[Frame]) -> None:
        self.images = list(images)
        self._current_index = 0
        self.select_count += 1

    def display_image(self, index: int) -> None:
        if not 0 <= index < len(self.images):
            raise IndexError(f"Image index {index} out of range for {len(self.images)} images")
        self._current_index = index

    def get_annotations(self, image_identity: str, kind: ToolKind) -> Optional[Geometry]:
        data = self._tool_state.get(image_identity, {}).get(kind)
        if not data:
            return None
        return copy.deepcopy(data)

    def set_annotations(self, image_identity: str, kind: ToolKind, geometry: Geometry) -> None:
        self._tool_state.setdefault(image_identity, {})[kind] = copy.deepcopy(list(geometry))

    def add_annotation(self, image_identity: str, kind: ToolKind, measurement: dict[str, Any]) -> None:
        """Append one measurement, as a drawing tool would."""

        self._tool_state.setdefault(image_identity, {}).setdefault(kind, []).append(copy.deepcopy(measurement))

    def clear_annotations(self, kind: ToolKind) -> None:
        cleared = 0
        for per_image in self._tool_state.values():
            if per_image.pop(kind, None) is not None:
                cleared += 1
        logger.debug("Cleared %s annotations on %d images", kind.value, cleared)

    def refresh(self) -> None:
        self.refresh_count += 1

    def reset(self) -> None:
        self.images = []
        self._current_index = 0
        self._tool_state.clear()

    def snapshot(self) -> dict[str, dict[ToolKind, Geometry]]:
        """Return a deep copy of all non-empty tool state."""

        return {
            identity: {kind: copy.deepcopy(data) for kind, data in per_image.items() if data}
            for identity, per_image in self._tool_state.items()
            if any(per_image.values())
        }
