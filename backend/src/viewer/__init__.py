"""Traversal, tool modes and the render surface contract."""

from .tools import DEFAULT_TRACKED_TOOLS, ToolController, ToolKind, ToolMode
from .viewport import Geometry, MemoryViewport, Viewport
from .cursor import TraversalCursor, TraversalPosition

__all__ = [
    "DEFAULT_TRACKED_TOOLS",
    "Geometry",
    "MemoryViewport",
    "ToolController",
    "ToolKind",
    "ToolMode",
    "TraversalCursor",
    "TraversalPosition",
    "Viewport",
]
