"""Viewer session: ingestion, hierarchy, traversal, tools and annotations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from annotations.io import load_document, save_document
from annotations.models import AnnotationDocument
from annotations.store import AnnotationStore, ImportResult
from ingest.config import ViewerSettings, get_settings
from ingest.core import IngestionController, IngestionResult, ProgressCallback
from ingest.progress import IngestionProgress
from ingest.store import FrameStore
from series.aggregator import SeriesAggregator
from series.models import Frame
from viewer.cursor import TraversalCursor
from viewer.tools import ToolController, ToolKind
from viewer.viewport import MemoryViewport, Viewport

from .errors import BusyError


logger = logging.getLogger(__name__)


class ViewerSession:
    """Wires the components around one frame store and one viewport.

    All mutation happens on the event loop thread that drives :meth:`load`.
    """

    def __init__(
        self,
        store: FrameStore,
        viewport: Optional[Viewport] = None,
        settings: Optional[ViewerSettings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.viewport: Viewport = viewport if viewport is not None else MemoryViewport()
        self.aggregator = SeriesAggregator()
        self.cursor = TraversalCursor(self.aggregator, self.viewport)
        self.tools = ToolController(self.viewport, self.cursor, lambda: self.aggregator.image_count)
        self.controller = IngestionController(
            store,
            self._absorb,
            config=self.settings.ingestion,
            on_reset=self._reset_hierarchy,
        )
        self.annotations = AnnotationStore(
            self.aggregator,
            self.cursor,
            self.viewport,
            tracked_tools=self.settings.tracked_tools,
            is_loading=lambda: self.controller.loading,
        )

    @property
    def loading(self) -> bool:
        return self.controller.loading

    @property
    def image_count(self) -> int:
        return self.aggregator.image_count

    def progress(self) -> IngestionProgress:
        return self.controller.progress()

    async def load(
        self,
        identities: Sequence[str],
        limit: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        result = await self.controller.load(identities, limit=limit, progress=progress)
        if not result.superseded and self.aggregator.image_count > 0:
            self.tools.reset()
        return result

    def export_annotations(self) -> AnnotationDocument:
        return self.annotations.export_all()

    def import_annotations(self, document: AnnotationDocument | list[Any]) -> ImportResult:
        return self.annotations.import_all(document)

    def save_annotations(self, path: Path) -> Path:
        return save_document(self.export_annotations(), path)

    def load_annotations(self, path: Path) -> ImportResult:
        if self.loading:
            raise BusyError("import annotations")
        return self.import_annotations(load_document(path))

    def undo_annotation(self) -> Optional[ToolKind]:
        if self.loading:
            raise BusyError("undo annotations")
        return self.tools.undo()

    def clear_all_annotations(self) -> None:
        if self.loading:
            raise BusyError("clear annotations")
        self.tools.clear_all_annotations()

    def clear(self) -> None:
        """Abandon any load and drop every frame, series and annotation."""

        self.controller.cancel()
        self.store.clear()
        self._reset_hierarchy()
        logger.info("Viewer session cleared")

    def _reset_hierarchy(self) -> None:
        self.aggregator.reset()
        self.cursor.reset()
        self.tools.forget()

    def _absorb(self, frame: Frame) -> None:
        series_before = self.aggregator.series_count
        shown = self.cursor.current_frame
        index = self.aggregator.absorb(frame)
        if self.aggregator.series_count > series_before:
            self.cursor.series_inserted(index)
        if index == self.cursor.current_series_index:
            # keep the displayed stack in step with the series it shows
            self.cursor.reselect(keep=shown)
