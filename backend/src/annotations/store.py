"""Export and import of per-image annotations across the whole data set."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from series.aggregator import SeriesAggregator
from session.errors import BusyError, EmptyStateError, PartialImportWarning
from viewer.cursor import TraversalCursor
from viewer.tools import DEFAULT_TRACKED_TOOLS, ToolKind
from viewer.viewport import Geometry, Viewport

from .models import AnnotationDocument, AnnotationRecord, parse_geometry


logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    records_received: int
    records_applied: int = 0
    images_updated: int = 0
    unmatched_uids: list[str] = field(default_factory=list)
    warnings: list[PartialImportWarning] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


class AnnotationStore:
    """Walks every series and image to read or re-attach tool state.

    The traversal position is saved before a walk and restored by direct seek
    afterwards. Walks refuse to run while frames are still loading.
    """

    def __init__(
        self,
        aggregator: SeriesAggregator,
        cursor: TraversalCursor,
        viewport: Viewport,
        *,
        tracked_tools: Iterable[ToolKind] = DEFAULT_TRACKED_TOOLS,
        is_loading: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._aggregator = aggregator
        self._cursor = cursor
        self._viewport = viewport
        self.tracked_tools: tuple[ToolKind, ...] = tuple(tracked_tools)
        self._is_loading = is_loading or (lambda: False)

    def export_all(self) -> AnnotationDocument:
        self._ensure_idle("export annotations")
        if self._aggregator.image_count == 0:
            return AnnotationDocument()

        records: list[AnnotationRecord] = []
        saved = self._cursor.save_state()
        try:
            for series_index, series in enumerate(self._aggregator.series):
                self._cursor.select_series(series_index)
                for image_index, frame in enumerate(series.images):
                    self._cursor.seek(image_index)
                    payload: dict[str, Optional[Geometry]] = {
                        kind.value: self._viewport.get_annotations(frame.image_identity, kind)
                        for kind in self.tracked_tools
                    }
                    if all(data is None for data in payload.values()):
                        continue
                    records.append(
                        AnnotationRecord(
                            study_id=frame.study_id,
                            series_id=frame.series_id,
                            sop_instance_uid=frame.sop_instance_uid,
                            annotations=payload,
                        )
                    )
        finally:
            self._cursor.restore_state(saved)

        logger.info(
            "Exported annotations for %d of %d images across %d series",
            len(records),
            self._aggregator.image_count,
            self._aggregator.series_count,
        )
        return AnnotationDocument(records=records)

    def import_all(self, document: AnnotationDocument | list[Any]) -> ImportResult:
        """Re-attach annotations by SOP instance UID.

        Images absent from the document are left untouched. Records whose
        geometry cannot be parsed are skipped with a warning.
        """

        self._ensure_idle("import annotations")
        if not isinstance(document, AnnotationDocument):
            document = AnnotationDocument.from_payload(document)
        if self._aggregator.image_count == 0:
            raise EmptyStateError("import annotations")

        result = ImportResult(records_received=len(document))
        attachments = self._prepare(document.identity_map(), result)
        matched: set[str] = set()

        saved = self._cursor.save_state()
        try:
            for series_index, series in enumerate(self._aggregator.series):
                self._cursor.select_series(series_index)
                for image_index, frame in enumerate(series.images):
                    geometry_by_kind = attachments.get(frame.sop_instance_uid)
                    if geometry_by_kind is None:
                        continue
                    self._cursor.seek(image_index)
                    for kind, geometry in geometry_by_kind.items():
                        self._viewport.set_annotations(frame.image_identity, kind, geometry)
                    matched.add(frame.sop_instance_uid)
                    if geometry_by_kind:
                        result.images_updated += 1
        finally:
            self._cursor.restore_state(saved)
            self._viewport.refresh()

        result.records_applied = len(matched)
        result.unmatched_uids = [uid for uid in attachments if uid not in matched]
        logger.info(
            "Imported annotations: received=%d applied=%d images_updated=%d unmatched=%d skipped=%d",
            result.records_received,
            result.records_applied,
            result.images_updated,
            len(result.unmatched_uids),
            len(result.warnings),
        )
        return result

    def _prepare(
        self,
        identity_map: dict[str, AnnotationRecord],
        result: ImportResult,
    ) -> dict[str, dict[ToolKind, Geometry]]:
        attachments: dict[str, dict[ToolKind, Geometry]] = {}
        tracked = {kind.value for kind in self.tracked_tools}
        for uid, record in identity_map.items():
            geometry_by_kind: dict[ToolKind, Geometry] = {}
            try:
                if not record.is_keyed():
                    raise ValueError(
                        f"annotations must be an object keyed by tool kind, got {type(record.annotations).__name__}"
                    )
                ignored = sorted(
                    key for key, payload in record.annotations.items() if key not in tracked and payload is not None
                )
                if ignored:
                    logger.warning("Ignoring untracked annotation kinds %s for %s", ", ".join(ignored), uid)
                for kind in self.tracked_tools:
                    geometry = parse_geometry(kind, record.payload_for(kind))
                    if geometry:
                        geometry_by_kind[kind] = geometry
            except ValueError as exc:
                warning = PartialImportWarning(uid, str(exc))
                result.warnings.append(warning)
                logger.warning("%s", warning)
                continue
            attachments[uid] = geometry_by_kind
        return attachments

    def _ensure_idle(self, operation: str) -> None:
        if self._is_loading():
            raise BusyError(operation)
