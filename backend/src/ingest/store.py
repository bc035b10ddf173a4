"""Frame stores: the keyed, asynchronous source of frames."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Mapping, Optional, Protocol, runtime_checkable

import pydicom
from pydicom.errors import InvalidDicomError

from series.models import Frame
from session.errors import FetchError

from .dicom_mappings import FRAME_KEYWORDS, frame_from_dataset


logger = logging.getLogger(__name__)

_FILE_SCHEME = "dicomfile:"


@runtime_checkable
class FrameStore(Protocol):
    async def fetch(self, identity: str) -> Frame: ...

    def evict(self, identity: str) -> None: ...

    def clear(self) -> None: ...


def identity_to_path(identity: str) -> Path:
    if identity.startswith(_FILE_SCHEME):
        identity = identity[len(_FILE_SCHEME):]
    return Path(identity)


def _read_frame(identity: str) -> Frame:
    path = identity_to_path(identity)
    try:
        dataset = pydicom.dcmread(
            str(path),
            stop_before_pixels=True,
            specific_tags=FRAME_KEYWORDS,
            force=True,
        )
    except (OSError, ValueError, InvalidDicomError) as exc:
        raise FetchError(identity, f"Unreadable DICOM file ({exc})") from exc
    return frame_from_dataset(identity, dataset)


class DicomFileStore:
    """Reads frame headers from DICOM files and caches them by identity.

    Parsing runs in the loop's default executor so concurrent fetches do not
    block the control thread.
    """

    def __init__(self) -> None:
        self._cache: dict[str, Frame] = {}

    async def fetch(self, identity: str) -> Frame:
        cached = self._cache.get(identity)
        if cached is not None:
            return cached
        loop = asyncio.get_running_loop()
        frame = await loop.run_in_executor(None, _read_frame, identity)
        self._cache[identity] = frame
        return frame

    def evict(self, identity: str) -> None:
        self._cache.pop(identity, None)

    def clear(self) -> None:
        if self._cache:
            logger.debug("Clearing %d cached frames", len(self._cache))
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class MemoryFrameStore:
    """Serves preloaded frames, optionally delayed or failing per identity."""

    def __init__(
        self,
        frames: Mapping[str, Frame],
        *,
        delays: Optional[Mapping[str, float]] = None,
        failures: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._frames = dict(frames)
        self._delays = dict(delays or {})
        self._failures = dict(failures or {})
        self.evicted: list[str] = []
        self.clear_count = 0
        self.fetch_count = 0
        self.in_flight = 0
        self.peak_in_flight = 0

    async def fetch(self, identity: str) -> Frame:
        self.fetch_count += 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            delay = self._delays.get(identity, 0.0)
            await asyncio.sleep(delay)
            if identity in self._failures:
                raise FetchError(identity, self._failures[identity])
            frame = self._frames.get(identity)
            if frame is None:
                raise FetchError(identity, "Unknown identity")
            return frame
        finally:
            self.in_flight -= 1

    def evict(self, identity: str) -> None:
        self.evicted.append(identity)

    def clear(self) -> None:
        self.clear_count += 1
