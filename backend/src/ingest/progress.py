"""Progress snapshots and percentage reporting for frame ingestion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class IngestionProgress:
    generation: int
    total_identities: int
    target_count: int
    loaded_count: int
    failed_count: int
    loading: bool

    @property
    def settled_count(self) -> int:
        return self.loaded_count + self.failed_count

    @property
    def images_remaining(self) -> int:
        """Dispatched frames that have not settled yet."""

        return max(0, self.target_count - self.settled_count)

    @property
    def unrequested_count(self) -> int:
        """Identities beyond the load limit that were never dispatched."""

        return max(0, self.total_identities - self.target_count)

    @property
    def percent(self) -> int:
        if self.target_count <= 0:
            return 100
        return int(self.settled_count * 100 / self.target_count)


class ProgressTracker:
    """Convert ``(settled, target)`` callbacks into percentage updates.

    Emits only when the integer percentage changes and holds at 99 until the
    final frame settles, so a 100 always means the load is finished.
    """

    def __init__(self, send: Callable[[int], None]) -> None:
        self._send = send
        self._last_percent: Optional[int] = None

    @property
    def last_percent(self) -> Optional[int]:
        return self._last_percent

    def update(self, settled: int, target: int) -> None:
        if target <= 0:
            percent = 100
        else:
            completed = min(max(settled, 0), target)
            percent_raw = int((completed * 100) / target)
            if completed < target:
                percent = min(max(percent_raw, 0), 99)
            else:
                percent = 100

        if self._last_percent is not None and percent < self._last_percent:
            return
        if percent != self._last_percent:
            self._send(percent)
            self._last_percent = percent

    def finalize(self) -> None:
        if self._last_percent != 100:
            self._send(100)
            self._last_percent = 100
