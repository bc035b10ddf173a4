"""Bounded concurrent frame ingestion."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from series.models import Frame
from session.errors import FetchError

from .config import IngestionConfig
from .progress import IngestionProgress
from .store import FrameStore


logger = logging.getLogger(__name__)


FrameCallback = Callable[[Frame], None]
ProgressCallback = Callable[[int, int], Awaitable[None] | None]


@dataclass(frozen=True)
class IngestionFailure:
    identity: str
    message: str


@dataclass
class IngestionResult:
    generation: int
    total_identities: int
    target_count: int
    loaded_count: int
    failures: list[IngestionFailure] = field(default_factory=list)
    superseded: bool = False

    @property
    def failed_identities(self) -> list[str]:
        return [failure.identity for failure in self.failures]

    @property
    def settled_count(self) -> int:
        return self.loaded_count + len(self.failures)


async def _maybe_await(result: Awaitable[None] | None) -> None:
    if inspect.isawaitable(result):
        await result


def _generation_tag(generation: int) -> str:
    return f"load={generation}"


class IngestionController:
    """Fetch frames concurrently and hand each to ``on_frame`` as it lands.

    Completions arrive in any order. Every call to :meth:`load` starts a new
    generation; completions that belong to an older generation are dropped
    without touching counters or the hierarchy.
    """

    def __init__(
        self,
        store: FrameStore,
        on_frame: FrameCallback,
        *,
        config: Optional[IngestionConfig] = None,
        on_reset: Optional[Callable[[], None]] = None,
    ) -> None:
        self._store = store
        self._on_frame = on_frame
        self._on_reset = on_reset
        self.config = config or IngestionConfig()

        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._total = 0
        self._target = 0
        self._loaded = 0
        self._failures: list[IngestionFailure] = []
        self._loading = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def loaded_count(self) -> int:
        return self._loaded

    @property
    def target_count(self) -> int:
        return self._target

    @property
    def failures(self) -> list[IngestionFailure]:
        return list(self._failures)

    @property
    def images_remaining(self) -> int:
        return self.progress().images_remaining

    def progress(self) -> IngestionProgress:
        return IngestionProgress(
            generation=self._generation,
            total_identities=self._total,
            target_count=self._target,
            loaded_count=self._loaded,
            failed_count=len(self._failures),
            loading=self._loading,
        )

    def target_for(self, total: int, limit: Optional[int] = None) -> int:
        resolved = self.config.resolve_limit(limit)
        if resolved is None:
            return total
        return min(resolved, total)

    def cancel(self) -> None:
        """Abandon the in-flight load, if any, and zero the counters."""

        self._generation += 1
        self._abandon_tasks()
        self._loading = False
        self._total = self._target = self._loaded = 0
        self._failures = []

    async def load(
        self,
        identities: Sequence[str],
        limit: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Reset downstream state and fetch up to ``limit`` identities."""

        identities = list(identities)
        self._abandon_tasks()
        self._generation += 1
        generation = self._generation
        tag = _generation_tag(generation)

        self._store.clear()
        if self._on_reset is not None:
            self._on_reset()

        target = self.target_for(len(identities), limit)
        self._total = len(identities)
        self._target = target
        self._loaded = 0
        self._failures = []
        self._loading = target > 0

        logger.info(
            "Ingestion start %s identities=%d target=%d concurrency=%d",
            tag,
            len(identities),
            target,
            self.config.max_concurrent_fetches,
        )
        started = time.perf_counter()

        if progress:
            await _maybe_await(progress(0, target))

        semaphore = asyncio.Semaphore(self.config.max_concurrent_fetches)
        tasks = [
            asyncio.create_task(
                self._fetch_one(generation, identity, semaphore, progress),
                name=f"fetch-{generation}-{index}",
            )
            for index, identity in enumerate(identities[:target])
        ]
        self._tasks = set(tasks)

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        superseded = generation != self._generation
        if not superseded:
            self._tasks = set()
            self._loading = False
            errors = [
                outcome
                for outcome in outcomes
                if isinstance(outcome, BaseException) and not isinstance(outcome, asyncio.CancelledError)
            ]
            if errors:
                raise errors[0]
            logger.info(
                "Ingestion finished %s loaded=%d failed=%d elapsed=%.2fs",
                tag,
                self._loaded,
                len(self._failures),
                time.perf_counter() - started,
            )
            return IngestionResult(
                generation=generation,
                total_identities=len(identities),
                target_count=target,
                loaded_count=self._loaded,
                failures=list(self._failures),
            )

        logger.info("Ingestion superseded %s", tag)
        return IngestionResult(
            generation=generation,
            total_identities=len(identities),
            target_count=target,
            loaded_count=0,
            superseded=True,
        )

    async def _fetch_one(
        self,
        generation: int,
        identity: str,
        semaphore: asyncio.Semaphore,
        progress: Optional[ProgressCallback],
    ) -> None:
        frame: Optional[Frame] = None
        error: Optional[FetchError] = None
        async with semaphore:
            if generation != self._generation:
                return
            try:
                frame = await self._store.fetch(identity)
            except FetchError as exc:
                error = exc
            except Exception as exc:
                error = FetchError(identity, f"{type(exc).__name__}: {exc}")
                error.__cause__ = exc

        if generation != self._generation:
            logger.debug("Discarding stale completion %s identity=%s", _generation_tag(generation), identity)
            return

        if error is None:
            # aggregate before counting
            self._on_frame(frame)
            self._loaded += 1
        else:
            self._failures.append(IngestionFailure(identity=identity, message=str(error)))
            logger.warning("Frame fetch failed %s: %s", _generation_tag(generation), error)

        settled = self._loaded + len(self._failures)
        if settled >= self._target:
            self._loading = False
        if progress:
            await _maybe_await(progress(settled, self._target))

    def _abandon_tasks(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelled %d in-flight fetches", len(pending))
        self._tasks = set()
