"""
Live mode: periodic fetch -> rolling window merge -> full pipeline rerun.

LiveSession drives a fetch function on a fixed interval. Each tick fetches a
batch, merges it into a RollingWindow (dedupe by id, keep the most recent
window_cap transactions) and reruns the pipeline over the whole window. A
failed fetch leaves the window and the last result untouched and reports a
Failed ingesting stage; the timer keeps running. stop() is idempotent; once it
returns no further tick starts, and a fetch still in flight completes in the
background with its result discarded.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Iterator

from chaintrace.analysis_engine.models import AnalysisResult, SourceType, Transaction
from chaintrace.chaintrace_logging import get_logger
from chaintrace.pipeline.orchestrator import ROLLING_WINDOW_CAP, AnalysisPipeline

logger = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL_SEC = 10.0
MIN_REFRESH_INTERVAL_SEC = 1.0

FetchFn = Callable[[], Awaitable[Iterable[Transaction]]]
ResultCallback = Callable[[AnalysisResult], None]


@dataclass(frozen=True)
class WindowUpdate:
    added: int
    evicted: int
    size: int


class RollingWindow:
    """Bounded, id-deduplicated transaction window in arrival order."""

    def __init__(self, cap: int = ROLLING_WINDOW_CAP) -> None:
        if cap < 1:
            raise ValueError("window cap must be >= 1")
        self.cap = int(cap)
        self._items: deque[Transaction] = deque()
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._items)

    def __contains__(self, tx_id: object) -> bool:
        return tx_id in self._ids

    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._items)

    def merge(self, transactions: Iterable[Transaction]) -> WindowUpdate:
        """
        Append transactions whose id is not already in the window, then evict
        the oldest until at most cap remain.
        """
        added = 0
        for tx in transactions:
            if tx.id in self._ids:
                continue
            self._items.append(tx)
            self._ids.add(tx.id)
            added += 1
        evicted = 0
        while len(self._items) > self.cap:
            old = self._items.popleft()
            self._ids.discard(old.id)
            evicted += 1
        return WindowUpdate(added=added, evicted=evicted, size=len(self._items))

    def clear(self) -> None:
        self._items.clear()
        self._ids.clear()


def _consume_exception(task: asyncio.Future) -> None:
    # Fetches abandoned by stop() may fail after nobody awaits them.
    if not task.cancelled():
        task.exception()


class LiveSession:
    """
    Periodic live analysis over a rolling window.

    fetch: async callable returning the latest batch of transactions.
    sleep / clock: injectable for tests (defaults asyncio.sleep, time.monotonic).
    on_result: callback invoked with each new AnalysisResult.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        pipeline: AnalysisPipeline | None = None,
        source_type: SourceType = SourceType.LIVE_GLOBAL,
        interval_sec: float = DEFAULT_REFRESH_INTERVAL_SEC,
        window: RollingWindow | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_result: ResultCallback | None = None,
    ) -> None:
        self._fetch = fetch
        self.pipeline = pipeline or AnalysisPipeline()
        self.source_type = source_type
        self.interval_sec = max(MIN_REFRESH_INTERVAL_SEC, float(interval_sec))
        self._window = window or RollingWindow(self.pipeline.config.window_cap)
        self._sleep = sleep
        self._clock = clock
        self._callbacks: list[ResultCallback] = [on_result] if on_result else []
        self._result: AnalysisResult | None = None
        self._task: asyncio.Task | None = None
        self._generation = 0
        self.ticks = 0
        self.failures = 0

    @property
    def result(self) -> AnalysisResult | None:
        """Latest successful result, or None before the first one."""
        return self._result

    @property
    def window(self) -> RollingWindow:
        return self._window

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_result_callback(self, callback: ResultCallback) -> None:
        self._callbacks.append(callback)

    async def tick(self) -> AnalysisResult | None:
        """
        One fetch -> merge -> rerun cycle.

        Returns the new result, or None when the fetch failed or the session
        was stopped while the fetch was in flight.
        """
        generation = self._generation
        self.ticks += 1
        self.pipeline.start_ingest()
        fetch_task = asyncio.ensure_future(self._fetch())
        fetch_task.add_done_callback(_consume_exception)
        try:
            batch = list(await asyncio.shield(fetch_task))
        except asyncio.CancelledError:
            self.pipeline.cancel_ingest()
            raise
        except Exception as e:
            if generation != self._generation:
                self.pipeline.cancel_ingest("Session stopped; fetch failed")
                return None
            self.failures += 1
            logger.warning("live_fetch_failed", tick=self.ticks, error=str(e))
            self.pipeline.fail_ingest(e)
            return None

        if generation != self._generation:
            logger.info("live_tick_discarded", tick=self.ticks, fetched=len(batch))
            self.pipeline.cancel_ingest("Session stopped; fetched batch discarded")
            return None

        update = self._window.merge(batch)
        self.pipeline.finish_ingest(
            update.size,
            f"Fetched {len(batch)}, added {update.added}, evicted {update.evicted}",
        )
        result = self.pipeline.analyze(self._window.transactions(), self.source_type)
        self._result = result
        logger.info(
            "live_tick_done",
            tick=self.ticks,
            fetched=len(batch),
            added=update.added,
            evicted=update.evicted,
            window_size=update.size,
            suspicious_count=result.suspicious_count,
        )
        for callback in list(self._callbacks):
            try:
                callback(result)
            except Exception as e:
                logger.warning("live_result_callback_failed", error=str(e))
        return result

    async def _run_loop(self, generation: int, max_ticks: int | None) -> None:
        next_deadline = self._clock()
        done = 0
        try:
            while generation == self._generation:
                await self.tick()
                done += 1
                if max_ticks is not None and done >= max_ticks:
                    break
                next_deadline += self.interval_sec
                now = self._clock()
                if next_deadline < now:
                    # fell behind; resync instead of bursting
                    next_deadline = now
                await self._sleep(next_deadline - now)
        except asyncio.CancelledError:
            logger.info("live_session_cancelled", ticks=self.ticks)
            raise
        finally:
            if generation == self._generation:
                self._task = None

    def start(self, *, max_ticks: int | None = None) -> asyncio.Task:
        """
        Start the tick loop on the running event loop. The first tick runs
        immediately. Raises RuntimeError if already running.
        """
        if self.running:
            raise RuntimeError("live session already running")
        self._generation += 1
        self._task = asyncio.create_task(self._run_loop(self._generation, max_ticks))
        logger.info(
            "live_session_started",
            interval_sec=self.interval_sec,
            window_cap=self._window.cap,
            source_type=self.source_type.value,
        )
        return self._task

    def stop(self) -> None:
        """Stop the loop. Safe to call repeatedly or before start()."""
        task, self._task = self._task, None
        self._generation += 1
        if task is not None and not task.done():
            task.cancel()
            logger.info("live_session_stopped", ticks=self.ticks, failures=self.failures)

    async def aclose(self) -> None:
        """stop() and wait for the loop task to finish; absorbs its cancellation."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
