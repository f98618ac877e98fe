"""Per-origin debounce of search requests."""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from tracksearch.domain.models import DelayedSearch, SearchMode, SearchRequestId
from tracksearch.logging import logger

DEFAULT_QUIET_PERIOD_SECONDS = 0.2

Clock = Callable[[], float]
ExpiryHandler = Callable[[DelayedSearch], None]


class DebounceScheduler:
    """Delay searches until no new request for the same origin arrived for a quiet period.

    All deadlines live in one table keyed by origin and a single asyncio task
    sleeps until the earliest one. Rescheduling an origin replaces its query
    and restarts its quiet period; cancelling drops it. When a deadline
    passes the entry is removed first and then handed to ``on_expire``.

    Without a running event loop no task is started and the owner is
    expected to drive expiry through :meth:`fire_due`.
    """

    def __init__(
        self,
        on_expire: ExpiryHandler,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        if quiet_period < 0:
            raise ValueError("quiet_period must not be negative")
        self._on_expire = on_expire
        self._quiet_period = quiet_period
        self._clock = clock
        self._pending: dict[SearchRequestId, tuple[float, DelayedSearch]] = {}
        self._wakeup = asyncio.Event()
        self._runner: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def quiet_period(self) -> float:
        return self._quiet_period

    def __len__(self) -> int:
        return len(self._pending)

    def pending(self, origin: SearchRequestId) -> DelayedSearch | None:
        entry = self._pending.get(origin)
        return entry[1] if entry else None

    def schedule(self, origin: SearchRequestId, query: str, mode: SearchMode) -> None:
        if self._closed:
            raise RuntimeError("DebounceScheduler is closed")
        deadline = self._clock() + self._quiet_period
        replaced = self._pending.pop(origin, None) is not None
        self._pending[origin] = (deadline, DelayedSearch(origin=origin, query=query, mode=mode))
        logger.debug("search_debounced", origin=origin, replaced=replaced, deadline=deadline)
        self._wakeup.set()
        self._ensure_runner()

    def cancel(self, origin: SearchRequestId) -> bool:
        entry = self._pending.pop(origin, None)
        if entry is None:
            return False
        logger.debug("debounced_search_cancelled", origin=origin)
        self._wakeup.set()
        return True

    def next_deadline(self) -> float | None:
        if not self._pending:
            return None
        return min(deadline for deadline, _ in self._pending.values())

    def fire_due(self, now: float | None = None) -> list[DelayedSearch]:
        """Hand every expired entry to the expiry handler, earliest first."""

        now = self._clock() if now is None else now
        due = sorted(
            (entry for entry in self._pending.values() if entry[0] <= now),
            key=lambda entry: entry[0],
        )
        fired: list[DelayedSearch] = []
        for _, delayed in due:
            # The handler may have rescheduled or cancelled this origin already.
            current = self._pending.get(delayed.origin)
            if current is None or current[1] is not delayed:
                continue
            del self._pending[delayed.origin]
            fired.append(delayed)
            try:
                self._on_expire(delayed)
            except Exception:
                logger.exception("debounced_search_dispatch_failed", origin=delayed.origin)
        return fired

    async def aclose(self) -> None:
        self._closed = True
        self._pending.clear()
        runner, self._runner = self._runner, None
        if runner is not None and not runner.done():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass

    def _ensure_runner(self) -> None:
        if self._runner is not None and not self._runner.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._runner = loop.create_task(self._run(), name="search-debounce")

    async def _run(self) -> None:
        while self._pending:
            self._wakeup.clear()
            deadline = self.next_deadline()
            if deadline is None:
                break
            delay = deadline - self._clock()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                continue
            self.fire_due()


__all__ = ["DEFAULT_QUIET_PERIOD_SECONDS", "DebounceScheduler"]
