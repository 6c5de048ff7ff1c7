# ledger/services/scheduler.py
"""
Keeps a user's recurring templates materialized as their data changes.

    snapshot arrives -> debounce -> guarded pass -> (writes) -> new snapshot
                     -> debounce -> guarded pass finds nothing -> settled

Snapshots may be pushed from any thread (FastAPI runs sync routes in a worker
pool), so the feed callbacks only hand them over to the event loop. Each new
snapshot restarts the debounce timer; when it fires, a pass runs on the newest
snapshot unless one is already running, in which case the request is dropped.

The blocking batch commit runs in a worker thread via asyncio.to_thread and
is the only suspension point of a pass.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import date
from typing import Callable, Dict, List, Optional

from ledger.config import Settings
from ledger.errors import BatchWriteError
from ledger.repository import TransactionRepository
from ledger.schemas import SchedulerStatus, TransactionRead
from ledger.services.guard import PassGuard
from ledger.services.materialize import MaterializationResult, materialize
from ledger.services.normalizer import normalize_all
from ledger.services.recurrence import DEFAULT_MAX_OCCURRENCES

logger = logging.getLogger(__name__)


class MaterializationScheduler:
    def __init__(
        self,
        repository: TransactionRepository,
        user_id: str,
        debounce_seconds: float = 0.5,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        today: Callable[[], date] = date.today,
    ):
        self.user_id = user_id
        self.debounce_seconds = debounce_seconds
        self.max_occurrences = max_occurrences
        self.guard = PassGuard()

        self._repository = repository
        self._today = today
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._snapshot: Optional[List[TransactionRead]] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._active = False

        # snapshots handed to the loop but not yet accepted
        self._inbox = 0
        self._inbox_lock = threading.Lock()

        self.passes = 0
        self.last_result: Optional[MaterializationResult] = None
        self.last_error: Optional[str] = None

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._active

    async def start(self) -> None:
        """
        Subscribe to the live feed from the running loop.

        The subscription delivers the current snapshot right away, which is a
        database read, so it happens in a worker thread.
        """
        if self._active:
            return
        self._active = True
        self._loop = asyncio.get_running_loop()
        logger.info("[scheduler] Starting for user=%r", self.user_id)
        unsubscribe = await asyncio.to_thread(
            self._repository.subscribe, self.user_id, self._on_snapshot, self._on_feed_error
        )
        if not self._active:
            # stopped while subscribing
            unsubscribe()
            return
        self._unsubscribe = unsubscribe

    def stop(self) -> None:
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("[scheduler] Stopped for user=%r", self.user_id)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # -------------------------------------------------------------------
    # Feed callbacks (any thread)
    # -------------------------------------------------------------------

    def _hand_over(self, callback, arg) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with self._inbox_lock:
            self._inbox += 1
        loop.call_soon_threadsafe(callback, arg)

    def _on_snapshot(self, records) -> None:
        self._hand_over(self._accept_snapshot, records)

    def _on_feed_error(self, exc: Exception) -> None:
        self._hand_over(self._accept_feed_error, exc)

    # -------------------------------------------------------------------
    # Loop side
    # -------------------------------------------------------------------

    def _take_from_inbox(self) -> None:
        with self._inbox_lock:
            self._inbox -= 1

    def _accept_snapshot(self, records) -> None:
        self._take_from_inbox()
        if not self.started:
            return
        self._snapshot = normalize_all(records, today=self._today())
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _accept_feed_error(self, exc: Exception) -> None:
        self._take_from_inbox()
        # No snapshot, no passes until the feed recovers
        self._snapshot = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.last_error = f"Could not load transactions: {exc}"

    def _fire(self) -> None:
        self._timer = None
        snapshot = self._snapshot
        if snapshot is None:
            return
        if not self.guard.try_acquire():
            logger.debug("[scheduler] Pass already running for user=%r; request dropped", self.user_id)
            return
        self._task = self._loop.create_task(self._run_pass(snapshot, self._today()))
        self._task.add_done_callback(self._pass_done)

    def _pass_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, BatchWriteError):
            logger.error("[scheduler] Pass crashed for user=%r: %r", self.user_id, exc)
            self.last_error = f"Materialization failed: {exc}"

    async def _run_pass(
        self,
        snapshot: Optional[List[TransactionRead]],
        as_of: date,
    ) -> MaterializationResult:
        """Run one pass. The guard must already be held; it is released here."""
        try:
            if snapshot is None:
                records = await asyncio.to_thread(self._repository.list_for_user, self.user_id)
                snapshot = normalize_all(records, today=as_of)
            result = await asyncio.to_thread(
                materialize,
                self.user_id,
                snapshot,
                as_of,
                self._repository,
                self.max_occurrences,
            )
        except BatchWriteError as e:
            self.last_error = f"Recurring transactions could not be saved: {e}"
            raise
        finally:
            self.passes += 1
            self.guard.release()

        self.last_result = result
        self.last_error = None
        return result

    async def run_now(self, as_of: Optional[date] = None) -> Optional[MaterializationResult]:
        """
        Run a pass immediately on a fresh read of the user's records.

        Returns None when a pass is already running (the request is dropped).
        Raises BatchWriteError when the batch could not be committed.
        """
        if not self.guard.try_acquire():
            return None
        return await self._run_pass(None, as_of or self._today())

    # -------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------

    def settled(self) -> bool:
        with self._inbox_lock:
            pending = self._inbox
        return (
            pending == 0
            and self._timer is None
            and not self.guard.running
            and (self._task is None or self._task.done())
        )

    async def wait_until_settled(self, timeout: float = 5.0) -> None:
        """Wait until no snapshot, timer or pass is outstanding."""

        async def _poll():
            while not self.settled():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)

    def status(self) -> SchedulerStatus:
        last = self.last_result
        return SchedulerStatus(
            state=self.guard.state.value,
            passes=self.passes,
            dropped=self.guard.dropped,
            last_created=last.created if last else None,
            last_errors=[str(e) for e in last.errors] if last else [],
            last_error=self.last_error,
        )


class SchedulerRegistry:
    """One scheduler per user, created on first use."""

    def __init__(self, repository: TransactionRepository, settings: Settings, today: Callable[[], date] = date.today):
        self._repository = repository
        self._settings = settings
        self._today = today
        self._schedulers: Dict[str, MaterializationScheduler] = {}

    def get(self, user_id: str) -> MaterializationScheduler:
        scheduler = self._schedulers.get(user_id)
        if scheduler is None:
            scheduler = MaterializationScheduler(
                self._repository,
                user_id,
                debounce_seconds=self._settings.debounce_seconds,
                max_occurrences=self._settings.max_occurrences,
                today=self._today,
            )
            self._schedulers[user_id] = scheduler
        return scheduler

    async def ensure_started(self, user_id: str) -> MaterializationScheduler:
        """Get the user's scheduler and, if auto-materialization is on, start it."""
        scheduler = self.get(user_id)
        if self._settings.auto_materialize:
            await scheduler.start()
        return scheduler

    def stop_all(self) -> None:
        for scheduler in self._schedulers.values():
            scheduler.stop()
        self._schedulers.clear()
