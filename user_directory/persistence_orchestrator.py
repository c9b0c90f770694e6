# ==============================================
# PersistenceOrchestrator — Debounced snapshot writes
# ==============================================
#
# PURPOSE:
#   Bridge RecordStore mutations to the persistence gateway
#   without the store knowing about timers.
#
# SEQUENCE:
#
#   start()
#     1. store.restore_from_persistence()  (failure → log, continue)
#     2. subscribe to store changes
#     3. register a termination hook (atexit) → flush_now()
#
#   on every store change
#     → cancel the pending timer (if any)
#     → start a new one: quiet_period_seconds later, persist if
#       the store is still dirty
#
#   stop() / __aexit__ / interpreter exit
#     → flush_now(): persist immediately, bypassing the timer
#
#   Many changes inside one quiet period collapse into one write
#   fired quiet_period_seconds after the LAST change.
#
# ATTRIBUTES:
# -----------
#   - _store: RecordStore
#   - _quiet_period: float         (seconds)
#   - _loop: asyncio event loop    (captured in start())
#   - _handle: asyncio.TimerHandle | None  (the one pending flush)
#   - flush_count: int             (debounced writes performed)
#
# ==============================================

import asyncio
import atexit
from typing import Optional

from loguru import logger

from user_directory.record_store import RecordStore


class PersistenceOrchestrator:
    """
    Restores the store on startup, then keeps its snapshot durable
    with one debounced write per burst of changes.
    """

    def __init__(
        self,
        store: RecordStore,
        quiet_period_seconds: float = 1.0,
        register_atexit: bool = True
    ):
        """
        Args:
            store: The store to watch
            quiet_period_seconds: Delay after the last change before writing
            register_atexit: Flush on interpreter exit
        """
        if quiet_period_seconds < 0:
            raise ValueError("quiet_period_seconds must be >= 0")

        self._store = store
        self._quiet_period = quiet_period_seconds
        self._register_atexit = register_atexit

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._started = False
        self.flush_count = 0

    @property
    def quiet_period_seconds(self) -> float:
        return self._quiet_period

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pending(self) -> bool:
        """True while a debounced write is scheduled."""
        return self._handle is not None

    async def start(self) -> None:
        """
        Restore the store, then begin watching it.

        A failing restore is logged and startup continues with
        default state; it never fails the application.
        """
        if self._started:
            return

        self._loop = asyncio.get_running_loop()

        try:
            self._store.restore_from_persistence()
        except Exception:
            logger.exception("Failed to initialize store from persistence")
            self._store.hydrated = True

        self._store.add_listener(self._on_store_change)
        if self._register_atexit:
            atexit.register(self.flush_now)

        self._started = True
        logger.debug(f"Persistence orchestrator started (quiet period: {self._quiet_period}s)")

    def _on_store_change(self, store: RecordStore) -> None:
        self.schedule()

    def schedule(self) -> None:
        """(Re)start the quiet-period timer."""
        if self._loop is None or self._loop.is_closed():
            return

        self.cancel()
        self._handle = self._loop.call_later(self._quiet_period, self._flush_if_dirty)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _flush_if_dirty(self) -> None:
        self._handle = None

        # Operations that already persisted themselves leave nothing to do
        if not self._store.dirty:
            return

        self._store.persist_state()
        self.flush_count += 1
        logger.debug("Debounced snapshot written")

    def flush_now(self) -> None:
        """Persist immediately, dropping any pending timer."""
        self.cancel()
        self._store.persist_state()

    def stop(self) -> None:
        """Final flush, then stop watching the store."""
        if not self._started:
            return

        self.flush_now()
        self._store.remove_listener(self._on_store_change)
        if self._register_atexit:
            atexit.unregister(self.flush_now)

        self._started = False
        logger.debug("Persistence orchestrator stopped")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        self.stop()
        return False
