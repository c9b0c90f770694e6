# ==============================================
# Tests for PersistenceOrchestrator
# ==============================================

import asyncio
import atexit
from unittest.mock import patch

import pytest

from conftest import FakeSource, MemoryPersistence
from user_directory.persistence_orchestrator import PersistenceOrchestrator
from user_directory.record_store import RecordStore

KEY = "userPreferences"
QUIET = 0.1


@pytest.fixture
def orchestrator(store):
    return PersistenceOrchestrator(store, quiet_period_seconds=QUIET, register_atexit=False)


class TestStartup:
    @pytest.mark.asyncio
    async def test_restores_store(self):
        persistence = MemoryPersistence({KEY: {"tags": ["vip"]}})
        store = RecordStore(FakeSource(), persistence)
        orchestrator = PersistenceOrchestrator(store, register_atexit=False)

        await orchestrator.start()

        assert store.hydrated is True
        assert store.tags == ["vip"]
        assert orchestrator.started

    @pytest.mark.asyncio
    async def test_restore_failure_does_not_fail_startup(self, store, orchestrator):
        with patch.object(store, "restore_from_persistence", side_effect=RuntimeError("Init failed")):
            await orchestrator.start()

        assert orchestrator.started
        assert store.hydrated is True

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, store, orchestrator):
        await orchestrator.start()
        await orchestrator.start()

        store.set_filters(search_text="x")
        assert orchestrator.pending

    def test_negative_quiet_period_rejected(self, store):
        with pytest.raises(ValueError):
            PersistenceOrchestrator(store, quiet_period_seconds=-1)


class TestDebounce:
    @pytest.mark.asyncio
    async def test_change_persists_after_quiet_period(self, store, persistence, orchestrator):
        await orchestrator.start()

        store.set_filters(search_text="jo")
        assert persistence.saves == []

        await asyncio.sleep(QUIET * 3)

        assert persistence.saves == [KEY]
        assert persistence.data[KEY]["filters"]["searchText"] == "jo"
        assert store.dirty is False

    @pytest.mark.asyncio
    async def test_burst_collapses_into_one_write(self, store, persistence, orchestrator):
        await orchestrator.start()

        for text in ("j", "jo", "joh", "john"):
            store.set_filters(search_text=text)
            await asyncio.sleep(QUIET / 5)
        assert persistence.saves == []

        await asyncio.sleep(QUIET * 3)

        assert persistence.saves == [KEY]
        assert persistence.data[KEY]["filters"]["searchText"] == "john"
        assert orchestrator.flush_count == 1

    @pytest.mark.asyncio
    async def test_each_change_restarts_timer(self, store, persistence, orchestrator):
        await orchestrator.start()

        store.set_filters(gender="male")
        await asyncio.sleep(QUIET * 0.6)
        store.set_filters(gender="female")
        await asyncio.sleep(QUIET * 0.6)

        # First change is older than the quiet period, but the timer restarted
        assert persistence.saves == []

        await asyncio.sleep(QUIET * 2)
        assert persistence.saves == [KEY]

    @pytest.mark.asyncio
    async def test_already_persisted_change_is_not_written_twice(self, store, persistence, orchestrator):
        await orchestrator.start()
        store.add_tag("vip")
        assert persistence.saves == [KEY]

        await asyncio.sleep(QUIET * 3)

        assert persistence.saves == [KEY]
        assert not orchestrator.pending

    @pytest.mark.asyncio
    async def test_fetch_schedules_timer(self, store, orchestrator):
        await orchestrator.start()

        await store.fetch_next_page()

        assert orchestrator.pending

    @pytest.mark.asyncio
    async def test_no_scheduling_before_start(self, store, persistence, orchestrator):
        store.set_filters(search_text="early")
        await asyncio.sleep(QUIET * 2)

        assert not orchestrator.pending
        assert persistence.saves == []


class TestTermination:
    @pytest.mark.asyncio
    async def test_stop_flushes_inside_quiet_window(self, store, persistence, orchestrator):
        await orchestrator.start()
        store.set_filters(favorites_only=True)

        orchestrator.stop()

        assert persistence.data[KEY]["filters"]["favoritesOnly"] is True
        assert not orchestrator.pending
        assert not orchestrator.started

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, store, persistence, orchestrator):
        await orchestrator.start()
        orchestrator.stop()
        saves = len(persistence.saves)

        store.set_filters(search_text="after")
        await asyncio.sleep(QUIET * 2)

        assert len(persistence.saves) == saves

    @pytest.mark.asyncio
    async def test_flush_now_bypasses_timer(self, store, persistence, orchestrator):
        await orchestrator.start()
        store.set_filters(search_text="now")

        orchestrator.flush_now()

        assert persistence.saves == [KEY]
        await asyncio.sleep(QUIET * 2)
        assert persistence.saves == [KEY]

    @pytest.mark.asyncio
    async def test_async_context_manager(self, store, persistence):
        async with PersistenceOrchestrator(store, quiet_period_seconds=10, register_atexit=False):
            store.set_filters(gender="female")

        assert persistence.data[KEY]["filters"]["gender"] == "female"

    @pytest.mark.asyncio
    async def test_registers_atexit_hook(self, store):
        orchestrator = PersistenceOrchestrator(store, quiet_period_seconds=QUIET)
        with patch.object(atexit, "register") as register, patch.object(atexit, "unregister") as unregister:
            await orchestrator.start()
            orchestrator.stop()

        register.assert_called_once_with(orchestrator.flush_now)
        unregister.assert_called_once_with(orchestrator.flush_now)
