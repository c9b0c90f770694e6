"""
==============================================
Application Root
==============================================

Owns exactly one RecordStore and the PersistenceOrchestrator that
watches it. Collaborators get the store passed in; nothing looks it
up globally.

USAGE EXAMPLES:

1. Async context manager (restore on enter, final flush on exit):
    from user_directory.app import DirectoryApp

    async with DirectoryApp() as app:
        await app.store.fetch_next_page()
        app.store.toggle_favorite(app.store.users[0].id)

2. Injecting collaborators (tests, alternate backends):
    app = DirectoryApp(config, source=fake_source, persistence=JsonFileStore(tmp))
    await app.start()
    ...
    app.close()
"""

from typing import Optional

from loguru import logger

from user_directory.config import AppConfig, get_config
from user_directory.normalization.record_parser import RecordParser
from user_directory.persistence import create_persistence
from user_directory.persistence_orchestrator import PersistenceOrchestrator
from user_directory.record_store import RecordStore
from user_directory.source.randomuser_client import RandomUserClient


class DirectoryApp:
    """
    Wires source, parser, persistence, store and orchestrator together.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        source=None,
        persistence=None,
        register_atexit: bool = True
    ):
        """
        Args:
            config: Optional configuration. If None, loads from environment.
            source: Source gateway. Defaults to RandomUserClient.
            persistence: Persistence gateway. Defaults to the configured backend.
            register_atexit: Flush the snapshot on interpreter exit
        """
        self._config = config or get_config()

        self.source = source or RandomUserClient.from_config(self._config.source)
        self.persistence = persistence or create_persistence(self._config)

        self.store = RecordStore(
            source=self.source,
            persistence=self.persistence,
            parser=RecordParser(skip_malformed=self._config.parse.skip_malformed),
            page_size=self._config.source.page_size,
            snapshot_key=self._config.persistence.snapshot_key
        )
        self.orchestrator = PersistenceOrchestrator(
            self.store,
            quiet_period_seconds=self._config.persistence.quiet_period_seconds,
            register_atexit=register_atexit
        )

    @property
    def config(self) -> AppConfig:
        return self._config

    async def start(self) -> None:
        await self.orchestrator.start()

    async def fetch_pages(self, count: int = 1) -> int:
        """
        Fetch up to `count` pages, stopping at the first failure.

        Returns:
            Number of pages fetched successfully
        """
        fetched = 0
        for _ in range(count):
            await self.store.fetch_next_page()
            if self.store.error:
                break
            fetched += 1
        return fetched

    def close(self) -> None:
        """
        Final flush, then release the HTTP session and backend.
        """
        self.orchestrator.stop()
        for resource in (self.source, self.persistence):
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.warning(f"Warning during close: {e}")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        self.close()
        return False
