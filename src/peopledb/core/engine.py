"""PeopleDB: the object an entry point builds once and passes around."""

from __future__ import annotations

import logging
from types import TracebackType

from peopledb.config import Settings
from peopledb.core.connection import DatabaseConnection
from peopledb.search.index import (
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    DEFAULT_TOLERANCE,
    SearchResult,
)
from peopledb.search.sync import SearchIndexSync
from peopledb.storage.retry import RetryPolicy
from peopledb.storage.sql import SqlTable
from peopledb.storage.table import KeyValueTable
from peopledb.store.client import PersonsClient
from peopledb.store.pager import CrossEntityPager

logger = logging.getLogger(__name__)


class PeopleDB:
    """Entity store, pager and search sync over one table.

    Nothing here is global: build one per process (or per test) and close it
    when done.

    Example:
        async with PeopleDB.from_settings(Settings.from_env()) as db:
            await db.init_schema()
            ada = await db.persons.create_person({"first_name": "Ada", "last_name": "Lovelace"})
            hits = await db.search("lovelace")
    """

    def __init__(
        self,
        table: KeyValueTable,
        retry: RetryPolicy | None = None,
        page_size: int = 1000,
    ) -> None:
        """Initialize over an already constructed table.

        Args:
            table: Backing key-value table (SqlTable, MemoryTable, ...)
            retry: Retry policy for transient store failures
            page_size: Per-type page size for listing and paging
        """
        self._table = table
        self._retry = retry or RetryPolicy()
        self.persons = PersonsClient(table, self._retry, page_size)
        self.pager = CrossEntityPager(table, page_size, self._retry)
        self.search_sync = SearchIndexSync(self.pager)

    @classmethod
    def from_settings(cls, settings: Settings) -> PeopleDB:
        """Build a SQL-backed instance from settings."""
        connection = DatabaseConnection(settings.database_url, echo=settings.echo)
        table = SqlTable(connection, settings.table_name)
        retry = RetryPolicy(settings.max_retries, settings.retry_base_delay)
        logger.debug(f"Opening table '{settings.table_name}' at {connection.url}")
        return cls(table, retry=retry, page_size=settings.page_size)

    @property
    def table(self) -> KeyValueTable:
        return self._table

    async def init_schema(self) -> None:
        """Create the backing table if the backend supports it."""
        if isinstance(self._table, SqlTable):
            await self._table.create()

    def index_ready(self) -> bool:
        return self.search_sync.index_ready()

    async def search(
        self,
        term: str,
        limit: int = DEFAULT_LIMIT,
        tolerance: int = DEFAULT_TOLERANCE,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """Refresh the index if the person set changed, then search it."""
        await self.search_sync.refresh()
        return self.search_sync.search(term, limit=limit, tolerance=tolerance, threshold=threshold)

    async def close(self) -> None:
        await self._table.close()

    async def __aenter__(self) -> PeopleDB:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
