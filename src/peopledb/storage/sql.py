"""SQL-backed table (PostgreSQL JSONB or SQLite JSON1) via SQLAlchemy asyncio.

One row per item: the six key attributes and the entity type are columns,
every other attribute lives in a single JSON column. Each secondary index is
a composite SQL index over its (partition, sort) column pair.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import JSON, Column, Index, MetaData, String, Table, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from peopledb.exceptions import TransientStoreError
from peopledb.storage.table import (
    ENTITY_TYPE_ATTRIBUTE,
    KEY_ATTRIBUTES,
    IndexName,
    KeyValueTable,
    QueryPage,
    split_item,
)

if TYPE_CHECKING:
    from peopledb.core.connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Dialect-aware JSON type: JSONB on PostgreSQL, JSON on SQLite
JSONType = JSONB().with_variant(JSON(), "sqlite")

T = TypeVar("T")

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)


def build_table(name: str, metadata: MetaData | None = None) -> Table:
    """Describe the items table and its two secondary indexes."""
    return Table(
        name,
        metadata or MetaData(),
        Column("pk", String(255), primary_key=True),
        Column("sk", String(255), primary_key=True),
        Column("gsi1pk", String(64), nullable=True),
        Column("gsi1sk", String(512), nullable=True),
        Column("gsi2pk", String(64), nullable=True),
        Column("gsi2sk", String(512), nullable=True),
        Column(ENTITY_TYPE_ATTRIBUTE, String(20), nullable=False),
        Column("data", JSONType, nullable=False, default=dict),
        Index(f"ix_{name}_gsi1", "gsi1pk", "gsi1sk"),
        Index(f"ix_{name}_gsi2", "gsi2pk", "gsi2sk"),
    )


class SqlTable(KeyValueTable):
    """``KeyValueTable`` over a relational database.

    Driver failures that may succeed on retry (dropped connections, locks,
    pool timeouts) surface as ``TransientStoreError``; everything else
    propagates unchanged.
    """

    def __init__(self, connection: DatabaseConnection, name: str) -> None:
        super().__init__(name)
        self._connection = connection
        self._table = build_table(name)

    @property
    def table(self) -> Table:
        return self._table

    async def create(self) -> None:
        """Create the table and indexes if missing. Idempotent."""
        async with self._connection.engine.begin() as conn:
            await conn.run_sync(self._table.metadata.create_all)

    async def close(self) -> None:
        await self._connection.close()

    async def _guard(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        except _TRANSIENT_ERRORS as e:
            logger.debug(f"Transient failure in {operation} on '{self.name}': {e}")
            raise TransientStoreError(
                f"{operation} failed: {e}", {"operation": operation, "table": self.name}
            ) from e

    def _row_to_item(self, row: Any) -> dict[str, Any]:
        mapping = row._mapping
        item = {k: mapping[k] for k in KEY_ATTRIBUTES if mapping[k] is not None}
        item[ENTITY_TYPE_ATTRIBUTE] = mapping[ENTITY_TYPE_ATTRIBUTE]
        item.update(mapping["data"] or {})
        return item

    async def get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        async def run() -> dict[str, Any] | None:
            stmt = select(self._table).where(self._table.c.pk == pk, self._table.c.sk == sk)
            async with self._connection.engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
            return self._row_to_item(row) if row is not None else None

        return await self._guard("get_item", run)

    async def put_item(self, item: dict[str, Any]) -> None:
        keys, entity_type, attributes = split_item(item)
        row = {**keys, ENTITY_TYPE_ATTRIBUTE: entity_type, "data": attributes}
        dialect_insert = (
            postgresql.insert if self._connection.dialect == "postgresql" else sqlite.insert
        )
        stmt = dialect_insert(self._table).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["pk", "sk"],
            set_={k: stmt.excluded[k] for k in row if k not in ("pk", "sk")},
        )

        async def run() -> None:
            async with self._connection.engine.begin() as conn:
                await conn.execute(stmt)

        await self._guard("put_item", run)

    async def delete_item(self, pk: str, sk: str) -> bool:
        stmt = delete(self._table).where(self._table.c.pk == pk, self._table.c.sk == sk)

        async def run() -> bool:
            async with self._connection.engine.begin() as conn:
                result = await conn.execute(stmt)
            return bool(result.rowcount)

        return await self._guard("delete_item", run)

    async def query(
        self,
        partition: str,
        index: IndexName = IndexName.PRIMARY,
        sort_prefix: str | None = None,
        entity_type: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> QueryPage:
        pk_col = self._table.c[index.partition_attribute]
        sk_col = self._table.c[index.sort_attribute]

        stmt = select(self._table).where(pk_col == partition, sk_col.is_not(None))
        if sort_prefix:
            stmt = stmt.where(sk_col.startswith(sort_prefix, autoescape=True))
        if entity_type:
            stmt = stmt.where(self._table.c[ENTITY_TYPE_ATTRIBUTE] == entity_type)
        if cursor is not None:
            stmt = stmt.where(sk_col > cursor)
        stmt = stmt.order_by(sk_col)
        if limit is not None:
            # One extra row tells us whether another page exists
            stmt = stmt.limit(limit + 1)

        async def run() -> QueryPage:
            async with self._connection.engine.connect() as conn:
                rows = (await conn.execute(stmt)).all()
            items = [self._row_to_item(r) for r in rows]
            if limit is not None and len(items) > limit:
                items = items[:limit]
                return QueryPage(items, items[-1][index.sort_attribute])
            return QueryPage(items, None)

        return await self._guard("query", run)
