"""Cross-entity pager: the whole table, five streams walked in lockstep.

Each entity type is one stream over index B (``gsi2pk = ALL_DATA``)
filtered by ``entity_type``. A page holds up to ``page_size`` items per
type; the composite cursor carries one independent sub-cursor per type, so
no stream's progress is lost when another runs out.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from peopledb.core.keys import ALL_DATA, INDEX_A_PARTITIONS
from peopledb.core.types import EntityType
from peopledb.exceptions import MalformedKeyError
from peopledb.storage.retry import RetryPolicy
from peopledb.storage.table import IndexName, KeyValueTable, QueryPage

logger = logging.getLogger(__name__)

PAGER_TYPES: tuple[EntityType, ...] = (EntityType.PERSON, *EntityType.children())

_CURSOR_FORMAT = "base64url JSON object of entity type to sort key"


@dataclass(frozen=True)
class CompositeCursor:
    """Resume position of every stream. A None sub-cursor means that stream is done."""

    positions: tuple[str | None, ...] = (None,) * len(PAGER_TYPES)

    def __post_init__(self) -> None:
        if len(self.positions) != len(PAGER_TYPES):
            raise ValueError(f"expected {len(PAGER_TYPES)} sub-cursors, got {len(self.positions)}")

    @classmethod
    def from_mapping(cls, positions: dict[EntityType, str | None]) -> CompositeCursor:
        return cls(tuple(positions.get(t) for t in PAGER_TYPES))

    def get(self, entity_type: EntityType) -> str | None:
        return self.positions[PAGER_TYPES.index(entity_type)]

    @property
    def exhausted(self) -> bool:
        return all(p is None for p in self.positions)

    def encode(self) -> str:
        """Opaque token for handing to clients."""
        payload = {t.value: p for t, p in zip(PAGER_TYPES, self.positions, strict=True)}
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> CompositeCursor:
        """Parse a token produced by ``encode``.

        Raises:
            MalformedKeyError: If the token is not a valid cursor
        """
        try:
            payload = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise MalformedKeyError(token, _CURSOR_FORMAT) from e
        if not isinstance(payload, dict):
            raise MalformedKeyError(token, _CURSOR_FORMAT)

        positions: list[str | None] = []
        for entity_type in PAGER_TYPES:
            value = payload.get(entity_type.value)
            if value is not None and not isinstance(value, str):
                raise MalformedKeyError(token, _CURSOR_FORMAT)
            positions.append(value)
        return cls(tuple(positions))


@dataclass
class EntityPage:
    """Raw items of one page, grouped by entity type.

    ``cursor`` is None once every stream is exhausted.
    """

    items: dict[EntityType, list[dict[str, Any]]] = field(
        default_factory=lambda: {t: [] for t in PAGER_TYPES}
    )
    cursor: CompositeCursor | None = None

    @property
    def exhausted(self) -> bool:
        return self.cursor is None

    def of(self, entity_type: EntityType) -> list[dict[str, Any]]:
        return self.items.get(entity_type, [])

    def all_items(self) -> list[dict[str, Any]]:
        """Every item, persons first."""
        return [item for t in PAGER_TYPES for item in self.of(t)]

    def __len__(self) -> int:
        return sum(len(v) for v in self.items.values())

    def counts(self) -> dict[str, int]:
        return {t.value: len(self.of(t)) for t in PAGER_TYPES}


class CrossEntityPager:
    """Pages through every item of every entity type."""

    def __init__(
        self,
        table: KeyValueTable,
        page_size: int = 1000,
        retry: RetryPolicy | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._table = table
        self._page_size = page_size
        self._retry = retry or RetryPolicy()

    async def _fetch(self, entity_type: EntityType, cursor: str | None) -> QueryPage:
        return await self._retry.run(
            f"page {entity_type.value}",
            lambda: self._table.query(
                ALL_DATA,
                index=IndexName.ALL_DATA,
                entity_type=entity_type.value,
                limit=self._page_size,
                cursor=cursor,
            ),
        )

    async def next_page(self, cursor: CompositeCursor | str | None = None) -> EntityPage:
        """Fetch the next page of every unfinished stream concurrently.

        With no cursor, every stream starts from the beginning. Streams whose
        sub-cursor is None in a given cursor are finished and not queried.
        """
        if isinstance(cursor, str):
            cursor = CompositeCursor.decode(cursor)
        if cursor is not None and cursor.exhausted:
            return EntityPage()

        active = [t for t in PAGER_TYPES if cursor is None or cursor.get(t) is not None]
        results = await asyncio.gather(
            *(self._fetch(t, cursor.get(t) if cursor else None) for t in active)
        )

        page = EntityPage()
        positions: dict[EntityType, str | None] = {}
        for entity_type, result in zip(active, results, strict=True):
            page.items[entity_type] = result.items
            positions[entity_type] = result.cursor

        next_cursor = CompositeCursor.from_mapping(positions)
        page.cursor = None if next_cursor.exhausted else next_cursor
        logger.debug(f"Fetched page {page.counts()}, exhausted={page.exhausted}")
        return page

    async def drain_all(self) -> EntityPage:
        """Fetch every page and merge them.

        Volume is unbounded; meant for index rebuilds, not interactive paths.
        """
        merged = EntityPage()
        cursor: CompositeCursor | None = None
        pages = 0
        while True:
            page = await self.next_page(cursor)
            pages += 1
            for entity_type in PAGER_TYPES:
                merged.items[entity_type].extend(page.of(entity_type))
            if page.exhausted:
                break
            cursor = page.cursor
        logger.info(f"Drained {len(merged)} items in {pages} pages")
        return merged

    async def person_ids(self) -> list[str]:
        """Ids of every person, read from the ``PERSONS`` partition of index A.

        Touches person items only, so it stays cheap next to ``drain_all``.
        """
        partition = INDEX_A_PARTITIONS[EntityType.PERSON]
        ids: list[str] = []
        cursor: str | None = None
        while True:
            page = await self._retry.run(
                "list person ids",
                lambda c=cursor: self._table.query(
                    partition, index=IndexName.BY_TYPE, limit=self._page_size, cursor=c
                ),
            )
            ids.extend(str(item.get("id")) for item in page.items)
            if page.exhausted:
                break
            cursor = page.cursor
        return ids
