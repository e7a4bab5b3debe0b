"""In-memory table, for tests and embedded use."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from peopledb.storage.table import IndexName, KeyValueTable, QueryPage


class MemoryTable(KeyValueTable):
    """Dict-backed implementation of ``KeyValueTable``.

    Items are deep-copied on the way in and out so callers never share state
    with the table.
    """

    def __init__(self, name: str = "memory") -> None:
        super().__init__(name)
        self._items: dict[tuple[str, str], dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> list[dict[str, Any]]:
        """Snapshot of every stored item."""
        return [copy.deepcopy(item) for item in self._items.values()]

    async def get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        item = self._items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    async def put_item(self, item: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        self._items[(item["pk"], item["sk"])] = copy.deepcopy(item)

    async def delete_item(self, pk: str, sk: str) -> bool:
        await asyncio.sleep(0)
        return self._items.pop((pk, sk), None) is not None

    async def query(
        self,
        partition: str,
        index: IndexName = IndexName.PRIMARY,
        sort_prefix: str | None = None,
        entity_type: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> QueryPage:
        await asyncio.sleep(0)
        pk_attr, sk_attr = index.partition_attribute, index.sort_attribute

        matches = [
            item
            for item in self._items.values()
            if item.get(pk_attr) == partition
            and item.get(sk_attr) is not None
            and (sort_prefix is None or item[sk_attr].startswith(sort_prefix))
            and (entity_type is None or item.get("entity_type") == entity_type)
            and (cursor is None or item[sk_attr] > cursor)
        ]
        matches.sort(key=lambda item: item[sk_attr])

        if limit is not None and len(matches) > limit:
            page = matches[:limit]
            return QueryPage([copy.deepcopy(i) for i in page], page[-1][sk_attr])
        return QueryPage([copy.deepcopy(i) for i in matches], None)
