"""Single-entity-type CRUD against the key-value table."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel

from peopledb.core.keys import (
    INDEX_A_PARTITIONS,
    EntityKey,
    child_prefix,
    partition_key,
    primary_key,
)
from peopledb.core.types import EntityType
from peopledb.storage.retry import RetryPolicy
from peopledb.storage.table import IndexName, KeyValueTable
from peopledb.store.definitions import EntityDefinition

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def next_timestamp(previous: datetime | None = None) -> datetime:
    """Return the current UTC time, strictly after ``previous``."""
    now = datetime.now(UTC)
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=UTC)
    return max(now, previous + _TICK)


class EntityRepository:
    """CRUD for one entity type.

    ``get`` and listing return None / empty for absent keys. Every table call
    goes through the retry policy; all of them are idempotent.
    """

    def __init__(
        self,
        table: KeyValueTable,
        definition: EntityDefinition,
        retry: RetryPolicy | None = None,
        page_size: int = 1000,
    ) -> None:
        self._table = table
        self._definition = definition
        self._retry = retry or RetryPolicy()
        self._page_size = page_size

    @property
    def definition(self) -> EntityDefinition:
        return self._definition

    @property
    def entity_type(self) -> EntityType:
        return self._definition.entity_type

    def _check_key(self, key: EntityKey) -> None:
        if key.entity_type != self.entity_type:
            raise ValueError(
                f"{self._definition.name} repository cannot handle {key.entity_type} keys"
            )

    async def get(self, key: EntityKey) -> BaseModel | None:
        self._check_key(key)
        pk, sk = primary_key(key)
        item = await self._retry.run("get_item", lambda: self._table.get_item(pk, sk))
        return self._definition.from_item(item) if item is not None else None

    async def put(self, data: Mapping[str, Any] | BaseModel) -> BaseModel:
        """Validate and upsert a complete entity (full replace).

        Raises:
            ValidationError: If a required field is missing or mistyped
        """
        entity = self._definition.validate(data)
        item = self._definition.to_item(entity)
        await self._retry.run("put_item", lambda: self._table.put_item(item))
        logger.debug(f"Put {self.entity_type} {item['pk']}/{item['sk']}")
        return entity

    async def patch(self, key: EntityKey, changes: Mapping[str, Any]) -> BaseModel | None:
        """Merge non-None ``changes`` into a stored person and refresh ``updated_at``.

        Returns None when the person does not exist. Concurrent patches race
        at field level; the last write wins.
        """
        if self.entity_type != EntityType.PERSON:
            raise TypeError("patch is only supported for persons; children are replaced")
        current = await self.get(key)
        if current is None:
            return None

        merged = current.model_dump(mode="json")
        merged.update({k: v for k, v in changes.items() if v is not None})
        merged["id"] = key.entity_id
        merged["updated_at"] = next_timestamp(current.updated_at).isoformat()  # type: ignore[attr-defined]
        return await self.put(merged)

    async def delete(self, key: EntityKey) -> bool:
        """Delete an entity. Deleting an absent one is a no-op returning False."""
        self._check_key(key)
        pk, sk = primary_key(key)
        return await self._retry.run("delete_item", lambda: self._table.delete_item(pk, sk))

    async def _query_all(self, operation: str, **kwargs: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page = await self._retry.run(
                operation,
                lambda c=cursor: self._table.query(limit=self._page_size, cursor=c, **kwargs),
            )
            items.extend(page.items)
            if page.exhausted:
                return items
            cursor = page.cursor

    async def list_by_parent(self, person_id: str) -> list[BaseModel]:
        """All entities of this type owned by ``person_id``, in id order."""
        if self.entity_type == EntityType.PERSON:
            person = await self.get(EntityKey.person(person_id))
            return [person] if person is not None else []
        items = await self._query_all(
            "list_by_parent",
            partition=partition_key(person_id),
            sort_prefix=child_prefix(self.entity_type),
        )
        return [self._definition.from_item(item) for item in items]

    async def list_all(self) -> list[BaseModel]:
        """Every entity of this type via index A (persons ordered by name)."""
        items = await self._query_all(
            "list_all",
            partition=INDEX_A_PARTITIONS[self.entity_type],
            index=IndexName.BY_TYPE,
        )
        return [self._definition.from_item(item) for item in items]
