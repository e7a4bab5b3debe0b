"""Async key-value table interface.

Items are flat dicts holding the key attributes (``pk``, ``sk``, ``gsi1pk``,
``gsi1sk``, ``gsi2pk``, ``gsi2sk``), the ``entity_type`` discriminator and
the entity's own attributes. Queries select one partition of one index,
optionally narrowed by sort-key prefix and entity type, and return results
in ascending sort-key order, one bounded page at a time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

KEY_ATTRIBUTES = ("pk", "sk", "gsi1pk", "gsi1sk", "gsi2pk", "gsi2sk")
ENTITY_TYPE_ATTRIBUTE = "entity_type"


class IndexName(StrEnum):
    """Key pairs an item can be queried by."""

    PRIMARY = "primary"
    BY_TYPE = "gsi1"
    ALL_DATA = "gsi2"

    @property
    def partition_attribute(self) -> str:
        return "pk" if self is IndexName.PRIMARY else f"{self.value}pk"

    @property
    def sort_attribute(self) -> str:
        return "sk" if self is IndexName.PRIMARY else f"{self.value}sk"


@dataclass
class QueryPage:
    """One page of query results.

    ``cursor`` is the last returned sort key when more results follow, and
    None once the query is exhausted.
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    cursor: str | None = None

    @property
    def exhausted(self) -> bool:
        return self.cursor is None


def split_item(item: dict[str, Any]) -> tuple[dict[str, Any], str, dict[str, Any]]:
    """Split a flat item into (keys, entity type, attributes)."""
    keys = {k: item.get(k) for k in KEY_ATTRIBUTES}
    attributes = {
        k: v for k, v in item.items() if k not in KEY_ATTRIBUTES and k != ENTITY_TYPE_ATTRIBUTE
    }
    return keys, item[ENTITY_TYPE_ATTRIBUTE], attributes


class KeyValueTable(ABC):
    """A single partitioned table with two secondary indexes."""

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    async def get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        """Return the item stored under the primary key, or None."""

    @abstractmethod
    async def put_item(self, item: dict[str, Any]) -> None:
        """Insert or fully replace an item."""

    @abstractmethod
    async def delete_item(self, pk: str, sk: str) -> bool:
        """Delete an item. Deleting an absent item is a no-op returning False."""

    @abstractmethod
    async def query(
        self,
        partition: str,
        index: IndexName = IndexName.PRIMARY,
        sort_prefix: str | None = None,
        entity_type: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> QueryPage:
        """Query one index partition, resuming after ``cursor`` if given."""

    async def close(self) -> None:
        """Release any resources held by the table."""
        return None
