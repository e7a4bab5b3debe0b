"""Composite key codec for the single-table layout.

Every item lives under three key pairs:

- primary: ``pk = PERSON#{person_id}`` and ``sk = PROFILE`` for the person
  itself or ``sk = {TYPE}#{child_id}`` for its children, so one partition
  holds a person and everything it owns.
- index A (list all of one type): ``gsi1pk`` is a per-type constant such as
  ``PERSONS``; ``gsi1sk`` orders persons by last name, first name, id and
  children by id.
- index B (everything, for search indexing): ``gsi2pk = ALL_DATA`` and
  ``gsi2sk = PERSON#{person_id}#{TYPE}#{child_id}`` (``#PROFILE`` for the
  person), keeping all items of one person contiguous.

Changing the separator or any prefix literal is a breaking migration.
Ids must not contain the separator; encoding rejects them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from peopledb.core.types import EntityType
from peopledb.exceptions import MalformedKeyError, ValidationError

SEPARATOR = "#"
PERSON_PREFIX = "PERSON"
PROFILE = "PROFILE"
ALL_DATA = "ALL_DATA"

INDEX_A_PARTITIONS: dict[EntityType, str] = {
    EntityType.PERSON: "PERSONS",
    EntityType.ADDRESS: "ADDRESSES",
    EntityType.BANK: "BANKS",
    EntityType.CONTACT: "CONTACTS",
    EntityType.EMPLOYMENT: "EMPLOYMENTS",
}


@dataclass(frozen=True)
class EntityKey:
    """Logical identity of a stored item.

    For a person, ``person_id`` and ``entity_id`` are the same value.
    """

    entity_type: EntityType
    entity_id: str
    person_id: str

    @classmethod
    def person(cls, person_id: str) -> EntityKey:
        return cls(EntityType.PERSON, person_id, person_id)

    @classmethod
    def child(cls, entity_type: EntityType, person_id: str, child_id: str) -> EntityKey:
        if entity_type == EntityType.PERSON:
            raise ValueError("Use EntityKey.person() for person keys")
        return cls(entity_type, child_id, person_id)

    @property
    def is_person(self) -> bool:
        return self.entity_type == EntityType.PERSON


@dataclass(frozen=True)
class ItemKeys:
    """Physical key attributes written alongside an item."""

    pk: str
    sk: str
    gsi1pk: str
    gsi1sk: str
    gsi2pk: str
    gsi2sk: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "pk": self.pk,
            "sk": self.sk,
            "gsi1pk": self.gsi1pk,
            "gsi1sk": self.gsi1sk,
            "gsi2pk": self.gsi2pk,
            "gsi2sk": self.gsi2sk,
        }


def check_id(value: str, label: str = "id") -> str:
    """Reject ids that would break key parsing."""
    if not value:
        raise ValidationError(f"{label} must not be empty", {label: "empty"})
    if SEPARATOR in value:
        raise ValidationError(
            f"{label} '{value}' must not contain '{SEPARATOR}'",
            {label: f"contains separator '{SEPARATOR}'"},
        )
    return value


# === Encoding ===


def partition_key(person_id: str) -> str:
    return f"{PERSON_PREFIX}{SEPARATOR}{check_id(person_id, 'person_id')}"


def sort_key(entity_type: EntityType, entity_id: str | None = None) -> str:
    """Primary sort key. ``entity_id`` is ignored for persons."""
    if entity_type == EntityType.PERSON:
        return PROFILE
    if entity_id is None:
        raise ValueError(f"{entity_type} sort key requires an id")
    return f"{entity_type.value}{SEPARATOR}{check_id(entity_id)}"


def child_prefix(entity_type: EntityType) -> str:
    """Sort-key prefix selecting one child collection inside a partition."""
    return f"{entity_type.value}{SEPARATOR}"


def primary_key(key: EntityKey) -> tuple[str, str]:
    return partition_key(key.person_id), sort_key(key.entity_type, key.entity_id)


def _name_part(value: str | None) -> str:
    return (value or "").casefold().replace(SEPARATOR, " ")


def index_a_key(
    key: EntityKey,
    last_name: str | None = None,
    first_name: str | None = None,
) -> tuple[str, str]:
    """List-all-of-a-type key. Persons sort by name, then id."""
    partition = INDEX_A_PARTITIONS[key.entity_type]
    if key.is_person:
        parts = [
            PERSON_PREFIX,
            _name_part(last_name),
            _name_part(first_name),
            check_id(key.entity_id),
        ]
        return partition, SEPARATOR.join(parts)
    return partition, sort_key(key.entity_type, key.entity_id)


def index_b_key(key: EntityKey) -> tuple[str, str]:
    """Everything-index key; one person's items are contiguous."""
    pk, sk = primary_key(key)
    return ALL_DATA, f"{pk}{SEPARATOR}{sk}"


def encode(
    key: EntityKey,
    last_name: str | None = None,
    first_name: str | None = None,
) -> ItemKeys:
    """Build every physical key for an item."""
    pk, sk = primary_key(key)
    gsi1pk, gsi1sk = index_a_key(key, last_name=last_name, first_name=first_name)
    gsi2pk, gsi2sk = index_b_key(key)
    return ItemKeys(pk=pk, sk=sk, gsi1pk=gsi1pk, gsi1sk=gsi1sk, gsi2pk=gsi2pk, gsi2sk=gsi2sk)


# === Decoding ===


def decode_partition(pk: str) -> str:
    """Return the person id of a primary partition key."""
    prefix = f"{PERSON_PREFIX}{SEPARATOR}"
    if not pk.startswith(prefix):
        raise MalformedKeyError(pk, f"'{prefix}<person_id>'")
    person_id = pk[len(prefix) :]
    if not person_id or SEPARATOR in person_id:
        raise MalformedKeyError(pk, f"'{prefix}<person_id>'")
    return person_id


def decode_sort(sk: str) -> tuple[EntityType, str | None]:
    """Return (entity type, child id) of a primary sort key.

    The child id is None for the person profile item.
    """
    if sk == PROFILE:
        return EntityType.PERSON, None
    type_part, sep, child_id = sk.partition(SEPARATOR)
    expected = f"'{PROFILE}' or '<TYPE>{SEPARATOR}<id>'"
    if not sep or not child_id or SEPARATOR in child_id:
        raise MalformedKeyError(sk, expected)
    try:
        entity_type = EntityType(type_part)
    except ValueError as e:
        raise MalformedKeyError(sk, expected) from e
    if entity_type == EntityType.PERSON:
        raise MalformedKeyError(sk, expected)
    return entity_type, child_id


def decode_primary(pk: str, sk: str) -> EntityKey:
    person_id = decode_partition(pk)
    entity_type, child_id = decode_sort(sk)
    if child_id is None:
        return EntityKey.person(person_id)
    return EntityKey.child(entity_type, person_id, child_id)


def decode_index_a(entity_type: EntityType, gsi1sk: str) -> str:
    """Return the entity id of an index A sort key."""
    if entity_type == EntityType.PERSON:
        prefix = f"{PERSON_PREFIX}{SEPARATOR}"
        if not gsi1sk.startswith(prefix) or gsi1sk.count(SEPARATOR) < 3:
            raise MalformedKeyError(gsi1sk, f"'{prefix}<last>#<first>#<id>'")
        entity_id = gsi1sk.rsplit(SEPARATOR, 1)[1]
        if not entity_id:
            raise MalformedKeyError(gsi1sk, f"'{prefix}<last>#<first>#<id>'")
        return entity_id
    found_type, child_id = decode_sort(gsi1sk)
    if found_type != entity_type or child_id is None:
        raise MalformedKeyError(gsi1sk, f"'{child_prefix(entity_type)}<id>'")
    return child_id


def decode_index_b(gsi2sk: str) -> EntityKey:
    """Parse ``PERSON#{pid}#PROFILE`` or ``PERSON#{pid}#{TYPE}#{cid}``."""
    parts = gsi2sk.split(SEPARATOR)
    expected = (
        f"'{PERSON_PREFIX}#<person_id>#{PROFILE}' or '{PERSON_PREFIX}#<person_id>#<TYPE>#<id>'"
    )
    if len(parts) not in (3, 4) or parts[0] != PERSON_PREFIX:
        raise MalformedKeyError(gsi2sk, expected)
    pk = SEPARATOR.join(parts[:2])
    sk = SEPARATOR.join(parts[2:])
    try:
        return decode_primary(pk, sk)
    except MalformedKeyError as e:
        raise MalformedKeyError(gsi2sk, expected) from e
