"""PersonsClient: the read/write surface used by the CLI and other callers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, cast

import pydantic
from pydantic import BaseModel

from peopledb.core.keys import EntityKey, check_id, child_prefix, decode_sort, partition_key
from peopledb.core.types import (
    Address,
    BankAccount,
    ContactInfo,
    Employment,
    EntityType,
    Person,
    PersonCreate,
    PersonUpdate,
    PersonWithRelations,
    new_id,
)
from peopledb.exceptions import PartialCascadeFailure
from peopledb.storage.retry import RetryPolicy
from peopledb.storage.table import KeyValueTable
from peopledb.store.definitions import (
    EntityDefinition,
    convert_validation_error,
    entity_definitions,
)
from peopledb.store.repository import EntityRepository, next_timestamp

logger = logging.getLogger(__name__)

# Field of PersonWithRelations holding each child collection
RELATION_FIELDS: dict[EntityType, str] = {
    EntityType.ADDRESS: "addresses",
    EntityType.BANK: "bank_accounts",
    EntityType.CONTACT: "contacts",
    EntityType.EMPLOYMENT: "employments",
}


@dataclass
class InvariantViolation:
    """More than one primary/current child of a type, or an inconsistent one."""

    entity_type: EntityType
    person_id: str
    ids: list[str]
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_type": self.entity_type.value,
            "person_id": self.person_id,
            "ids": self.ids,
            "message": self.message,
        }


@dataclass
class InvariantReport:
    person_id: str
    violations: list[InvariantViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


class PersonsClient:
    """Entity store for persons and their children.

    Constructed explicitly around a table and passed to whoever needs it.
    Writes to a person and its children are independent, never atomic.

    Example:
        >>> client = PersonsClient(MemoryTable())
        >>> ada = await client.create_person({"first_name": "Ada", "last_name": "Lovelace"})
        >>> await client.delete_person(ada.id)
        1
    """

    def __init__(
        self,
        table: KeyValueTable,
        retry: RetryPolicy | None = None,
        page_size: int = 1000,
    ) -> None:
        self._table = table
        self._retry = retry or RetryPolicy()
        self._page_size = page_size
        self._definitions = entity_definitions()
        self._repos = {
            entity_type: EntityRepository(table, definition, self._retry, page_size)
            for entity_type, definition in self._definitions.items()
        }

    @property
    def table(self) -> KeyValueTable:
        return self._table

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    @property
    def page_size(self) -> int:
        return self._page_size

    def definition(self, entity_type: EntityType) -> EntityDefinition:
        return self._definitions[entity_type]

    def repository(self, entity_type: EntityType) -> EntityRepository:
        return self._repos[entity_type]

    async def close(self) -> None:
        await self._table.close()

    # === Persons ===

    async def get_person(self, person_id: str) -> Person | None:
        person = await self._repos[EntityType.PERSON].get(EntityKey.person(person_id))
        return cast(Person | None, person)

    async def get_person_with_relations(self, person_id: str) -> PersonWithRelations | None:
        """Fetch a person and every child in one partition query."""
        partition = partition_key(person_id)
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            page = await self._retry.run(
                "get_person_with_relations",
                lambda c=cursor: self._table.query(partition, limit=self._page_size, cursor=c),
            )
            items.extend(page.items)
            if page.exhausted:
                break
            cursor = page.cursor

        person: BaseModel | None = None
        relations: dict[str, list[BaseModel]] = {name: [] for name in RELATION_FIELDS.values()}
        for item in items:
            entity_type, _ = decode_sort(item["sk"])
            entity = self._definitions[entity_type].from_item(item)
            if entity_type == EntityType.PERSON:
                person = entity
            else:
                relations[RELATION_FIELDS[entity_type]].append(entity)

        if person is None:
            if items:
                logger.warning(f"Person '{person_id}' has {len(items)} orphaned children")
            return None
        return PersonWithRelations(**person.model_dump(), **relations)

    async def list_persons(self) -> list[Person]:
        """All persons, ordered by last name, first name, id."""
        return cast(list[Person], await self._repos[EntityType.PERSON].list_all())

    async def create_person(self, data: PersonCreate | Mapping[str, Any]) -> Person:
        """Create a person, assigning an id if none is given and stamping timestamps.

        Raises:
            ValidationError: If a field is missing or invalid
        """
        if isinstance(data, PersonCreate):
            values = data.model_dump(mode="json")
        else:
            values = dict(data)
        person_id = check_id(values.get("id") or new_id())
        now = next_timestamp()
        values.update(id=person_id, created_at=now, updated_at=now)
        person = await self._repos[EntityType.PERSON].put(values)
        logger.info(f"Created person '{person_id}'")
        return cast(Person, person)

    async def update_person(
        self, person_id: str, changes: PersonUpdate | Mapping[str, Any]
    ) -> Person | None:
        """Merge the non-None fields of ``changes``; None if the person is absent."""
        if not isinstance(changes, PersonUpdate):
            try:
                changes = PersonUpdate.model_validate(changes)
            except pydantic.ValidationError as e:
                raise convert_validation_error(e, "PersonUpdate") from e
        fields = changes.changes()
        person = await self._repos[EntityType.PERSON].patch(EntityKey.person(person_id), fields)
        return cast(Person | None, person)

    async def _child_keys(self, entity_type: EntityType, person_id: str) -> list[EntityKey]:
        partition = partition_key(person_id)
        prefix = child_prefix(entity_type)
        keys: list[EntityKey] = []
        cursor: str | None = None
        while True:
            page = await self._retry.run(
                f"list {entity_type.value} keys",
                lambda c=cursor: self._table.query(
                    partition, sort_prefix=prefix, limit=self._page_size, cursor=c
                ),
            )
            for item in page.items:
                _, child_id = decode_sort(item["sk"])
                keys.append(EntityKey.child(entity_type, person_id, cast(str, child_id)))
            if page.exhausted:
                break
            cursor = page.cursor
        return keys

    async def delete_person(self, person_id: str) -> int:
        """Delete a person and all of its children. See ``delete_person_cascade``."""
        return await self.delete_person_cascade(person_id)

    async def delete_person_cascade(self, person_id: str) -> int:
        """Delete every child of ``person_id`` and then the person itself.

        Children are enumerated by key only, so stored items that no longer
        validate are still removed. Enumeration and deletes run concurrently.
        Returns the number of items actually deleted; re-running after a
        failure is safe and eventually returns 0.

        Raises:
            PartialCascadeFailure: If some deletes failed
            MalformedKeyError: If a stored child sort key does not parse
        """
        check_id(person_id, "person_id")
        listings = await asyncio.gather(
            *(self._child_keys(t, person_id) for t in EntityType.children())
        )
        keys = [key for listing in listings for key in listing]

        results = await asyncio.gather(
            *(self._repos[k.entity_type].delete(k) for k in keys), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        deleted = sum(1 for r in results if r is True)

        if not errors:
            if await self._repos[EntityType.PERSON].delete(EntityKey.person(person_id)):
                deleted += 1
            logger.info(f"Deleted person '{person_id}' and {len(keys)} children")
            return deleted

        logger.error(
            f"Cascade delete of '{person_id}' failed for {len(errors)} of {len(keys)} children"
        )
        raise PartialCascadeFailure(
            person_id,
            found=len(keys) + 1,
            deleted=deleted,
            errors=[str(e) for e in errors],
        )

    # === Children ===

    async def list_children(self, entity_type: EntityType, person_id: str) -> list[BaseModel]:
        return await self._child_repo(entity_type).list_by_parent(person_id)

    async def get_child(
        self, entity_type: EntityType, person_id: str, child_id: str
    ) -> BaseModel | None:
        return await self._child_repo(entity_type).get(
            EntityKey.child(entity_type, person_id, child_id)
        )

    async def create_child(
        self, entity_type: EntityType, person_id: str, data: Mapping[str, Any]
    ) -> BaseModel:
        """Create a child of ``person_id``. The person is not checked for existence."""
        values = dict(data)
        values["id"] = check_id(values.get("id") or new_id())
        values["person_id"] = check_id(person_id, "person_id")
        return await self._child_repo(entity_type).put(values)

    async def update_child(
        self,
        entity_type: EntityType,
        person_id: str,
        child_id: str,
        data: Mapping[str, Any],
    ) -> BaseModel | None:
        """Fully replace an existing child; None if it does not exist."""
        repo = self._child_repo(entity_type)
        key = EntityKey.child(entity_type, person_id, child_id)
        if await repo.get(key) is None:
            return None
        return await repo.put({**data, "id": child_id, "person_id": person_id})

    async def delete_child(self, entity_type: EntityType, person_id: str, child_id: str) -> bool:
        return await self._child_repo(entity_type).delete(
            EntityKey.child(entity_type, person_id, child_id)
        )

    def _child_repo(self, entity_type: EntityType) -> EntityRepository:
        if entity_type == EntityType.PERSON:
            raise ValueError("Use the person operations for persons")
        return self._repos[entity_type]

    async def list_addresses(self, person_id: str) -> list[Address]:
        return cast(list[Address], await self.list_children(EntityType.ADDRESS, person_id))

    async def create_address(self, person_id: str, data: Mapping[str, Any]) -> Address:
        return cast(Address, await self.create_child(EntityType.ADDRESS, person_id, data))

    async def update_address(
        self, person_id: str, address_id: str, data: Mapping[str, Any]
    ) -> Address | None:
        return cast(
            Address | None,
            await self.update_child(EntityType.ADDRESS, person_id, address_id, data),
        )

    async def delete_address(self, person_id: str, address_id: str) -> bool:
        return await self.delete_child(EntityType.ADDRESS, person_id, address_id)

    async def list_bank_accounts(self, person_id: str) -> list[BankAccount]:
        return cast(list[BankAccount], await self.list_children(EntityType.BANK, person_id))

    async def create_bank_account(self, person_id: str, data: Mapping[str, Any]) -> BankAccount:
        return cast(BankAccount, await self.create_child(EntityType.BANK, person_id, data))

    async def update_bank_account(
        self, person_id: str, account_id: str, data: Mapping[str, Any]
    ) -> BankAccount | None:
        return cast(
            BankAccount | None,
            await self.update_child(EntityType.BANK, person_id, account_id, data),
        )

    async def delete_bank_account(self, person_id: str, account_id: str) -> bool:
        return await self.delete_child(EntityType.BANK, person_id, account_id)

    async def list_contacts(self, person_id: str) -> list[ContactInfo]:
        return cast(list[ContactInfo], await self.list_children(EntityType.CONTACT, person_id))

    async def create_contact(self, person_id: str, data: Mapping[str, Any]) -> ContactInfo:
        return cast(ContactInfo, await self.create_child(EntityType.CONTACT, person_id, data))

    async def update_contact(
        self, person_id: str, contact_id: str, data: Mapping[str, Any]
    ) -> ContactInfo | None:
        return cast(
            ContactInfo | None,
            await self.update_child(EntityType.CONTACT, person_id, contact_id, data),
        )

    async def delete_contact(self, person_id: str, contact_id: str) -> bool:
        return await self.delete_child(EntityType.CONTACT, person_id, contact_id)

    async def list_employments(self, person_id: str) -> list[Employment]:
        return cast(list[Employment], await self.list_children(EntityType.EMPLOYMENT, person_id))

    async def create_employment(self, person_id: str, data: Mapping[str, Any]) -> Employment:
        return cast(Employment, await self.create_child(EntityType.EMPLOYMENT, person_id, data))

    async def update_employment(
        self, person_id: str, employment_id: str, data: Mapping[str, Any]
    ) -> Employment | None:
        return cast(
            Employment | None,
            await self.update_child(EntityType.EMPLOYMENT, person_id, employment_id, data),
        )

    async def delete_employment(self, person_id: str, employment_id: str) -> bool:
        return await self.delete_child(EntityType.EMPLOYMENT, person_id, employment_id)

    # === Invariants ===

    async def check_primary_invariants(self, person_id: str) -> InvariantReport:
        """Report primary/current exclusivity violations without changing data.

        Flags more than one primary address, bank account or contact of the
        same contact type, more than one current employment, and current
        employments with an end date.
        """
        person = await self.get_person_with_relations(person_id)
        report = InvariantReport(person_id)
        if person is None:
            return report

        def flag(entity_type: EntityType, ids: list[str], message: str) -> None:
            report.violations.append(InvariantViolation(entity_type, person_id, ids, message))

        primary_addresses = [a.id for a in person.addresses if a.is_primary]
        if len(primary_addresses) > 1:
            flag(EntityType.ADDRESS, primary_addresses, "multiple primary addresses")

        primary_accounts = [b.id for b in person.bank_accounts if b.is_primary]
        if len(primary_accounts) > 1:
            flag(EntityType.BANK, primary_accounts, "multiple primary bank accounts")

        by_contact_type: dict[str, list[str]] = {}
        for contact in person.contacts:
            if contact.is_primary:
                by_contact_type.setdefault(str(contact.type), []).append(contact.id)
        for contact_type, ids in sorted(by_contact_type.items()):
            if len(ids) > 1:
                flag(EntityType.CONTACT, ids, f"multiple primary {contact_type} contacts")

        current_jobs = [e for e in person.employments if e.is_current]
        if len(current_jobs) > 1:
            flag(EntityType.EMPLOYMENT, [e.id for e in current_jobs], "multiple current employments")
        ended = [e.id for e in current_jobs if e.end_date is not None]
        if ended:
            flag(EntityType.EMPLOYMENT, ended, "current employment has an end date")

        return report
