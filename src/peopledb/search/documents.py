"""Flatten persons and their primary/current children into search documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from peopledb.core.types import (
    Address,
    BankAccount,
    ContactInfo,
    ContactType,
    Employment,
    EntityType,
    Person,
    PersonWithRelations,
)
from peopledb.exceptions import PeopleDBError
from peopledb.storage.table import ENTITY_TYPE_ATTRIBUTE
from peopledb.store.definitions import entity_definitions

logger = logging.getLogger(__name__)

_PHONE_TYPES = {ContactType.PHONE.value, ContactType.MOBILE.value}


class PersonSearchDocument(BaseModel):
    """One document per person."""

    id: str
    first_name: str
    last_name: str
    full_name: str
    city: str | None = None
    country: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    bank: str | None = None

    @classmethod
    def from_person(cls, person: Person) -> PersonSearchDocument:
        return cls(
            id=person.id,
            first_name=person.first_name,
            last_name=person.last_name,
            full_name=f"{person.first_name} {person.last_name}",
        )


# Fields fed to the full-text index (``id`` is stored but not searched)
SEARCHABLE_FIELDS: tuple[str, ...] = tuple(
    name for name in PersonSearchDocument.model_fields if name != "id"
)


def _apply_child(document: PersonSearchDocument, child: BaseModel) -> None:
    if isinstance(child, Address) and child.is_primary:
        document.city = child.city
        document.country = child.country
    elif isinstance(child, ContactInfo) and child.is_primary:
        if child.type == ContactType.EMAIL.value:
            document.email = child.value
        elif child.type in _PHONE_TYPES:
            document.phone = child.value
    elif isinstance(child, Employment) and child.is_current:
        document.company = child.company_name
        document.position = child.position
    elif isinstance(child, BankAccount) and child.is_primary:
        document.bank = child.bank_name


def _to_entity(record: Mapping[str, Any] | BaseModel) -> BaseModel:
    if isinstance(record, BaseModel):
        return record
    entity_type = EntityType(record[ENTITY_TYPE_ATTRIBUTE])
    definition = entity_definitions()[entity_type]
    if "pk" in record:
        return definition.from_item(record)
    return definition.validate(record)


def merge_entities(
    records: Iterable[Mapping[str, Any] | BaseModel],
) -> dict[str, PersonSearchDocument]:
    """Build one document per person from a mixed batch of entities.

    Records may be raw table items or models. Persons seed the documents;
    then each primary/current child writes its fields into its person's
    document, last write winning. Records that fail to parse are logged and
    skipped, as are children whose person is not in the batch.
    """
    persons: list[Person] = []
    children: list[BaseModel] = []
    for record in records:
        try:
            entity = _to_entity(record)
        except (PeopleDBError, KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed record during index build: {e}")
            continue
        if isinstance(entity, PersonWithRelations):
            persons.append(entity)
            children.extend(
                [*entity.addresses, *entity.bank_accounts, *entity.contacts, *entity.employments]
            )
        elif isinstance(entity, Person):
            persons.append(entity)
        else:
            children.append(entity)

    documents = {p.id: PersonSearchDocument.from_person(p) for p in persons}
    for child in children:
        person_id = child.person_id  # type: ignore[attr-defined]
        document = documents.get(person_id)
        if document is None:
            logger.debug(f"Skipping {type(child).__name__} of unknown person '{person_id}'")
            continue
        _apply_child(document, child)
    return documents


def to_search_documents(
    records: Iterable[Mapping[str, Any] | BaseModel],
) -> list[PersonSearchDocument]:
    """``merge_entities`` as a list, in person order of first appearance."""
    return list(merge_entities(records).values())
