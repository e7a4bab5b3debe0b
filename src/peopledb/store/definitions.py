"""Per-entity-type storage definitions.

Each definition ties a pydantic model to its derived attribute schema and
knows how to turn a validated model into a table item (and back). The
registry is derived once, from the models, the first time it is needed.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import pydantic
from pydantic import BaseModel

from peopledb.core.keys import EntityKey, decode_primary, encode
from peopledb.core.types import ENTITY_MODELS, EntityType
from peopledb.exceptions import MalformedKeyError, ValidationError
from peopledb.schema import AttributeSchema, apply_schema, derive_attributes, schema_from_model
from peopledb.schema.nodes import LiteralNode, ObjectNode
from peopledb.storage.table import ENTITY_TYPE_ATTRIBUTE, KEY_ATTRIBUTES


def convert_validation_error(error: pydantic.ValidationError, entity_name: str) -> ValidationError:
    """Flatten a pydantic error into a ``ValidationError`` with one entry per field."""
    field_errors: dict[str, str] = {}
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        field_errors.setdefault(loc, err["msg"])
    fields = ", ".join(sorted(field_errors))
    return ValidationError(f"Invalid {entity_name}: {fields}", field_errors)


def entity_schema(entity_type: EntityType) -> ObjectNode:
    """Field-type tree of a stored item: the model's fields plus the discriminator."""
    tree = schema_from_model(ENTITY_MODELS[entity_type])
    return ObjectNode({**tree.fields, ENTITY_TYPE_ATTRIBUTE: LiteralNode(entity_type.value)})


@dataclass(frozen=True)
class EntityDefinition:
    """How one entity type is validated, keyed and stored."""

    entity_type: EntityType
    model: type[BaseModel]
    attributes: AttributeSchema

    @property
    def name(self) -> str:
        return self.model.__name__

    def validate(self, data: Mapping[str, Any] | BaseModel) -> BaseModel:
        """Validate input against the model.

        Raises:
            ValidationError: If any field is missing or invalid
        """
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            return self.model.model_validate(data)
        except pydantic.ValidationError as e:
            raise convert_validation_error(e, self.name) from e

    def key_of(self, entity: BaseModel) -> EntityKey:
        if self.entity_type == EntityType.PERSON:
            return EntityKey.person(entity.id)  # type: ignore[attr-defined]
        return EntityKey.child(
            self.entity_type,
            entity.person_id,  # type: ignore[attr-defined]
            entity.id,  # type: ignore[attr-defined]
        )

    def to_item(self, entity: BaseModel) -> dict[str, Any]:
        """Shape a validated entity into a table item.

        ``None`` values are not stored; they read back as the model default.
        """
        data = entity.model_dump(mode="json")
        data[ENTITY_TYPE_ATTRIBUTE] = self.entity_type.value
        attributes = apply_schema(self.attributes, data, self.name)
        keys = encode(
            self.key_of(entity),
            last_name=attributes.get("last_name"),
            first_name=attributes.get("first_name"),
        )
        return {**keys.as_dict(), **attributes}

    def from_item(self, item: Mapping[str, Any]) -> BaseModel:
        """Rebuild an entity from a stored item.

        Raises:
            MalformedKeyError: If the item's primary key does not parse or
                names a different entity type
            ValidationError: If the stored attributes no longer validate
        """
        pk, sk = item.get("pk", ""), item.get("sk", "")
        key = decode_primary(pk, sk)
        if key.entity_type != self.entity_type:
            raise MalformedKeyError(sk, f"a {self.entity_type.value} sort key")
        attributes = {k: v for k, v in item.items() if k not in KEY_ATTRIBUTES}
        return self.validate(attributes)


@functools.cache
def entity_definitions() -> dict[EntityType, EntityDefinition]:
    """Derive the definition of every entity type (computed once)."""
    return {
        entity_type: EntityDefinition(
            entity_type=entity_type,
            model=model,
            attributes=derive_attributes(entity_schema(entity_type), model.__name__),
        )
        for entity_type, model in ENTITY_MODELS.items()
    }
