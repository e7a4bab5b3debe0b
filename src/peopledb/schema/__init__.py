"""Schema derivation: validation models to storage attribute schemas."""

from peopledb.schema.attributes import (
    NO_DEFAULT,
    AttributeSchema,
    AttributeSpec,
    apply_schema,
)
from peopledb.schema.derive import derive_attribute, derive_attributes
from peopledb.schema.introspect import schema_from_model

__all__ = [
    "NO_DEFAULT",
    "AttributeSchema",
    "AttributeSpec",
    "apply_schema",
    "derive_attribute",
    "derive_attributes",
    "schema_from_model",
]
