"""Derive storage attribute schemas from field-type trees.

Runs once per entity type at startup. The walk is total over the node kinds
in ``peopledb.schema.nodes``:

- optional / nullable wrappers mark the field not required
- default wrappers attach the (resolved) default value
- primitives map to ``string`` / ``number`` / ``boolean``
- enums and string literals map to an allowed-value tuple
- arrays map to ``list``; objects and intersections to ``map``
- unions map to ``any``
- pipes are stored as their source type

Anything else falls back to ``string`` with a warning, since it most likely
means stored data will be mistyped.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from peopledb.schema.attributes import AttributeSchema, AttributeSpec
from peopledb.schema.nodes import (
    ArrayNode,
    DefaultNode,
    EnumNode,
    IntersectionNode,
    LiteralNode,
    NullableNode,
    ObjectNode,
    OptionalNode,
    PipeNode,
    PrimitiveNode,
    TypeNode,
    UnionNode,
)

logger = logging.getLogger(__name__)

_PRIMITIVE_STORAGE = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
}


def resolve_default(value: Any) -> Any:
    """Return a default value, calling it first if it is a factory."""
    if callable(value):
        return value()
    return value


def _literal_storage(value: Any) -> str | tuple[Any, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "any"


def derive_attribute(node: TypeNode, path: str = "<root>") -> AttributeSpec:
    """Derive the attribute spec of a single field node."""
    if isinstance(node, (OptionalNode, NullableNode)):
        return replace(derive_attribute(node.inner, path), required=False)

    if isinstance(node, DefaultNode):
        inner = derive_attribute(node.inner, path)
        return replace(inner, default=resolve_default(node.default))

    if isinstance(node, PrimitiveNode):
        return AttributeSpec(_PRIMITIVE_STORAGE[node.kind])

    if isinstance(node, EnumNode):
        return AttributeSpec(tuple(node.values))

    if isinstance(node, LiteralNode):
        return AttributeSpec(_literal_storage(node.value))

    if isinstance(node, ArrayNode):
        return AttributeSpec("list")

    if isinstance(node, (ObjectNode, IntersectionNode)):
        return AttributeSpec("map")

    if isinstance(node, UnionNode):
        return AttributeSpec("any")

    if isinstance(node, PipeNode):
        return derive_attribute(node.source, path)

    logger.warning(f"Unrecognized schema node for field '{path}': {node!r}; storing as string")
    return AttributeSpec("string")


def derive_attributes(schema: TypeNode, entity_name: str = "<entity>") -> AttributeSchema:
    """Derive the attribute schema of an object node, one entry per field."""
    if not isinstance(schema, ObjectNode):
        logger.warning(
            f"Schema for '{entity_name}' is not an object node ({type(schema).__name__}); "
            "no attributes derived"
        )
        return {}

    return {
        name: derive_attribute(node, f"{entity_name}.{name}")
        for name, node in schema.fields.items()
    }
