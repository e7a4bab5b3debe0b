"""Translate pydantic models into field-type trees.

Only public typing and pydantic APIs are used: ``typing.get_origin`` /
``get_args`` on annotations and ``BaseModel.model_fields`` for
requiredness, defaults and attached validators.
"""

from __future__ import annotations

import types
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, PlainValidator, WrapValidator
from pydantic.fields import FieldInfo

from peopledb.schema.nodes import (
    ArrayNode,
    DefaultNode,
    EnumNode,
    LiteralNode,
    NullableNode,
    ObjectNode,
    OpaqueNode,
    OptionalNode,
    PipeNode,
    PrimitiveNode,
    TypeNode,
    UnionNode,
)

_VALIDATOR_TYPES = (AfterValidator, BeforeValidator, PlainValidator, WrapValidator)

# Values of these types are stored as their ISO / canonical string form
_STRING_LIKE = (str, date, datetime, time, UUID)


def _with_validators(node: TypeNode, metadata: Sequence[Any]) -> TypeNode:
    if any(isinstance(m, _VALIDATOR_TYPES) for m in metadata):
        return PipeNode(node)
    return node


def annotation_to_node(annotation: Any) -> TypeNode:
    """Translate a type annotation into a node (no wrappers for defaults)."""
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return _with_validators(annotation_to_node(args[0]), args[1:])

    if origin is Literal:
        if len(args) == 1:
            return LiteralNode(args[0])
        return UnionNode(tuple(LiteralNode(a) for a in args))

    if origin is Union or origin is types.UnionType:
        options = [a for a in args if a is not type(None)]
        if len(options) == 1:
            inner = annotation_to_node(options[0])
        else:
            inner = UnionNode(tuple(annotation_to_node(a) for a in options))
        if len(options) < len(args):
            return NullableNode(inner)
        return inner

    if origin in (list, tuple, set, frozenset) or (
        isinstance(origin, type) and issubclass(origin, Sequence) and origin is not str
    ):
        item = annotation_to_node(args[0]) if args else OpaqueNode("Any")
        return ArrayNode(item)

    if origin is dict or (isinstance(origin, type) and issubclass(origin, Mapping)):
        return ObjectNode()

    if annotation is bool:
        return PrimitiveNode("boolean")
    if annotation is int:
        return PrimitiveNode("integer")
    if annotation in (float, Decimal):
        return PrimitiveNode("number")
    if annotation in _STRING_LIKE:
        return PrimitiveNode("string")
    if annotation in (list, tuple, set):
        return ArrayNode(OpaqueNode("Any"))
    if annotation is dict:
        return ObjectNode()

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return EnumNode(tuple(str(member.value) for member in annotation))
        if issubclass(annotation, BaseModel):
            return schema_from_model(annotation)

    return OpaqueNode(repr(annotation))


def field_to_node(info: FieldInfo) -> TypeNode:
    """Translate one pydantic field, wrapping for requiredness and defaults."""
    node = _with_validators(annotation_to_node(info.annotation), info.metadata)

    if info.is_required():
        return node
    if info.default_factory is not None:
        return DefaultNode(node, info.default_factory)
    if info.default is None:
        return OptionalNode(node)
    return DefaultNode(node, info.default)


def schema_from_model(model: type[BaseModel]) -> ObjectNode:
    """Build the field-type tree of a pydantic model."""
    return ObjectNode({name: field_to_node(info) for name, info in model.model_fields.items()})
