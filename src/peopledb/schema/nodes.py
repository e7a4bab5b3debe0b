"""Declarative field-type tree.

A closed set of node kinds describing a validation schema. Trees are either
built by hand with the helper constructors below or translated from pydantic
models (``peopledb.schema.introspect``), then turned into storage attribute
schemas by ``peopledb.schema.derive``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

PrimitiveKind = Literal["string", "integer", "number", "boolean"]


@dataclass(frozen=True)
class PrimitiveNode:
    kind: PrimitiveKind


@dataclass(frozen=True)
class EnumNode:
    values: tuple[str, ...]


@dataclass(frozen=True)
class LiteralNode:
    value: Any


@dataclass(frozen=True)
class OptionalNode:
    """Value may be omitted."""

    inner: TypeNode


@dataclass(frozen=True)
class NullableNode:
    """Value may be null."""

    inner: TypeNode


@dataclass(frozen=True)
class DefaultNode:
    """Value falls back to ``default``; a callable default is a factory."""

    inner: TypeNode
    default: Any


@dataclass(frozen=True)
class ArrayNode:
    item: TypeNode


@dataclass(frozen=True)
class ObjectNode:
    fields: dict[str, TypeNode] = field(default_factory=dict)


@dataclass(frozen=True)
class UnionNode:
    options: tuple[TypeNode, ...]


@dataclass(frozen=True)
class IntersectionNode:
    left: TypeNode
    right: TypeNode


@dataclass(frozen=True)
class PipeNode:
    """Value is validated as ``source`` and then transformed."""

    source: TypeNode
    target: TypeNode | None = None


@dataclass(frozen=True)
class OpaqueNode:
    """A type the translator could not classify; kept so it can be reported."""

    description: str


TypeNode = Union[
    PrimitiveNode,
    EnumNode,
    LiteralNode,
    OptionalNode,
    NullableNode,
    DefaultNode,
    ArrayNode,
    ObjectNode,
    UnionNode,
    IntersectionNode,
    PipeNode,
    OpaqueNode,
]


# === Constructors ===


def string() -> PrimitiveNode:
    return PrimitiveNode("string")


def integer() -> PrimitiveNode:
    return PrimitiveNode("integer")


def number() -> PrimitiveNode:
    return PrimitiveNode("number")


def boolean() -> PrimitiveNode:
    return PrimitiveNode("boolean")


def enum(*values: str) -> EnumNode:
    return EnumNode(tuple(values))


def literal(value: Any) -> LiteralNode:
    return LiteralNode(value)


def optional(inner: TypeNode) -> OptionalNode:
    return OptionalNode(inner)


def nullable(inner: TypeNode) -> NullableNode:
    return NullableNode(inner)


def default(inner: TypeNode, value: Any) -> DefaultNode:
    return DefaultNode(inner, value)


def array(item: TypeNode) -> ArrayNode:
    return ArrayNode(item)


def obj(**fields: TypeNode) -> ObjectNode:
    return ObjectNode(dict(fields))


def union(*options: TypeNode) -> UnionNode:
    return UnionNode(tuple(options))


def intersection(left: TypeNode, right: TypeNode) -> IntersectionNode:
    return IntersectionNode(left, right)


def pipe(source: TypeNode, target: TypeNode | None = None) -> PipeNode:
    return PipeNode(source, target)


def walk(node: TypeNode) -> list[TypeNode]:
    """Return ``node`` and every node below it, depth first."""
    found: list[TypeNode] = [node]
    if isinstance(node, (OptionalNode, NullableNode, DefaultNode)):
        found.extend(walk(node.inner))
    elif isinstance(node, ArrayNode):
        found.extend(walk(node.item))
    elif isinstance(node, ObjectNode):
        for child in node.fields.values():
            found.extend(walk(child))
    elif isinstance(node, UnionNode):
        for option in node.options:
            found.extend(walk(option))
    elif isinstance(node, IntersectionNode):
        found.extend(walk(node.left))
        found.extend(walk(node.right))
    elif isinstance(node, PipeNode):
        found.extend(walk(node.source))
        if node.target is not None:
            found.extend(walk(node.target))
    return found
