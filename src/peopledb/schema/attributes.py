"""Storage attribute schemas and item validation against them."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from peopledb.exceptions import ValidationError

STORAGE_TYPES = ("string", "number", "boolean", "list", "map", "any")


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class AttributeSpec:
    """How one field is stored.

    ``storage_type`` is one of ``STORAGE_TYPES`` or a tuple of allowed values
    (enums and string literals).
    """

    storage_type: str | tuple[Any, ...]
    required: bool = True
    default: Any = NO_DEFAULT

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable description."""
        storage_type = (
            list(self.storage_type) if isinstance(self.storage_type, tuple) else self.storage_type
        )
        result: dict[str, Any] = {"type": storage_type, "required": self.required}
        if self.has_default:
            result["default"] = self.default
        return result


AttributeSchema = dict[str, AttributeSpec]


def _type_error(spec: AttributeSpec, value: Any) -> str | None:
    storage_type = spec.storage_type
    if isinstance(storage_type, tuple):
        if value not in storage_type:
            return f"must be one of {list(storage_type)}, got {value!r}"
        return None
    if storage_type == "string" and not isinstance(value, str):
        return f"expected string, got {type(value).__name__}"
    if storage_type == "number" and (
        isinstance(value, bool) or not isinstance(value, (int, float))
    ):
        return f"expected number, got {type(value).__name__}"
    if storage_type == "boolean" and not isinstance(value, bool):
        return f"expected boolean, got {type(value).__name__}"
    if storage_type == "list" and not isinstance(value, (list, tuple)):
        return f"expected list, got {type(value).__name__}"
    if storage_type == "map" and not isinstance(value, Mapping):
        return f"expected map, got {type(value).__name__}"
    return None


def apply_schema(
    schema: AttributeSchema,
    data: Mapping[str, Any],
    entity_name: str,
    partial: bool = False,
) -> dict[str, Any]:
    """Validate ``data`` and return the attributes to store.

    Missing values are filled from defaults; ``None`` counts as missing and is
    dropped from the result. Unknown fields are dropped. With ``partial``,
    missing required fields are not reported (used for patches).

    Raises:
        ValidationError: With one entry per offending field
    """
    errors: dict[str, str] = {}
    result: dict[str, Any] = {}

    for name, spec in schema.items():
        value = data.get(name)
        if value is None:
            if partial:
                continue
            if spec.has_default:
                result[name] = copy.deepcopy(spec.default)
            elif spec.required:
                errors[name] = "required field is missing"
            continue

        problem = _type_error(spec, value)
        if problem:
            errors[name] = problem
            continue
        result[name] = value

    if errors:
        fields = ", ".join(sorted(errors))
        raise ValidationError(f"Invalid {entity_name}: {fields}", errors)
    return result
