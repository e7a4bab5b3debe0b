"""Custom exceptions for peopledb.

All exceptions carry a human-readable message plus a JSON-serializable
context dict, so callers (CLI, HTTP layers) can render them uniformly.
"""

from __future__ import annotations

from typing import Any


class PeopleDBError(Exception):
    """Base exception for all peopledb errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(PeopleDBError):
    """Required configuration is missing or invalid (fatal at startup)."""

    def __init__(self, setting: str, hint: str | None = None) -> None:
        message = f"Missing or invalid setting '{setting}'."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message, {"setting": setting})
        self.setting = setting


class ConnectionError(PeopleDBError):
    """Failed to connect to the database."""

    pass


class ValidationError(PeopleDBError):
    """Item does not satisfy the derived attribute schema."""

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message, {"field_errors": field_errors or {}})
        self.field_errors = field_errors or {}


class MalformedKeyError(PeopleDBError):
    """A stored or supplied key does not parse under the key format.

    Indicates data corruption or a key-format version mismatch. Not retryable.
    """

    def __init__(self, key: str, expected: str) -> None:
        message = f"Malformed key '{key}': expected {expected}."
        super().__init__(message, {"key": key, "expected": expected})
        self.key = key
        self.expected = expected


class TransientStoreError(PeopleDBError):
    """Network or throttling failure from the underlying store. Safe to retry."""

    pass


class StoreUnavailableError(PeopleDBError):
    """A transient failure persisted after all retry attempts."""

    def __init__(self, operation: str, attempts: int, cause: Exception | None = None) -> None:
        message = f"Store unavailable: '{operation}' failed after {attempts} attempts."
        if cause is not None:
            message = f"{message} Last error: {cause}"
        super().__init__(message, {"operation": operation, "attempts": attempts})
        self.operation = operation
        self.attempts = attempts


class PartialCascadeFailure(PeopleDBError):
    """A cascading delete removed only part of what it enumerated.

    The cascade is idempotent: re-run it until it reports nothing left.
    """

    def __init__(
        self,
        person_id: str,
        found: int,
        deleted: int,
        errors: list[str] | None = None,
    ) -> None:
        message = (
            f"Cascade delete of person '{person_id}' incomplete: "
            f"deleted {deleted} of {found} items. Re-run the delete to finish."
        )
        super().__init__(
            message,
            {
                "person_id": person_id,
                "found": found,
                "deleted": deleted,
                "errors": errors or [],
            },
        )
        self.person_id = person_id
        self.found = found
        self.deleted = deleted
        self.errors = errors or []
