"""Core components: entity models, key codec and database connection."""

from peopledb.core.connection import DatabaseConnection
from peopledb.core.keys import EntityKey, ItemKeys
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
)

__all__ = [
    "Address",
    "BankAccount",
    "ContactInfo",
    "DatabaseConnection",
    "Employment",
    "EntityKey",
    "EntityType",
    "ItemKeys",
    "Person",
    "PersonCreate",
    "PersonUpdate",
    "PersonWithRelations",
]
