"""Entity store and cross-entity pager."""

from peopledb.store.client import InvariantReport, InvariantViolation, PersonsClient
from peopledb.store.definitions import EntityDefinition, entity_definitions
from peopledb.store.pager import CompositeCursor, CrossEntityPager, EntityPage
from peopledb.store.repository import EntityRepository

__all__ = [
    "CompositeCursor",
    "CrossEntityPager",
    "EntityDefinition",
    "EntityPage",
    "EntityRepository",
    "InvariantReport",
    "InvariantViolation",
    "PersonsClient",
    "entity_definitions",
]
