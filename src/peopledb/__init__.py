"""peopledb - persons and their records in a single partitioned table.

One Person owns any number of addresses, bank accounts, contacts and
employments. Everything lives in one key-value table (SQLite or PostgreSQL
through SQLAlchemy) under composite keys that serve three access patterns:
one person with all children, all items of one type, and everything for
building the in-memory fuzzy search index.

Example:
    from peopledb import PeopleDB, Settings

    async with PeopleDB.from_settings(Settings(table_name="people")) as db:
        await db.init_schema()
        ada = await db.persons.create_person({"first_name": "Ada", "last_name": "Lovelace"})
        await db.persons.create_contact(
            ada.id, {"type": "email", "value": "ada@example.com", "is_primary": True}
        )
        hits = await db.search("lovelace")
"""

from peopledb.config import Settings
from peopledb.core.engine import PeopleDB
from peopledb.core.types import (
    AccountType,
    Address,
    AddressType,
    BankAccount,
    ContactInfo,
    ContactType,
    Employment,
    EntityType,
    Gender,
    Person,
    PersonCreate,
    PersonUpdate,
    PersonWithRelations,
)
from peopledb.exceptions import (
    ConfigurationError,
    ConnectionError,
    MalformedKeyError,
    PartialCascadeFailure,
    PeopleDBError,
    StoreUnavailableError,
    TransientStoreError,
    ValidationError,
)
from peopledb.search import PersonSearchDocument, PersonSearchIndex, SearchIndexSync, SearchResult
from peopledb.storage import MemoryTable, RetryPolicy, SqlTable
from peopledb.store import CompositeCursor, CrossEntityPager, EntityPage, PersonsClient

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "PeopleDB",
    "PersonsClient",
    "CrossEntityPager",
    "CompositeCursor",
    "EntityPage",
    "PersonSearchIndex",
    "PersonSearchDocument",
    "SearchIndexSync",
    "SearchResult",
    "Settings",
    # Tables
    "MemoryTable",
    "SqlTable",
    "RetryPolicy",
    # Models
    "AccountType",
    "Address",
    "AddressType",
    "BankAccount",
    "ContactInfo",
    "ContactType",
    "Employment",
    "EntityType",
    "Gender",
    "Person",
    "PersonCreate",
    "PersonUpdate",
    "PersonWithRelations",
    # Exceptions
    "ConfigurationError",
    "ConnectionError",
    "MalformedKeyError",
    "PartialCascadeFailure",
    "PeopleDBError",
    "StoreUnavailableError",
    "TransientStoreError",
    "ValidationError",
]
