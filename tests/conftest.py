"""Shared test fixtures for peopledb."""

import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest

from peopledb import PersonsClient
from peopledb.core.connection import DatabaseConnection
from peopledb.core.types import Person
from peopledb.storage import MemoryTable, RetryPolicy, SqlTable
from peopledb.store import CrossEntityPager

# Small pages so listing and paging code paths loop more than once
PAGE_SIZE = 2


@pytest.fixture
def table() -> MemoryTable:
    """Fresh in-memory table per test."""
    return MemoryTable("people-test")


@pytest.fixture
def retry() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(max_retries=3, base_delay=0)


@pytest.fixture
def client(table: MemoryTable, retry: RetryPolicy) -> PersonsClient:
    return PersonsClient(table, retry=retry, page_size=PAGE_SIZE)


@pytest.fixture
def pager(table: MemoryTable, retry: RetryPolicy) -> CrossEntityPager:
    return CrossEntityPager(table, page_size=PAGE_SIZE, retry=retry)


@pytest.fixture
def sqlite_path() -> Generator[str, None, None]:
    """Temporary SQLite database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.remove(db_path + suffix)


@pytest.fixture
async def sql_table(sqlite_path: str) -> AsyncGenerator[SqlTable, None]:
    """SqlTable on a temporary SQLite file, created and disposed per test."""
    sql_table = SqlTable(DatabaseConnection(f"sqlite:///{sqlite_path}"), "people")
    await sql_table.create()
    yield sql_table
    await sql_table.close()


def address(**overrides: Any) -> dict[str, Any]:
    data = {
        "type": "home",
        "street": "12 St James's Square",
        "city": "London",
        "state": "Greater London",
        "postal_code": "SW1Y 4JH",
        "country": "UK",
        "is_primary": False,
    }
    data.update(overrides)
    return data


def bank_account(**overrides: Any) -> dict[str, Any]:
    data = {
        "bank_name": "Coutts",
        "account_type": "checking",
        "account_number_last4": "1815",
        "is_primary": False,
    }
    data.update(overrides)
    return data


def contact(**overrides: Any) -> dict[str, Any]:
    data = {"type": "email", "value": "someone@example.com", "is_primary": False}
    data.update(overrides)
    return data


def employment(**overrides: Any) -> dict[str, Any]:
    data = {
        "company_name": "Analytical Engines Ltd",
        "position": "Analyst",
        "start_date": "1840-01-01",
        "is_current": False,
    }
    data.update(overrides)
    return data


async def seed_ada_and_alan(client: PersonsClient) -> tuple[Person, Person]:
    """Two persons with primary/current children that feed the search documents."""
    ada = await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
    await client.create_contact(
        ada.id, contact(value="ada@example.com", is_primary=True, is_verified=True)
    )
    await client.create_address(ada.id, address(city="London", is_primary=True))

    alan = await client.create_person(
        {"id": "alan", "first_name": "Alan", "last_name": "Turing"}
    )
    await client.create_contact(alan.id, contact(value="alan@example.com", is_primary=True))
    await client.create_employment(
        alan.id,
        employment(company_name="Bletchley", position="Cryptanalyst", is_current=True),
    )
    return ada, alan
