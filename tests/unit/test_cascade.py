"""Tests for the cascading person delete."""

import pytest
from conftest import address, bank_account, contact, employment

from peopledb import PersonsClient
from peopledb.core.types import EntityType
from peopledb.exceptions import MalformedKeyError, PartialCascadeFailure, TransientStoreError
from peopledb.storage import MemoryTable, RetryPolicy


class FailingDeleteTable(MemoryTable):
    """Deletes of the given sort keys always fail transiently."""

    def __init__(self, failing_sort_keys: set[str]) -> None:
        super().__init__("failing")
        self.failing_sort_keys = set(failing_sort_keys)

    async def delete_item(self, pk: str, sk: str) -> bool:
        if sk in self.failing_sort_keys:
            raise TransientStoreError(f"throttled deleting {sk}")
        return await super().delete_item(pk, sk)


async def seed_family(client: PersonsClient, counts: dict[EntityType, int]) -> None:
    await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
    factories = {
        EntityType.ADDRESS: address,
        EntityType.BANK: bank_account,
        EntityType.CONTACT: contact,
        EntityType.EMPLOYMENT: employment,
    }
    for entity_type, count in counts.items():
        for i in range(count):
            await client.create_child(entity_type, "ada", factories[entity_type](id=f"{i}"))


class TestCascadeDelete:
    async def test_removes_everything(self, client: PersonsClient, table: MemoryTable) -> None:
        counts = {
            EntityType.ADDRESS: 3,
            EntityType.BANK: 2,
            EntityType.CONTACT: 5,
            EntityType.EMPLOYMENT: 1,
        }
        await seed_family(client, counts)
        await client.create_person({"id": "alan", "first_name": "Alan", "last_name": "Turing"})
        await client.create_address("alan", address(id="keep"))

        deleted = await client.delete_person("ada")

        assert deleted == sum(counts.values()) + 1
        assert await client.get_person("ada") is None
        for entity_type in EntityType.children():
            assert await client.list_children(entity_type, "ada") == []
        assert await client.get_person("alan") is not None
        assert [a.id for a in await client.list_addresses("alan")] == ["keep"]
        assert len(table) == 2

    async def test_idempotent(self, client: PersonsClient) -> None:
        await seed_family(client, {EntityType.CONTACT: 2})
        assert await client.delete_person_cascade("ada") == 3
        assert await client.delete_person_cascade("ada") == 0

    async def test_person_without_children(self, client: PersonsClient) -> None:
        await client.create_person({"id": "solo", "first_name": "Solo", "last_name": "Han"})
        assert await client.delete_person_cascade("solo") == 1

    async def test_orphaned_children_are_removed(self, client: PersonsClient) -> None:
        await client.create_address("ghost", address(id="a1"))
        assert await client.delete_person_cascade("ghost") == 1
        assert await client.list_addresses("ghost") == []

    async def test_partial_failure_reported(self) -> None:
        table = FailingDeleteTable({"BANK#1"})
        client = PersonsClient(table, retry=RetryPolicy(max_retries=2, base_delay=0))
        await seed_family(client, {EntityType.ADDRESS: 2, EntityType.BANK: 2})

        with pytest.raises(PartialCascadeFailure) as exc_info:
            await client.delete_person_cascade("ada")

        failure = exc_info.value
        assert failure.person_id == "ada"
        assert failure.found == 5
        assert failure.deleted == 3
        assert len(failure.errors) == 1
        # The person stays so the cascade can be found and re-run
        assert await client.get_person("ada") is not None
        assert [b.id for b in await client.list_bank_accounts("ada")] == ["1"]

        table.failing_sort_keys.clear()
        assert await client.delete_person_cascade("ada") == 2
        assert len(table) == 0

    async def test_invalid_stored_child_is_still_deleted(
        self, client: PersonsClient, table: MemoryTable
    ) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
        await client.create_address("ada", address(id="a1"))
        stored = await table.get_item("PERSON#ada", "ADDRESS#a1")
        assert stored is not None
        del stored["city"]
        await table.put_item(stored)

        assert await client.delete_person("ada") == 2
        assert len(table) == 0

    async def test_malformed_child_key_surfaces(
        self, client: PersonsClient, table: MemoryTable
    ) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
        await table.put_item(
            {"pk": "PERSON#ada", "sk": "ADDRESS#a1#extra", "entity_type": "ADDRESS"}
        )

        with pytest.raises(MalformedKeyError):
            await client.delete_person("ada")
        assert await client.get_person("ada") is not None
