"""Tests for the entity store (PersonsClient and EntityRepository)."""

import asyncio
from datetime import date

import pytest
from conftest import address, bank_account, contact, employment

from peopledb import PersonsClient
from peopledb.core.keys import EntityKey
from peopledb.core.types import Address, EntityType, Person, PersonCreate, PersonUpdate
from peopledb.exceptions import MalformedKeyError, ValidationError
from peopledb.storage import MemoryTable


class TestPersons:
    """Person CRUD."""

    async def test_create_assigns_id_and_timestamps(self, client: PersonsClient) -> None:
        person = await client.create_person(PersonCreate(first_name="Ada", last_name="Lovelace"))
        assert person.id
        assert person.created_at == person.updated_at
        assert person.created_at.tzinfo is not None

    async def test_create_keeps_explicit_id(self, client: PersonsClient) -> None:
        person = await client.create_person(
            {"id": "ada", "first_name": "Ada", "last_name": "Lovelace", "gender": "female"}
        )
        assert person.id == "ada"
        fetched = await client.get_person("ada")
        assert fetched == person

    async def test_stored_item_layout(self, client: PersonsClient, table: MemoryTable) -> None:
        await client.create_person(
            {"id": "ada", "first_name": "Ada", "last_name": "Lovelace", "date_of_birth": "1815-12-10"}
        )
        [item] = table.items()
        assert item["pk"] == "PERSON#ada"
        assert item["sk"] == "PROFILE"
        assert item["gsi1pk"] == "PERSONS"
        assert item["gsi1sk"] == "PERSON#lovelace#ada#ada"
        assert item["gsi2sk"] == "PERSON#ada#PROFILE"
        assert item["entity_type"] == "PERSON"
        assert item["date_of_birth"] == "1815-12-10"
        assert "gender" not in item

    async def test_get_missing_returns_none(self, client: PersonsClient) -> None:
        assert await client.get_person("nobody") is None
        assert await client.get_person_with_relations("nobody") is None

    @pytest.mark.parametrize(
        "data",
        [
            {"last_name": "Lovelace"},
            {"first_name": "", "last_name": "Lovelace"},
            {"first_name": "Ada", "last_name": "Lovelace", "gender": "robot"},
        ],
    )
    async def test_create_invalid(self, client: PersonsClient, data: dict) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await client.create_person(data)
        assert exc_info.value.field_errors

    async def test_create_rejects_separator_in_id(self, client: PersonsClient) -> None:
        with pytest.raises(ValidationError):
            await client.create_person({"id": "a#b", "first_name": "A", "last_name": "B"})

    async def test_list_persons_sorted_by_name(self, client: PersonsClient) -> None:
        for first, last in [("Alan", "Turing"), ("Ada", "Lovelace"), ("Grace", "Hopper")]:
            await client.create_person({"first_name": first, "last_name": last})
        persons = await client.list_persons()
        assert [p.last_name for p in persons] == ["Hopper", "Lovelace", "Turing"]

    async def test_update_merges_fields(self, client: PersonsClient) -> None:
        person = await client.create_person(
            {"id": "ada", "first_name": "Ada", "last_name": "Byron", "gender": "female"}
        )
        updated = await client.update_person("ada", PersonUpdate(last_name="Lovelace"))
        assert updated is not None
        assert updated.last_name == "Lovelace"
        assert updated.first_name == "Ada"
        assert updated.gender == "female"
        assert updated.created_at == person.created_at
        assert updated.updated_at > person.updated_at

    async def test_update_reindexes_name(self, client: PersonsClient) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Byron"})
        await client.create_person({"id": "bob", "first_name": "Bob", "last_name": "Kane"})
        await client.update_person("ada", {"last_name": "Lovelace"})
        assert [p.id for p in await client.list_persons()] == ["bob", "ada"]

    async def test_update_missing_returns_none(self, client: PersonsClient) -> None:
        assert await client.update_person("nobody", {"first_name": "X"}) is None

    async def test_update_invalid(self, client: PersonsClient) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Byron"})
        with pytest.raises(ValidationError):
            await client.update_person("ada", {"first_name": ""})

    async def test_updated_at_strictly_increases(self, client: PersonsClient) -> None:
        person = await client.create_person({"first_name": "Ada", "last_name": "Lovelace"})
        previous = person.updated_at
        for i in range(20):
            updated = await client.update_person(person.id, {"first_name": f"Ada{i}"})
            assert updated is not None
            assert updated.updated_at > previous
            previous = updated.updated_at

    async def test_empty_update_still_touches(self, client: PersonsClient) -> None:
        person = await client.create_person({"first_name": "Ada", "last_name": "Lovelace"})
        updated = await client.update_person(person.id, {})
        assert updated is not None
        assert updated.updated_at > person.updated_at


class TestChildren:
    """Child CRUD scoped by person."""

    async def test_create_and_list(self, client: PersonsClient) -> None:
        for i in range(5):
            await client.create_address("ada", address(id=f"a{i}", city=f"City{i}"))
        await client.create_contact("ada", contact(id="c1"))
        await client.create_address("alan", address(id="other"))

        addresses = await client.list_addresses("ada")
        assert [a.id for a in addresses] == ["a0", "a1", "a2", "a3", "a4"]
        assert all(isinstance(a, Address) and a.person_id == "ada" for a in addresses)
        assert [c.id for c in await client.list_contacts("ada")] == ["c1"]
        assert await client.list_bank_accounts("ada") == []

    async def test_person_id_comes_from_scope(self, client: PersonsClient) -> None:
        account = await client.create_bank_account("ada", bank_account(person_id="someone-else"))
        assert account.person_id == "ada"

    async def test_missing_required_field(self, client: PersonsClient) -> None:
        data = contact()
        del data["value"]
        with pytest.raises(ValidationError) as exc_info:
            await client.create_contact("ada", data)
        assert "value" in exc_info.value.field_errors

    async def test_employment_end_date_none_not_stored(
        self, client: PersonsClient, table: MemoryTable
    ) -> None:
        job = await client.create_employment("ada", employment(id="e1", end_date=None))
        [item] = table.items()
        assert "end_date" not in item
        assert item["currency"] == "USD"
        [fetched] = await client.list_employments("ada")
        assert fetched == job
        assert fetched.end_date is None

    async def test_update_replaces_whole_record(self, client: PersonsClient) -> None:
        await client.create_contact(
            "ada", contact(id="c1", value="ada@example.com", is_verified=True)
        )
        updated = await client.update_contact(
            "ada", "c1", {"type": "phone", "value": "+44 20 7946 0000"}
        )
        assert updated is not None
        assert updated.type == "phone"
        assert updated.is_verified is False

    async def test_update_missing_child(self, client: PersonsClient) -> None:
        assert await client.update_address("ada", "nope", address()) is None

    async def test_delete(self, client: PersonsClient) -> None:
        await client.create_employment("ada", employment(id="e1", start_date=date(1840, 1, 1)))
        assert await client.delete_employment("ada", "e1") is True
        assert await client.delete_employment("ada", "e1") is False
        assert await client.list_employments("ada") == []

    async def test_person_type_rejected_for_child_ops(self, client: PersonsClient) -> None:
        with pytest.raises(ValueError):
            await client.list_children(EntityType.PERSON, "ada")


class TestPersonWithRelations:
    async def test_one_partition_read(self, client: PersonsClient) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
        await client.create_address("ada", address(id="a1"))
        await client.create_bank_account("ada", bank_account(id="b1"))
        await client.create_bank_account("ada", bank_account(id="b2"))
        await client.create_contact("ada", contact(id="c1"))
        await client.create_employment("ada", employment(id="e1"))

        person = await client.get_person_with_relations("ada")
        assert person is not None
        assert person.first_name == "Ada"
        assert [a.id for a in person.addresses] == ["a1"]
        assert [b.id for b in person.bank_accounts] == ["b1", "b2"]
        assert [c.id for c in person.contacts] == ["c1"]
        assert [e.id for e in person.employments] == ["e1"]

    async def test_malformed_sort_key_surfaces(
        self, client: PersonsClient, table: MemoryTable
    ) -> None:
        await client.create_person({"id": "ada", "first_name": "Ada", "last_name": "Lovelace"})
        await table.put_item({"pk": "PERSON#ada", "sk": "WIDGET#1", "entity_type": "WIDGET"})
        with pytest.raises(MalformedKeyError):
            await client.get_person_with_relations("ada")


class TestRepository:
    async def test_patch_only_for_persons(self, client: PersonsClient) -> None:
        repo = client.repository(EntityType.ADDRESS)
        with pytest.raises(TypeError):
            await repo.patch(EntityKey.child(EntityType.ADDRESS, "ada", "a1"), {"city": "X"})

    async def test_wrong_key_type(self, client: PersonsClient) -> None:
        with pytest.raises(ValueError):
            await client.repository(EntityType.BANK).get(EntityKey.person("ada"))

    async def test_put_is_full_replace(self, client: PersonsClient, table: MemoryTable) -> None:
        repo = client.repository(EntityType.CONTACT)
        await repo.put({"id": "c1", "person_id": "ada", **contact(is_verified=True)})
        await repo.put({"id": "c1", "person_id": "ada", **contact(value="new@example.com")})
        assert len(table) == 1
        stored = await repo.get(EntityKey.child(EntityType.CONTACT, "ada", "c1"))
        assert stored is not None
        assert stored.value == "new@example.com"  # type: ignore[attr-defined]
        assert stored.is_verified is False  # type: ignore[attr-defined]

    async def test_concurrent_creates(self, client: PersonsClient) -> None:
        persons = await asyncio.gather(
            *(client.create_person({"first_name": f"P{i}", "last_name": "X"}) for i in range(10))
        )
        assert len({p.id for p in persons}) == 10
        assert len(await client.list_persons()) == 10

    async def test_person_model_roundtrip(self, client: PersonsClient) -> None:
        person = await client.create_person(
            {"first_name": "Ada", "last_name": "Lovelace", "date_of_birth": date(1815, 12, 10)}
        )
        assert isinstance(person, Person)
        assert person.date_of_birth == date(1815, 12, 10)
