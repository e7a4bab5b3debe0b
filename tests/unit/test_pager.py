"""Tests for the cross-entity pager and its composite cursor."""

import base64

import pytest
from conftest import address, bank_account, contact, employment

from peopledb import PersonsClient
from peopledb.core.types import EntityType
from peopledb.exceptions import MalformedKeyError
from peopledb.storage import MemoryTable, RetryPolicy
from peopledb.store import CompositeCursor, CrossEntityPager
from peopledb.store.pager import PAGER_TYPES


async def seed(client: PersonsClient, persons: int, addresses_each: int) -> int:
    """Seed persons with uneven children; returns the total item count."""
    total = 0
    for p in range(persons):
        person = await client.create_person(
            {"id": f"p{p:02d}", "first_name": f"First{p}", "last_name": f"Last{p}"}
        )
        total += 1
        for a in range(addresses_each):
            await client.create_address(person.id, address(id=f"a{a}"))
            total += 1
        if p % 2 == 0:
            await client.create_contact(person.id, contact(id="c0"))
            total += 1
    # One bank account and one employment in the whole table
    await client.create_bank_account("p00", bank_account(id="b0"))
    await client.create_employment("p01", employment(id="e0"))
    return total + 2


def item_ids(items: list[dict]) -> list[tuple[str, str]]:
    return [(item["pk"], item["sk"]) for item in items]


class TestCompositeCursor:
    def test_encode_decode(self) -> None:
        cursor = CompositeCursor(("PERSON#1#PROFILE", None, "PERSON#2#BANK#x", None, None))
        assert CompositeCursor.decode(cursor.encode()) == cursor

    def test_exhausted(self) -> None:
        assert CompositeCursor().exhausted
        assert not CompositeCursor.from_mapping({EntityType.BANK: "x"}).exhausted

    def test_sub_cursor_by_type(self) -> None:
        cursor = CompositeCursor.from_mapping({EntityType.CONTACT: "c", EntityType.PERSON: "p"})
        assert cursor.get(EntityType.CONTACT) == "c"
        assert cursor.get(EntityType.PERSON) == "p"
        assert cursor.get(EntityType.EMPLOYMENT) is None

    def test_wrong_arity(self) -> None:
        with pytest.raises(ValueError):
            CompositeCursor(("a", "b"))

    @pytest.mark.parametrize(
        "token",
        [
            "not base64 at all!",
            base64.urlsafe_b64encode(b"[1, 2]").decode(),
            base64.urlsafe_b64encode(b'{"PERSON": 5}').decode(),
            base64.urlsafe_b64encode(b"{not json").decode(),
        ],
    )
    def test_malformed_token(self, token: str) -> None:
        with pytest.raises(MalformedKeyError):
            CompositeCursor.decode(token)


class TestNextPage:
    async def test_empty_table(self, pager: CrossEntityPager) -> None:
        page = await pager.next_page()
        assert page.exhausted
        assert len(page) == 0

    async def test_page_size_per_type(self, client: PersonsClient, pager: CrossEntityPager) -> None:
        await seed(client, persons=3, addresses_each=2)
        page = await pager.next_page()
        assert not page.exhausted
        for entity_type in PAGER_TYPES:
            assert len(page.of(entity_type)) <= 2
        assert page.cursor is not None
        # Only one bank account and one employment exist: those streams are done
        assert page.cursor.get(EntityType.BANK) is None
        assert page.cursor.get(EntityType.EMPLOYMENT) is None
        assert page.cursor.get(EntityType.ADDRESS) is not None

    async def test_items_grouped_by_type(self, client: PersonsClient, pager: CrossEntityPager) -> None:
        await seed(client, persons=2, addresses_each=1)
        page = await pager.next_page()
        for entity_type in PAGER_TYPES:
            assert all(item["entity_type"] == entity_type.value for item in page.of(entity_type))

    async def test_walks_to_exhaustion_without_duplicates(
        self, client: PersonsClient, pager: CrossEntityPager, table: MemoryTable
    ) -> None:
        total = await seed(client, persons=5, addresses_each=3)
        assert len(table) == total

        seen: list[tuple[str, str]] = []
        cursor = None
        for _ in range(100):
            page = await pager.next_page(cursor)
            seen.extend(item_ids(page.all_items()))
            if page.exhausted:
                break
            cursor = page.cursor
        else:
            pytest.fail("pager never reached exhaustion")

        assert len(seen) == len(set(seen))
        assert set(seen) == set(item_ids(table.items()))

    async def test_every_stream_advances(self, client: PersonsClient, pager: CrossEntityPager) -> None:
        """Progress of one stream is never lost because another stream ended."""
        await seed(client, persons=4, addresses_each=3)
        first = await pager.next_page()
        second = await pager.next_page(first.cursor)
        assert first.of(EntityType.ADDRESS) != second.of(EntityType.ADDRESS)
        assert first.of(EntityType.PERSON) != second.of(EntityType.PERSON)
        assert second.of(EntityType.BANK) == []

    async def test_accepts_encoded_cursor(self, client: PersonsClient, pager: CrossEntityPager) -> None:
        await seed(client, persons=3, addresses_each=2)
        first = await pager.next_page()
        assert first.cursor is not None
        by_object = await pager.next_page(first.cursor)
        by_token = await pager.next_page(first.cursor.encode())
        assert item_ids(by_object.all_items()) == item_ids(by_token.all_items())

    async def test_within_type_order_keeps_person_contiguous(
        self, client: PersonsClient, table: MemoryTable, retry: RetryPolicy
    ) -> None:
        await seed(client, persons=3, addresses_each=3)
        pager = CrossEntityPager(table, page_size=100, retry=retry)
        page = await pager.next_page()
        owners = [item["person_id"] for item in page.of(EntityType.ADDRESS)]
        assert owners == sorted(owners)
        assert page.exhausted


class TestDrainAll:
    async def test_union_equals_table(
        self, client: PersonsClient, pager: CrossEntityPager, table: MemoryTable
    ) -> None:
        await seed(client, persons=6, addresses_each=2)
        everything = await pager.drain_all()
        assert everything.exhausted
        assert sorted(item_ids(everything.all_items())) == sorted(item_ids(table.items()))
        assert everything.counts() == {
            "PERSON": 6,
            "ADDRESS": 12,
            "BANK": 1,
            "CONTACT": 3,
            "EMPLOYMENT": 1,
        }

    def test_page_size_must_be_positive(self, table: MemoryTable) -> None:
        with pytest.raises(ValueError):
            CrossEntityPager(table, page_size=0)
