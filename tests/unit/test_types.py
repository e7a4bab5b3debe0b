"""Tests for entity models and their constraints."""

from datetime import date

import pytest
from pydantic import ValidationError

from peopledb.core.types import (
    BankAccount,
    Employment,
    EntityType,
    PersonUpdate,
    new_id,
)


class TestEntityType:
    def test_children_order(self) -> None:
        assert EntityType.children() == [
            EntityType.ADDRESS,
            EntityType.BANK,
            EntityType.CONTACT,
            EntityType.EMPLOYMENT,
        ]

    def test_new_id_is_unique(self) -> None:
        assert new_id() != new_id()


class TestEmployment:
    def test_defaults(self) -> None:
        job = Employment(
            id="e1",
            person_id="p1",
            company_name="Bletchley",
            position="Cryptanalyst",
            start_date=date(1939, 9, 4),
        )
        assert job.end_date is None
        assert job.is_current is False
        assert job.currency == "USD"

    def test_currency_is_uppercased(self) -> None:
        job = Employment(
            id="e1",
            person_id="p1",
            company_name="Bletchley",
            position="Cryptanalyst",
            start_date="1939-09-04",
            currency="gbp",
        )
        assert job.currency == "GBP"

    @pytest.mark.parametrize("salary", [0, -10])
    def test_salary_must_be_positive(self, salary: float) -> None:
        with pytest.raises(ValidationError):
            Employment(
                id="e1",
                person_id="p1",
                company_name="Bletchley",
                position="Cryptanalyst",
                start_date="1939-09-04",
                salary=salary,
            )


class TestBankAccount:
    def base(self, **overrides: object) -> dict:
        data = {
            "id": "b1",
            "person_id": "p1",
            "bank_name": "Coutts",
            "account_type": "savings",
            "account_number_last4": "1234",
        }
        data.update(overrides)
        return data

    def test_enum_stored_as_value(self) -> None:
        account = BankAccount(**self.base())
        assert account.account_type == "savings"
        assert account.model_dump(mode="json")["account_type"] == "savings"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"account_number_last4": "123"},
            {"account_number_last4": "12345"},
            {"iban": "GB82WEST"},
            {"bic": "ABC"},
            {"account_type": "crypto"},
        ],
    )
    def test_constraints(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            BankAccount(**self.base(**overrides))


class TestPersonUpdate:
    def test_changes_skips_unset_fields(self) -> None:
        update = PersonUpdate(last_name="King", date_of_birth="1815-12-10")
        assert update.changes() == {"last_name": "King", "date_of_birth": "1815-12-10"}

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PersonUpdate(first_name="")
