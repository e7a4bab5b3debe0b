"""Entity models for peopledb.

The pydantic models here are the single source of truth for every stored
entity: the storage attribute schemas are derived from them mechanically
(see ``peopledb.schema``), so validation and storage cannot drift apart.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def new_id() -> str:
    """Generate a new entity id."""
    return str(uuid4())


class EntityType(StrEnum):
    """Discriminator stored on every item, also the sort-key prefix of children."""

    PERSON = "PERSON"
    ADDRESS = "ADDRESS"
    BANK = "BANK"
    CONTACT = "CONTACT"
    EMPLOYMENT = "EMPLOYMENT"

    @classmethod
    def children(cls) -> list[EntityType]:
        """Return the child entity types in canonical order."""
        return [cls.ADDRESS, cls.BANK, cls.CONTACT, cls.EMPLOYMENT]


class Gender(StrEnum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class AddressType(StrEnum):
    HOME = "home"
    WORK = "work"
    BILLING = "billing"
    SHIPPING = "shipping"


class AccountType(StrEnum):
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class ContactType(StrEnum):
    EMAIL = "email"
    PHONE = "phone"
    MOBILE = "mobile"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"


CurrencyCode = Annotated[str, AfterValidator(str.upper)]


class _EntityModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="ignore")


class Person(_EntityModel):
    """Root entity. Owns any number of each child type."""

    id: str = Field(..., min_length=1, description="Globally unique, immutable id")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    created_at: datetime
    updated_at: datetime


class Address(_EntityModel):
    """Physical or mailing address of a person."""

    id: str = Field(..., min_length=1)
    person_id: str = Field(..., min_length=1)
    type: AddressType
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    is_primary: bool = False


class BankAccount(_EntityModel):
    """Banking details of a person. Only the last four account digits are kept."""

    id: str = Field(..., min_length=1)
    person_id: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountType
    account_number_last4: str = Field(..., min_length=4, max_length=4)
    iban: str | None = Field(default=None, min_length=15, max_length=34)
    bic: str | None = Field(default=None, min_length=8, max_length=11)
    is_primary: bool = False


class ContactInfo(_EntityModel):
    """Email, phone or social handle of a person."""

    id: str = Field(..., min_length=1)
    person_id: str = Field(..., min_length=1)
    type: ContactType
    value: str = Field(..., min_length=1, max_length=200)
    is_primary: bool = False
    is_verified: bool = False


class Employment(_EntityModel):
    """A job held by a person. ``end_date`` of None means ongoing.

    ``is_current`` implying ``end_date is None`` is a caller convention, not
    enforced here; see ``PersonsClient.check_primary_invariants``.
    """

    id: str = Field(..., min_length=1)
    person_id: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1, max_length=200)
    position: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    start_date: date
    end_date: date | None = None
    is_current: bool = False
    salary: float | None = Field(default=None, gt=0)
    currency: CurrencyCode = Field(default="USD", min_length=3, max_length=3)


class PersonWithRelations(Person):
    """A person together with all of its children."""

    addresses: list[Address] = Field(default_factory=list)
    bank_accounts: list[BankAccount] = Field(default_factory=list)
    contacts: list[ContactInfo] = Field(default_factory=list)
    employments: list[Employment] = Field(default_factory=list)


class PersonCreate(_EntityModel):
    """Input for creating a person. Timestamps are stamped by the store."""

    id: str | None = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None


class PersonUpdate(_EntityModel):
    """Partial update of a person. Fields left as None are not touched."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were set to a non-None value."""
        return {k: v for k, v in self.model_dump(mode="json").items() if v is not None}


CHILD_MODELS: dict[EntityType, type[_EntityModel]] = {
    EntityType.ADDRESS: Address,
    EntityType.BANK: BankAccount,
    EntityType.CONTACT: ContactInfo,
    EntityType.EMPLOYMENT: Employment,
}

ENTITY_MODELS: dict[EntityType, type[_EntityModel]] = {
    EntityType.PERSON: Person,
    **CHILD_MODELS,
}
