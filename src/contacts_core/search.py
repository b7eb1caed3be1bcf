"""Contact search and sort queries."""
import enum
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import extract, func, or_
from sqlalchemy.orm import Session

from . import models
from .crud import city_of, get_contacts
from .exceptions import FieldValidationError

logger = logging.getLogger("contacts-core.search")


class SortColumn(str, enum.Enum):
    """Columns contacts can be sorted by."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    PHONE = "phone_primary"
    BIRTHDATE = "birthdate"
    CITY = "city"  # derived from the address
    EMAIL = "email"


SORT_LABELS: dict[SortColumn, str] = {
    SortColumn.FIRST_NAME: "First Name",
    SortColumn.LAST_NAME: "Last Name",
    SortColumn.PHONE: "Phone Number",
    SortColumn.BIRTHDATE: "Birth Date",
    SortColumn.CITY: "City (from Address)",
    SortColumn.EMAIL: "Email",
}


def _text_key(attribute: str) -> Callable[[models.Contact], Optional[str]]:
    def key(contact: models.Contact) -> Optional[str]:
        value = getattr(contact, attribute)
        return value.casefold() if value else None
    return key


def _city_key(contact: models.Contact) -> Optional[str]:
    city = city_of(contact.address)
    return city.casefold() if city else None


SORT_KEYS: dict[SortColumn, Callable[[models.Contact], Any]] = {
    SortColumn.FIRST_NAME: _text_key("first_name"),
    SortColumn.LAST_NAME: _text_key("last_name"),
    SortColumn.PHONE: _text_key("phone_primary"),
    SortColumn.BIRTHDATE: lambda contact: contact.birthdate,
    SortColumn.CITY: _city_key,
    SortColumn.EMAIL: _text_key("email"),
}


class ContactSearch(BaseModel):
    """
    Conjunctive contact search criteria.

    Every supplied criterion must match; text criteria match when the column
    contains the fragment, ignoring case. ``name`` matches the first or the
    middle name.
    """

    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    birth_month: Optional[int] = None

    @field_validator("name", "first_name", "last_name", "phone", "email", "address", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("phone")
    @classmethod
    def check_phone_fragment(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not (value.isascii() and value.isdigit()):
            raise FieldValidationError("phone", "Invalid format! Phone should contain only digits.")
        return value

    @field_validator("birth_month")
    @classmethod
    def check_month(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= 12:
            raise FieldValidationError("birth_month", "Invalid month! Please enter between 1-12.")
        return value

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


def _contains(column, fragment: str):
    return func.lower(column).contains(fragment.lower(), autoescape=True)


def search_contacts(db: Session, criteria: ContactSearch) -> list[models.Contact]:
    """
    Find contacts matching every supplied criterion.

    Args:
        db: Database session
        criteria: Search criteria; at least one must be set

    Returns:
        Matching contacts ordered by ID

    Raises:
        FieldValidationError: If no criterion is supplied
    """
    if criteria.is_empty():
        raise FieldValidationError("search", "Enter at least one search criterion.")

    Contact = models.Contact
    query = db.query(Contact)

    if criteria.name:
        query = query.filter(or_(_contains(Contact.first_name, criteria.name),
                                 _contains(Contact.middle_name, criteria.name)))
    if criteria.first_name:
        query = query.filter(_contains(Contact.first_name, criteria.first_name))
    if criteria.last_name:
        query = query.filter(_contains(Contact.last_name, criteria.last_name))
    if criteria.phone:
        query = query.filter(_contains(Contact.phone_primary, criteria.phone))
    if criteria.email:
        query = query.filter(_contains(Contact.email, criteria.email))
    if criteria.address:
        query = query.filter(_contains(Contact.address, criteria.address))
    if criteria.birth_month is not None:
        query = query.filter(extract("month", Contact.birthdate) == criteria.birth_month)

    results = query.order_by(Contact.contact_id).all()
    logger.debug(f"Search {criteria.model_dump(exclude_none=True)} matched {len(results)} contact(s)")
    return results


def sort_contacts(
    db: Session,
    column: SortColumn = SortColumn.FIRST_NAME,
    descending: bool = False,
) -> list[models.Contact]:
    """
    Return all contacts ordered by a column.

    Text columns sort case-insensitively. Contacts with no value for the
    column come last in either direction.

    Args:
        db: Database session
        column: Column to sort by (``CITY`` uses the derived city key)
        descending: Sort from highest to lowest

    Returns:
        Sorted contacts
    """
    key = SORT_KEYS[column]
    contacts = get_contacts(db)

    present = [contact for contact in contacts if key(contact) is not None]
    missing = [contact for contact in contacts if key(contact) is None]
    present.sort(key=key, reverse=descending)
    return present + missing
