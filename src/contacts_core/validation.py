"""Field validation rules for contact input.

Each ``is_valid_*`` predicate answers whether a raw string is acceptable;
``validate_contact_field`` raises :class:`FieldValidationError` with a message
suitable for the console.
"""
import logging
from datetime import date
from typing import Callable, Optional

from .config import get_settings
from .exceptions import FieldValidationError

logger = logging.getLogger("contacts-core.validation")

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def is_valid_name(value: Optional[str]) -> bool:
    """Letters of any script and spaces only, at least one letter."""
    if not value or not value.strip():
        return False
    return all(ch.isalpha() or ch == " " for ch in value)


def is_valid_phone(value: Optional[str]) -> bool:
    """Digits only, 10 to 15 of them."""
    if not value:
        return False
    # str.isdigit() accepts superscripts and other digit-like characters
    return value.isascii() and value.isdigit() and PHONE_MIN_DIGITS <= len(value) <= PHONE_MAX_DIGITS


def is_valid_email(value: Optional[str]) -> bool:
    """
    Check the shape ``local@domain.tld``.

    The ``@`` may not be first or last, and the last ``.`` must come after it
    with at least one character in between and at least one character after.
    """
    if not value or " " in value:
        return False

    at = value.find("@")
    if at <= 0 or at == len(value) - 1:
        return False

    dot = value.rfind(".")
    return at + 1 < dot < len(value) - 1


def is_valid_linkedin(value: Optional[str]) -> bool:
    return bool(value) and "linkedin.com" in value.lower()


def parse_birthdate(value: str) -> date:
    """
    Parse an ISO ``YYYY-MM-DD`` birthdate within the configured year range.

    Raises:
        FieldValidationError: If the date is malformed or out of range
    """
    settings = get_settings()
    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError:
        raise FieldValidationError("birthdate", "Invalid date! Use the format YYYY-MM-DD.")

    if not settings.birth_year_min <= parsed.year <= settings.birth_year_max:
        raise FieldValidationError(
            "birthdate",
            f"Birth year must be between {settings.birth_year_min} and {settings.birth_year_max}.",
        )
    return parsed


def is_valid_birthdate(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        parse_birthdate(value)
    except FieldValidationError:
        return False
    return True


# Field name -> (predicate, error message)
FIELD_RULES: dict[str, tuple[Callable[[Optional[str]], bool], str]] = {
    "first_name": (is_valid_name, "First name may contain only letters and spaces."),
    "middle_name": (is_valid_name, "Middle name may contain only letters and spaces."),
    "last_name": (is_valid_name, "Last name may contain only letters and spaces."),
    "nickname": (is_valid_name, "Nickname may contain only letters and spaces."),
    "phone_primary": (is_valid_phone, "Phone must be 10-15 digits with no other characters."),
    "phone_secondary": (is_valid_phone, "Phone must be 10-15 digits with no other characters."),
    "email": (is_valid_email, "Invalid email! Expected something like name@example.com."),
    "linkedin_url": (is_valid_linkedin, "LinkedIn URL must contain 'linkedin.com'."),
    "birthdate": (is_valid_birthdate, "Invalid birthdate."),
}

REQUIRED_CONTACT_FIELDS: tuple[str, ...] = ("first_name", "last_name", "phone_primary")


def validate_contact_field(field: str, value: Optional[str]) -> None:
    """
    Validate a single contact field.

    Fields without a rule (address) accept any text.

    Raises:
        FieldValidationError: If the value breaks the field's rule
    """
    if field == "birthdate" and value:
        parse_birthdate(value)  # raises with the precise message
        return

    rule = FIELD_RULES.get(field)
    if rule is None:
        return

    predicate, message = rule
    if not predicate(value):
        logger.debug(f"Rejected {field}={value!r}")
        raise FieldValidationError(field, message)


def require_field(field: str, value: Optional[str]) -> None:
    """Raise if a mandatory field is missing."""
    if value is None or not str(value).strip():
        label = field.replace("_", " ")
        raise FieldValidationError(field, f"{label.capitalize()} is required.")
