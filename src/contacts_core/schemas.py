"""Pydantic schemas for contact and user input, snapshots and principals."""
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .config import get_settings
from .exceptions import FieldValidationError
from .models import Role
from .validation import (
    REQUIRED_CONTACT_FIELDS,
    is_valid_name,
    parse_birthdate,
    require_field,
    validate_contact_field,
)

_VALIDATED_TEXT_FIELDS = (
    "first_name",
    "middle_name",
    "last_name",
    "nickname",
    "phone_primary",
    "phone_secondary",
    "email",
    "linkedin_url",
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _coerce_birthdate(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, str):
        return parse_birthdate(value)
    return value


# Contact Schemas

class ContactCreate(BaseModel):
    """Schema for adding a new contact.

    Validation failures raise :class:`FieldValidationError` (not pydantic's
    ``ValidationError``) so callers report the offending field directly.
    """

    first_name: str = Field(None, validate_default=True)
    middle_name: Optional[str] = None
    last_name: str = Field(None, validate_default=True)
    nickname: Optional[str] = None
    phone_primary: str = Field(None, validate_default=True)
    phone_secondary: Optional[str] = None
    birthdate: Optional[date] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    address: Optional[str] = None

    @field_validator(*REQUIRED_CONTACT_FIELDS, mode="before")
    @classmethod
    def check_required(cls, value: Any, info: ValidationInfo) -> Any:
        value = _blank_to_none(value)
        require_field(info.field_name, value)
        return value

    @field_validator(*_VALIDATED_TEXT_FIELDS, mode="after")
    @classmethod
    def check_format(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is not None:
            validate_contact_field(info.field_name, value)
        return value

    @field_validator("middle_name", "nickname", "phone_secondary", "email", "linkedin_url", "address", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("birthdate", mode="before")
    @classmethod
    def check_birthdate(cls, value: Any) -> Any:
        return _coerce_birthdate(value)


class ContactUpdate(BaseModel):
    """Schema for a partial contact update.

    A field left as ``None`` (or blank) keeps the contact's current value.
    """

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    phone_primary: Optional[str] = None
    phone_secondary: Optional[str] = None
    birthdate: Optional[date] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    address: Optional[str] = None

    @field_validator(*_VALIDATED_TEXT_FIELDS, "address", mode="before")
    @classmethod
    def blank_keeps_current(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator(*_VALIDATED_TEXT_FIELDS, mode="after")
    @classmethod
    def check_format(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is not None:
            validate_contact_field(info.field_name, value)
        return value

    @field_validator("birthdate", mode="before")
    @classmethod
    def check_birthdate(cls, value: Any) -> Any:
        return _coerce_birthdate(value)

    def changes(self) -> dict[str, Any]:
        """Fields that were supplied, keyed by column name."""
        return self.model_dump(exclude_none=True)


# Read Schemas

class ContactRead(BaseModel):
    """A contact row as shown to the operator."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    contact_id: int
    user_id: Optional[int] = None
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    nickname: Optional[str] = None
    phone_primary: str
    phone_secondary: Optional[str] = None
    birthdate: Optional[date] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def entity_id(self) -> int:
        return self.contact_id

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserRead(BaseModel):
    """A user row without its password hash."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: int
    username: str
    name: str
    surname: str
    role: str
    created_at: datetime
    updated_at: datetime

    @property
    def entity_id(self) -> int:
        return self.user_id

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.surname}"


# Snapshot Schemas

class ContactSnapshot(ContactRead):
    """Immutable copy of every contact column, taken before the row is changed."""

    def to_row(self) -> dict[str, Any]:
        """Column values for writing the snapshot back to the store."""
        return self.model_dump()


class UserSnapshot(UserRead):
    """Immutable copy of every user column, including the password hash."""

    password_hash: str

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()


# User Schemas

class Principal(BaseModel):
    """An authenticated user with a resolved role."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    password_hash: str
    name: str
    surname: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"


def _check_person_name(field: str, value: Any) -> Any:
    value = _blank_to_none(value)
    require_field(field, value)
    if not is_valid_name(value):
        raise FieldValidationError(field, f"{field.capitalize()} may contain only letters and spaces.")
    return value


class UserCreate(BaseModel):
    """Schema for a manager adding a user."""

    username: str
    password: str
    name: str
    surname: str
    role: Role = Role.TESTER

    @field_validator("username", mode="before")
    @classmethod
    def check_username(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        require_field("username", value)
        if any(ch.isspace() for ch in value):
            raise FieldValidationError("username", "Username may not contain spaces.")
        return value

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, value: Any) -> Any:
        check_password_strength(value or "")
        return value

    @field_validator("name", "surname", mode="before")
    @classmethod
    def check_names(cls, value: Any, info: ValidationInfo) -> Any:
        return _check_person_name(info.field_name, value)


class UserUpdate(BaseModel):
    """Schema for a manager updating (or promoting) a user."""

    name: Optional[str] = None
    surname: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("name", "surname", mode="before")
    @classmethod
    def check_names(cls, value: Any, info: ValidationInfo) -> Any:
        if _blank_to_none(value) is None:
            return None
        return _check_person_name(info.field_name, value)

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        if "role" in data:
            data["role"] = data["role"].value
        return data


def check_password_strength(password: str) -> None:
    """Raise if a new password is shorter than the configured minimum."""
    minimum = get_settings().min_password_length
    if len(password) < minimum:
        raise FieldValidationError("password", f"Password is too short! Use at least {minimum} characters.")


# Statistics

class ContactStatistics(BaseModel):
    """Aggregate counts over the contacts table."""

    total: int = 0
    with_linkedin: int = 0
    with_email: int = 0
    with_secondary_phone: int = 0
    with_birthdate: int = 0
    by_city: dict[str, int] = Field(default_factory=dict)
