"""SQLAlchemy database models."""
from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

# Base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


class Role(str, enum.Enum):
    """Login role.

    Values are the role text stored in ``users.role``.
    """

    TESTER = "Tester"
    JUNIOR_DEVELOPER = "Junior Developer"
    SENIOR_DEVELOPER = "Senior Developer"
    MANAGER = "Manager"


class User(Base):
    """
    A login account.

    The stored ``role`` is free text; it is mapped to :class:`Role` by
    ``permissions.parse_role`` when a session is opened.
    """

    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    surname = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, default=Role.TESTER.value)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


class Contact(Base):
    """A person record managed by the application."""

    __tablename__ = "contacts"
    __table_args__ = {"sqlite_autoincrement": True}

    contact_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)  # owning user, unused
    first_name = Column(String(100), nullable=False, index=True)
    middle_name = Column(String(100))
    last_name = Column(String(100), nullable=False, index=True)
    nickname = Column(String(100))
    phone_primary = Column(String(20), nullable=False)
    phone_secondary = Column(String(20))
    birthdate = Column(Date)
    email = Column(String(255))
    linkedin_url = Column(String(255))
    address = Column(Text)

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Contact {self.contact_id}: {self.first_name} {self.last_name}>"
