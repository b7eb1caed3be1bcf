"""CRUD operations for contacts and users.

Every write commits its own transaction and returns the number of affected
rows; database errors are rolled back, logged and reported as ``0`` so callers
can decide whether to keep or roll back an undo entry.
"""
import logging
from collections import Counter
from typing import Any, Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from . import models, schemas
from .exceptions import StoreWriteError

logger = logging.getLogger("contacts-core.crud")


def _execute_write(db: Session, action: str, write: Callable[[], int]) -> int:
    """Run a write in its own transaction and return the affected-row count."""
    try:
        affected = write()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {action}: {e}", exc_info=True)
        return 0
    logger.debug(f"{action}: {affected} row(s) affected")
    return affected


def city_of(address: Optional[str]) -> Optional[str]:
    """
    Derive the city from an address.

    The city is the trailing comma-separated part of the address, trimmed
    (``"12 Main St, Springfield"`` -> ``"Springfield"``).
    """
    if not address or not address.strip():
        return None
    city = address.rsplit(",", 1)[-1].strip()
    return city or None


# ============================================================================
# Contact CRUD Operations
# ============================================================================

def get_contact(db: Session, contact_id: int) -> Optional[models.Contact]:
    """
    Get a contact by ID.

    Args:
        db: Database session
        contact_id: Contact ID

    Returns:
        Contact instance or None if not found
    """
    return db.query(models.Contact).filter(models.Contact.contact_id == contact_id).first()


def get_contacts(db: Session) -> list[models.Contact]:
    """Get all contacts ordered by ID."""
    return db.query(models.Contact).order_by(models.Contact.contact_id).all()


def create_contact(db: Session, contact: schemas.ContactCreate) -> models.Contact:
    """
    Create a new contact.

    Args:
        db: Database session
        contact: Validated contact fields

    Returns:
        Created contact with its generated ID

    Raises:
        StoreWriteError: If the insert fails
    """
    db_contact = models.Contact(**contact.model_dump())
    db.add(db_contact)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating contact: {e}", exc_info=True)
        raise StoreWriteError("Failed to add contact.")

    db.refresh(db_contact)
    logger.debug(f"Created contact {db_contact.contact_id}")
    return db_contact


def insert_contact(db: Session, row: dict[str, Any]) -> int:
    """
    Insert a contact with an explicit ID (used to restore a deleted contact).

    Returns:
        1 if inserted, 0 if the insert failed (e.g. the ID is taken)
    """
    def write() -> int:
        db.add(models.Contact(**row))
        db.flush()
        return 1

    return _execute_write(db, f"insert contact {row.get('contact_id')}", write)


def update_contact(db: Session, contact_id: int, changes: dict[str, Any]) -> int:
    """
    Update selected columns of a contact.

    ``updated_at`` is refreshed automatically unless ``changes`` sets it.

    Returns:
        Number of rows updated (0 if the contact does not exist)
    """
    if not changes:
        return 0

    return _execute_write(
        db,
        f"update contact {contact_id}",
        lambda: db.query(models.Contact)
        .filter(models.Contact.contact_id == contact_id)
        .update(changes, synchronize_session=False),
    )


def delete_contact(db: Session, contact_id: int) -> int:
    """
    Delete a contact.

    Returns:
        Number of rows deleted (0 if the contact does not exist)
    """
    return _execute_write(
        db,
        f"delete contact {contact_id}",
        lambda: db.query(models.Contact)
        .filter(models.Contact.contact_id == contact_id)
        .delete(synchronize_session=False),
    )


def get_contact_statistics(db: Session) -> schemas.ContactStatistics:
    """
    Compute aggregate counts over all contacts.

    Returns:
        ContactStatistics with totals and per-city counts
    """
    def count_filled(column) -> int:
        return db.query(func.count(models.Contact.contact_id)).filter(
            column.isnot(None), column != ""
        ).scalar() or 0

    total = db.query(func.count(models.Contact.contact_id)).scalar() or 0
    with_birthdate = db.query(func.count(models.Contact.contact_id)).filter(
        models.Contact.birthdate.isnot(None)
    ).scalar() or 0

    cities = Counter(
        city
        for (address,) in db.query(models.Contact.address).all()
        if (city := city_of(address))
    )

    return schemas.ContactStatistics(
        total=total,
        with_linkedin=count_filled(models.Contact.linkedin_url),
        with_email=count_filled(models.Contact.email),
        with_secondary_phone=count_filled(models.Contact.phone_secondary),
        with_birthdate=with_birthdate,
        by_city=dict(sorted(cities.items(), key=lambda item: (-item[1], item[0]))),
    )


# ============================================================================
# User CRUD Operations
# ============================================================================

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    """
    Get a user by ID.

    Args:
        db: Database session
        user_id: User ID

    Returns:
        User if found, None otherwise
    """
    return db.query(models.User).filter(models.User.user_id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.username == username).first()


def get_users(db: Session) -> list[models.User]:
    """Get all users ordered by role, then ID."""
    return db.query(models.User).order_by(models.User.role, models.User.user_id).all()


def create_user(db: Session, user: schemas.UserCreate, password_hash: str) -> models.User:
    """
    Create a new user.

    Args:
        db: Database session
        user: Validated user fields (the plain password is not stored)
        password_hash: Hash of the user's password

    Returns:
        Created user

    Raises:
        StoreWriteError: If the insert fails
    """
    db_user = models.User(
        username=user.username,
        password_hash=password_hash,
        name=user.name,
        surname=user.surname,
        role=user.role.value,
    )
    db.add(db_user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating user: {e}", exc_info=True)
        raise StoreWriteError("Failed to add user.")

    db.refresh(db_user)
    logger.debug(f"Created user {db_user.user_id} ({db_user.username}) as {db_user.role}")
    return db_user


def insert_user(db: Session, row: dict[str, Any]) -> int:
    """
    Insert a user with an explicit ID (used to restore a deleted user).

    Returns:
        1 if inserted, 0 if the insert failed (e.g. the ID or username is taken)
    """
    def write() -> int:
        db.add(models.User(**row))
        db.flush()
        return 1

    return _execute_write(db, f"insert user {row.get('user_id')}", write)


def update_user(db: Session, user_id: int, changes: dict[str, Any]) -> int:
    """Update selected columns of a user and return the rows updated."""
    if not changes:
        return 0

    return _execute_write(
        db,
        f"update user {user_id}",
        lambda: db.query(models.User)
        .filter(models.User.user_id == user_id)
        .update(changes, synchronize_session=False),
    )


def update_password(db: Session, user_id: int, password_hash: str) -> int:
    return update_user(db, user_id, {"password_hash": password_hash})


def delete_user(db: Session, user_id: int) -> int:
    """Delete a user and return the rows deleted."""
    return _execute_write(
        db,
        f"delete user {user_id}",
        lambda: db.query(models.User)
        .filter(models.User.user_id == user_id)
        .delete(synchronize_session=False),
    )
