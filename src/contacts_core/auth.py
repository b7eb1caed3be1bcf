"""Password hashing and login verification."""
import hashlib
import hmac
import logging

from sqlalchemy.orm import Session

from . import crud, models
from .exceptions import AuthenticationError
from .permissions import parse_role
from .schemas import Principal

logger = logging.getLogger("contacts-core.auth")


def hash_password(plain_password: str) -> str:
    """Return the SHA-256 hex digest stored in ``users.password_hash``."""
    return hashlib.sha256(plain_password.encode("utf-8")).hexdigest()


def verify_password(plain_password: str, stored: str) -> bool:
    """
    Check a password against the stored value.

    Older records hold the password in plain text, so a stored value that is
    not a SHA-256 hex digest is compared as typed.
    """
    if not stored:
        return False
    if is_password_hash(stored):
        return hmac.compare_digest(hash_password(plain_password), stored)
    return hmac.compare_digest(plain_password.encode("utf-8"), stored.encode("utf-8"))


def is_password_hash(stored: str) -> bool:
    """True if the stored value has the shape of a SHA-256 hex digest."""
    return len(stored) == 64 and all(ch in "0123456789abcdef" for ch in stored)


def principal_from_user(user: models.User) -> Principal:
    """
    Build a Principal from a user row.

    Raises:
        UnknownRoleError: If the stored role text is not recognized
    """
    return Principal(
        user_id=user.user_id,
        username=user.username,
        password_hash=user.password_hash,
        name=user.name,
        surname=user.surname,
        role=parse_role(user.role),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def authenticate(db: Session, username: str, password: str) -> Principal:
    """
    Verify a username/password pair.

    Args:
        db: Database session
        username: Login name
        password: Plain-text password as typed

    Returns:
        The authenticated principal

    Raises:
        AuthenticationError: If the user is unknown or the password is wrong
        UnknownRoleError: If the user's stored role is not recognized
    """
    user = crud.get_user_by_username(db, username)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for username {username!r}")
        raise AuthenticationError()

    principal = principal_from_user(user)
    logger.info(f"User {principal.username} logged in as {principal.role.value}")
    return principal
