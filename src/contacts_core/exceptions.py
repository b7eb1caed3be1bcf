"""Error types raised by the contact manager core.

Every error carries a human-readable ``message`` so the console can report it
and return to the calling menu.
"""
from typing import Optional


class ContactsError(Exception):
    """Base class for all contact manager errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FieldValidationError(ContactsError):
    """Raised when a user-supplied field value is malformed."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class NotFoundError(ContactsError):
    """Raised when the target contact or user does not exist."""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity.capitalize()} with ID {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id


class StoreWriteError(ContactsError):
    """Raised when a single-row write reports zero affected rows."""
    pass


class SelfDeleteError(ContactsError):
    """Raised when a manager tries to delete their own account."""

    def __init__(self, user_id: int):
        super().__init__("You cannot delete your own account.")
        self.user_id = user_id


class PermissionDeniedError(ContactsError):
    """Raised when an operation is outside the session's capability tier."""

    def __init__(self, role: str, operation: str):
        super().__init__(f"Role '{role}' is not allowed to perform '{operation}'.")
        self.role = role
        self.operation = operation


class UnknownRoleError(ContactsError):
    """Raised when stored role text does not map to a known role."""

    def __init__(self, role_text: Optional[str]):
        super().__init__(f"Unknown role: {role_text!r}")
        self.role_text = role_text


class AuthenticationError(ContactsError):
    """Raised when a username/password pair does not match."""

    def __init__(self, message: str = "Invalid username or password."):
        super().__init__(message)


class DuplicateUsernameError(ContactsError):
    """Raised when adding a user whose username is already taken."""

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' is already taken.")
        self.username = username
