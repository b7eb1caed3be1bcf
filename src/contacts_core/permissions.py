"""Capability tiers: which operations each login role may perform.

Tiers are plain sets of :class:`Operation` tags. Developer tiers are built by
union, so every higher tier grants everything the tier below it does:

- Tester: read-only access to contacts plus changing the own password
- Junior Developer: Tester + update contacts and undo the last update
- Senior Developer: Junior + add/delete contacts and undo the last delete
- Manager: separate administrative tier that manages users, not contacts
"""
import enum
import logging
from typing import Optional

from .exceptions import PermissionDeniedError, UnknownRoleError
from .models import Role

logger = logging.getLogger("contacts-core.permissions")


class Operation(str, enum.Enum):
    """Operation tags a session can dispatch."""

    CHANGE_PASSWORD = "change_password"
    LIST_CONTACTS = "list_contacts"
    SEARCH_CONTACTS = "search_contacts"
    SORT_CONTACTS = "sort_contacts"
    UPDATE_CONTACT = "update_contact"
    UNDO_CONTACT_UPDATE = "undo_contact_update"
    ADD_CONTACT = "add_contact"
    DELETE_CONTACT = "delete_contact"
    UNDO_CONTACT_DELETE = "undo_contact_delete"
    LIST_USERS = "list_users"
    ADD_USER = "add_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    UNDO_USER_DELETE = "undo_user_delete"
    CONTACT_STATISTICS = "contact_statistics"


TESTER_OPERATIONS: frozenset[Operation] = frozenset({
    Operation.CHANGE_PASSWORD,
    Operation.LIST_CONTACTS,
    Operation.SEARCH_CONTACTS,
    Operation.SORT_CONTACTS,
})

JUNIOR_OPERATIONS: frozenset[Operation] = TESTER_OPERATIONS | {
    Operation.UPDATE_CONTACT,
    Operation.UNDO_CONTACT_UPDATE,
}

SENIOR_OPERATIONS: frozenset[Operation] = JUNIOR_OPERATIONS | {
    Operation.ADD_CONTACT,
    Operation.DELETE_CONTACT,
    Operation.UNDO_CONTACT_DELETE,
}

MANAGER_OPERATIONS: frozenset[Operation] = frozenset({
    Operation.LIST_USERS,
    Operation.ADD_USER,
    Operation.UPDATE_USER,
    Operation.DELETE_USER,
    Operation.UNDO_USER_DELETE,
    Operation.CONTACT_STATISTICS,
    Operation.CHANGE_PASSWORD,
})

# Role -> operations reachable from that role's menu
TIER_OPERATIONS: dict[Role, frozenset[Operation]] = {
    Role.TESTER: TESTER_OPERATIONS,
    Role.JUNIOR_DEVELOPER: JUNIOR_OPERATIONS,
    Role.SENIOR_DEVELOPER: SENIOR_OPERATIONS,
    Role.MANAGER: MANAGER_OPERATIONS,
}

# Role -> the tier it extends (None for the roots of the hierarchy)
PARENT_TIER: dict[Role, Optional[Role]] = {
    Role.TESTER: None,
    Role.JUNIOR_DEVELOPER: Role.TESTER,
    Role.SENIOR_DEVELOPER: Role.JUNIOR_DEVELOPER,
    Role.MANAGER: None,
}

# Accepted spellings of the stored role text, after normalization
_ROLE_ALIASES: dict[str, Role] = {
    "tester": Role.TESTER,
    "junior": Role.JUNIOR_DEVELOPER,
    "junior developer": Role.JUNIOR_DEVELOPER,
    "juniordeveloper": Role.JUNIOR_DEVELOPER,
    "senior": Role.SENIOR_DEVELOPER,
    "senior developer": Role.SENIOR_DEVELOPER,
    "seniordeveloper": Role.SENIOR_DEVELOPER,
    "manager": Role.MANAGER,
}


def parse_role(role_text: Optional[str]) -> Role:
    """
    Map stored role text to a :class:`Role`.

    Matching ignores case and surrounding whitespace and accepts the short
    forms ``Junior``/``Senior``.

    Raises:
        UnknownRoleError: If the text names no known role
    """
    if role_text is None:
        raise UnknownRoleError(role_text)

    normalized = " ".join(role_text.split()).lower()
    role = _ROLE_ALIASES.get(normalized)
    if role is None:
        logger.warning(f"Unrecognized role text: {role_text!r}")
        raise UnknownRoleError(role_text)
    return role


def get_operations(role: Role) -> frozenset[Operation]:
    """Return the operation set granted to a role."""
    return TIER_OPERATIONS[role]


def get_added_operations(role: Role) -> frozenset[Operation]:
    """Return the operations a tier adds on top of the tier it extends."""
    parent = PARENT_TIER[role]
    if parent is None:
        return TIER_OPERATIONS[role]
    return TIER_OPERATIONS[role] - TIER_OPERATIONS[parent]


def can_perform(role: Role, operation: Operation) -> bool:
    """
    Check if a role may perform an operation.

    Args:
        role: Login role
        operation: Requested operation

    Returns:
        True if the operation is in the role's tier, False otherwise
    """
    return operation in TIER_OPERATIONS.get(role, frozenset())


def require_operation(role: Role, operation: Operation) -> None:
    """
    Validate that a role may perform an operation.

    Raises:
        PermissionDeniedError: If the operation is outside the role's tier
    """
    if not can_perform(role, operation):
        logger.warning(f"Blocked operation: {role.value} attempted {operation.value}")
        raise PermissionDeniedError(role.value, operation.value)
