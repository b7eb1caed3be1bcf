"""Role menus: which entries a session sees and the loop that runs them."""
import logging
from typing import Optional

from contacts_core.exceptions import ContactsError
from contacts_core.models import Role
from contacts_core.permissions import Operation
from contacts_core.session import SessionController
from contacts_core.undo import UndoKind

from .console import Console
from .handlers import HANDLERS

logger = logging.getLogger("contacts-console.menus")

MENU_TITLES: dict[Role, str] = {
    Role.TESTER: "Tester Menu",
    Role.JUNIOR_DEVELOPER: "Junior Developer Menu",
    Role.SENIOR_DEVELOPER: "Senior Developer Menu",
    Role.MANAGER: "Manager Menu",
}

# Every menu entry in display order; a session sees the ones its tier grants
MENU_ENTRIES: list[tuple[Operation, str]] = [
    (Operation.LIST_CONTACTS, "List All Contacts"),
    (Operation.SEARCH_CONTACTS, "Search Contacts"),
    (Operation.SORT_CONTACTS, "Sort Contacts"),
    (Operation.UPDATE_CONTACT, "Update Contact"),
    (Operation.UNDO_CONTACT_UPDATE, "Undo Last Update"),
    (Operation.ADD_CONTACT, "Add Contact"),
    (Operation.DELETE_CONTACT, "Delete Contact"),
    (Operation.UNDO_CONTACT_DELETE, "Undo Last Delete"),
    (Operation.LIST_USERS, "List Users"),
    (Operation.ADD_USER, "Add User"),
    (Operation.UPDATE_USER, "Update User"),
    (Operation.DELETE_USER, "Delete User"),
    (Operation.UNDO_USER_DELETE, "Undo Last User Delete"),
    (Operation.CONTACT_STATISTICS, "Contact Statistics"),
    (Operation.CHANGE_PASSWORD, "Change Password"),
]

UNDO_ENTRIES: dict[Operation, UndoKind] = {
    Operation.UNDO_CONTACT_UPDATE: UndoKind.CONTACT_UPDATE,
    Operation.UNDO_CONTACT_DELETE: UndoKind.CONTACT_DELETE,
    Operation.UNDO_USER_DELETE: UndoKind.USER_DELETE,
}


def menu_entries(session: SessionController) -> list[tuple[Operation, str]]:
    """
    Build the menu for a session.

    Undo entries carry the depth of their ledger, e.g. ``Undo Last Delete (2)``.
    """
    entries = []
    for operation, label in MENU_ENTRIES:
        if not session.can(operation):
            continue
        kind = UNDO_ENTRIES.get(operation)
        if kind is not None:
            label = f"{label} ({session.undo_depth(kind)})"
        entries.append((operation, label))
    return entries


def run_action(session: SessionController, console: Console, operation: Operation) -> None:
    """Run one menu action, reporting core errors instead of raising them."""
    try:
        HANDLERS[operation](session, console)
    except ContactsError as e:
        console.error(e.message)


def run_session(session: SessionController, console: Console) -> None:
    """
    Show the session's menu until the operator logs out.

    Logging out (``0``) discards the session's undo history.
    """
    title = MENU_TITLES[session.role]
    console.info(f"Welcome, {session.principal.full_name} ({session.role.value}).")

    while session.active:
        entries = menu_entries(session)
        choice: Optional[int] = console.render_menu(title, [label for _, label in entries])
        if choice is None:
            continue
        if choice == 0:
            session.logout()
            console.info("Logged out.")
            return
        if not 1 <= choice <= len(entries):
            console.error("Invalid choice.")
            continue

        operation = entries[choice - 1][0]
        logger.debug(f"{session.principal.username} selected {operation.value}")
        run_action(session, console, operation)
