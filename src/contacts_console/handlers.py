"""Menu action handlers.

Every handler takes the logged-in :class:`SessionController` and the
:class:`Console`, gathers input, runs one operation through
``session.dispatch`` and prints the outcome. Core errors propagate to the menu
loop, which reports them and shows the menu again.
"""
import logging
from typing import Callable, Optional

from contacts_core.config import get_settings
from contacts_core.exceptions import FieldValidationError
from contacts_core.models import Role
from contacts_core.permissions import Operation
from contacts_core.schemas import ContactRead, UserRead
from contacts_core.search import SORT_LABELS, SortColumn
from contacts_core.session import SessionController
from contacts_core.undo import UndoKind
from contacts_core.validation import REQUIRED_CONTACT_FIELDS, validate_contact_field

from . import formatters
from .console import Console

logger = logging.getLogger("contacts-console.handlers")

Handler = Callable[[SessionController, Console], None]

# Contact column -> prompt label, in prompt order
CONTACT_PROMPTS: dict[str, str] = {
    "first_name": "First name",
    "middle_name": "Middle name",
    "last_name": "Last name",
    "nickname": "Nickname",
    "phone_primary": "Phone",
    "phone_secondary": "Second phone",
    "birthdate": "Birthdate (YYYY-MM-DD)",
    "email": "Email",
    "linkedin_url": "LinkedIn URL",
    "address": "Address (street, city)",
}

SEARCH_PROMPTS: dict[str, str] = {
    "name": "First or middle name",
    "first_name": "First name",
    "last_name": "Last name",
    "phone": "Phone (digits)",
    "email": "Email",
    "address": "City or address",
    "birth_month": "Birth month (1-12)",
}

# Menu label -> criteria prompted for; the last entry asks for every field
SEARCH_VARIANTS: list[tuple[str, tuple[str, ...]]] = [
    ("First/Middle Name", ("name",)),
    ("Last Name", ("last_name",)),
    ("Phone Number", ("phone",)),
    ("Name and Birth Month", ("name", "birth_month")),
    ("Last Name and City", ("last_name", "address")),
    ("Phone and Email", ("phone", "email")),
    ("Custom Search", tuple(SEARCH_PROMPTS)),
]

ROLE_CHOICES: list[Role] = [Role.TESTER, Role.JUNIOR_DEVELOPER, Role.SENIOR_DEVELOPER, Role.MANAGER]


# ============================================================================
# Input helpers
# ============================================================================

def prompt_contact_field(console: Console, field: str, required: bool, current: Optional[str] = None) -> Optional[str]:
    """
    Prompt for one contact field until it is valid or left blank.

    Args:
        console: Console to prompt on
        field: Contact column name
        required: Whether a blank answer is rejected
        current: Current value, shown as a hint during updates

    Returns:
        The validated text, or None when left blank
    """
    label = CONTACT_PROMPTS[field]
    if current:
        label = f"{label} [{current}]"

    while True:
        raw = console.prompt_line(label)
        if not raw:
            if required:
                console.error(f"{CONTACT_PROMPTS[field]} is required.")
                continue
            return None
        try:
            validate_contact_field(field, raw)
        except FieldValidationError as e:
            console.error(e.message)
            continue
        return raw


def prompt_role(console: Console, allow_blank: bool = False) -> Optional[Role]:
    """
    Prompt for a role by number.

    Raises:
        FieldValidationError: If the answer is not one of the listed roles
    """
    for number, role in enumerate(ROLE_CHOICES, start=1):
        console.write(f"{number}. {role.value}")
    hint = "Role (1-4, blank to keep)" if allow_blank else "Role (1-4)"
    raw = console.prompt_line(hint)
    if not raw and allow_blank:
        return None
    if raw.isdigit() and 1 <= int(raw) <= len(ROLE_CHOICES):
        return ROLE_CHOICES[int(raw) - 1]
    raise FieldValidationError("role", "Invalid role choice.")


def show_contacts(console: Console, contacts: list[ContactRead], title: str) -> None:
    """Show contact cards a page at a time."""
    if not contacts:
        console.info("No contacts found.")
        return

    page_size = get_settings().page_size
    last_page = (len(contacts) - 1) // page_size
    page = 0
    while True:
        console.write(formatters.format_contact_page(contacts, page, page_size, title))
        if last_page == 0:
            return
        command = console.prompt_line("[n]ext, [p]revious, Enter to return").lower()
        if command == "n" and page < last_page:
            page += 1
        elif command == "p" and page > 0:
            page -= 1
        elif command in ("n", "p"):
            console.info("No more pages in that direction.")
        else:
            return


def _report_undo(session: SessionController, console: Console, operation: Operation, kind: UndoKind) -> None:
    result = session.dispatch(operation)
    console.info(formatters.format_undo_result(kind, result))


# ============================================================================
# Tester handlers
# ============================================================================

def handle_change_password(session: SessionController, console: Console) -> None:
    current = console.prompt_secret("Current password")
    new = console.prompt_secret("New password")
    if console.prompt_secret("Confirm new password") != new:
        console.error("Passwords do not match.")
        return
    session.dispatch(Operation.CHANGE_PASSWORD, current, new)
    console.info("Password changed.")


def handle_list_contacts(session: SessionController, console: Console) -> None:
    show_contacts(console, session.dispatch(Operation.LIST_CONTACTS), "All Contacts")


def handle_search_contacts(session: SessionController, console: Console) -> None:
    """Pick a search variant, prompt for its criteria and show the matches."""
    choice = console.render_menu("Search Contacts", [label for label, _ in SEARCH_VARIANTS])
    if not choice:
        return
    if not 1 <= choice <= len(SEARCH_VARIANTS):
        console.error("Invalid choice.")
        return

    label, fields = SEARCH_VARIANTS[choice - 1]
    criteria: dict[str, object] = {}
    for field in fields:
        raw = console.prompt_line(SEARCH_PROMPTS[field])
        if not raw:
            continue
        if field == "birth_month":
            if not (raw.isascii() and raw.isdigit()):
                console.error("Invalid month! Please enter between 1-12.")
                return
            criteria[field] = int(raw)
        else:
            criteria[field] = raw

    show_contacts(console, session.dispatch(Operation.SEARCH_CONTACTS, criteria), f"Search: {label}")


def handle_sort_contacts(session: SessionController, console: Console) -> None:
    """Pick a column and direction and show every contact in that order."""
    columns = list(SortColumn)
    choice = console.render_menu("Sort Contacts By", [SORT_LABELS[c] for c in columns])
    if choice == 0:
        return
    if choice is None or not 1 <= choice <= len(columns):
        console.info("Invalid choice, sorting by First Name.")
        column = SortColumn.FIRST_NAME
    else:
        column = columns[choice - 1]

    descending = console.prompt_line("Order: 1. Ascending  2. Descending") == "2"
    contacts = session.dispatch(Operation.SORT_CONTACTS, column, descending)
    direction = "descending" if descending else "ascending"
    show_contacts(console, contacts, f"Sorted by {SORT_LABELS[column]} ({direction})")


# ============================================================================
# Junior handlers
# ============================================================================

def handle_update_contact(session: SessionController, console: Console) -> None:
    """Prompt for new field values; blank answers keep the current value."""
    contact_id = console.prompt_id("Contact ID to update")
    if contact_id is None:
        return

    contact = session.get_contact(contact_id)
    console.write(formatters.format_contact_card(contact))
    console.write("Leave a field blank to keep its current value.")

    changes = {}
    for field in CONTACT_PROMPTS:
        current = getattr(contact, field)
        value = prompt_contact_field(console, field, required=False,
                                     current=str(current) if current is not None else None)
        if value is not None:
            changes[field] = value

    updated = session.dispatch(Operation.UPDATE_CONTACT, contact_id, changes)
    console.write(formatters.format_contact_card(updated))
    console.info(f"Contact updated. Undo available ({session.undo_depth(UndoKind.CONTACT_UPDATE)} in history).")


def handle_undo_contact_update(session: SessionController, console: Console) -> None:
    _report_undo(session, console, Operation.UNDO_CONTACT_UPDATE, UndoKind.CONTACT_UPDATE)


# ============================================================================
# Senior handlers
# ============================================================================

def handle_add_contact(session: SessionController, console: Console) -> None:
    values = {}
    for field in CONTACT_PROMPTS:
        values[field] = prompt_contact_field(console, field, required=field in REQUIRED_CONTACT_FIELDS)

    created = session.dispatch(Operation.ADD_CONTACT, values)
    console.info(f"Contact added with ID {created.contact_id}.")
    console.write(formatters.format_contact_summary(created))


def handle_delete_contact(session: SessionController, console: Console) -> None:
    contact_id = console.prompt_id("Contact ID to delete")
    if contact_id is None:
        return

    def confirm(contact: ContactRead) -> bool:
        console.write(formatters.format_contact_card(contact))
        return console.confirm("Delete this contact?")

    deleted = session.dispatch(Operation.DELETE_CONTACT, contact_id, confirm)
    if deleted is None:
        console.info("Deletion cancelled.")
        return
    console.info(f"Contact {deleted.display_name} deleted. "
                 f"Undo available ({session.undo_depth(UndoKind.CONTACT_DELETE)} in history).")


def handle_undo_contact_delete(session: SessionController, console: Console) -> None:
    _report_undo(session, console, Operation.UNDO_CONTACT_DELETE, UndoKind.CONTACT_DELETE)


# ============================================================================
# Manager handlers
# ============================================================================

def handle_list_users(session: SessionController, console: Console) -> None:
    console.write(formatters.format_user_table(session.dispatch(Operation.LIST_USERS)))


def handle_add_user(session: SessionController, console: Console) -> None:
    username = console.prompt_line("Username")
    password = console.prompt_secret("Password")
    name = console.prompt_line("Name")
    surname = console.prompt_line("Surname")
    role = prompt_role(console)

    created = session.dispatch(Operation.ADD_USER, {
        "username": username,
        "password": password,
        "name": name,
        "surname": surname,
        "role": role,
    })
    console.info(f"User {created.username} added with ID {created.user_id} as {created.role}.")


def handle_update_user(session: SessionController, console: Console) -> None:
    """Change a user's name, surname or role; blank answers keep the current value."""
    user_id = console.prompt_id("User ID to update")
    if user_id is None:
        return

    console.write("Leave a field blank to keep its current value.")
    changes = {
        "name": console.prompt_line("Name"),
        "surname": console.prompt_line("Surname"),
        "role": prompt_role(console, allow_blank=True),
    }
    updated = session.dispatch(Operation.UPDATE_USER, user_id, changes)
    console.info(f"User {updated.username} updated: {updated.display_name} ({updated.role}).")


def handle_delete_user(session: SessionController, console: Console) -> None:
    user_id = console.prompt_id("User ID to delete")
    if user_id is None:
        return

    def confirm(user: UserRead) -> bool:
        console.write(formatters.format_user_table([user]))
        return console.confirm("Delete this user?")

    deleted = session.dispatch(Operation.DELETE_USER, user_id, confirm)
    if deleted is None:
        console.info("Deletion cancelled.")
        return
    console.info(f"User {deleted.username} deleted. "
                 f"Undo available ({session.undo_depth(UndoKind.USER_DELETE)} in history).")


def handle_undo_user_delete(session: SessionController, console: Console) -> None:
    _report_undo(session, console, Operation.UNDO_USER_DELETE, UndoKind.USER_DELETE)


def handle_contact_statistics(session: SessionController, console: Console) -> None:
    console.write(formatters.format_statistics(session.dispatch(Operation.CONTACT_STATISTICS)))


HANDLERS: dict[Operation, Handler] = {
    Operation.CHANGE_PASSWORD: handle_change_password,
    Operation.LIST_CONTACTS: handle_list_contacts,
    Operation.SEARCH_CONTACTS: handle_search_contacts,
    Operation.SORT_CONTACTS: handle_sort_contacts,
    Operation.UPDATE_CONTACT: handle_update_contact,
    Operation.UNDO_CONTACT_UPDATE: handle_undo_contact_update,
    Operation.ADD_CONTACT: handle_add_contact,
    Operation.DELETE_CONTACT: handle_delete_contact,
    Operation.UNDO_CONTACT_DELETE: handle_undo_contact_delete,
    Operation.LIST_USERS: handle_list_users,
    Operation.ADD_USER: handle_add_user,
    Operation.UPDATE_USER: handle_update_user,
    Operation.DELETE_USER: handle_delete_user,
    Operation.UNDO_USER_DELETE: handle_undo_user_delete,
    Operation.CONTACT_STATISTICS: handle_contact_statistics,
}
