"""Text formatting for console output.

Every function returns a string; printing is left to the caller.
"""
from typing import Optional, Sequence

from contacts_core.schemas import ContactRead, ContactStatistics, UserRead
from contacts_core.undo import UndoKind, UndoOutcome, UndoResult

UNDO_LABELS = {
    UndoKind.CONTACT_UPDATE: "contact update",
    UndoKind.CONTACT_DELETE: "contact delete",
    UndoKind.USER_DELETE: "user delete",
}


def _or_dash(value: Optional[object]) -> str:
    return str(value) if value not in (None, "") else "-"


def format_contact_card(contact: ContactRead) -> str:
    """Format a contact for display with every field."""
    names = " ".join(part for part in (contact.first_name, contact.middle_name, contact.last_name) if part)
    nickname_info = f" \"{contact.nickname}\"" if contact.nickname else ""

    return f"""[#{contact.contact_id}] {names}{nickname_info}
Phone: {contact.phone_primary}
Phone (2nd): {_or_dash(contact.phone_secondary)}
Email: {_or_dash(contact.email)}
LinkedIn: {_or_dash(contact.linkedin_url)}
Birthdate: {_or_dash(contact.birthdate)}
Address: {_or_dash(contact.address)}"""


def format_contact_summary(contact: ContactRead) -> str:
    """Format a contact as a compact one-liner."""
    return f"[#{contact.contact_id}] {contact.first_name} {contact.last_name} - {contact.phone_primary}"


def format_contact_page(
    contacts: Sequence[ContactRead],
    page: int,
    page_size: int,
    title: str,
) -> str:
    """
    Format one page of contact cards.

    Args:
        contacts: All contacts in the listing
        page: Zero-based page number
        page_size: Cards per page
        title: Heading shown above the cards
    """
    total_pages = max(1, -(-len(contacts) // page_size))
    start = page * page_size
    cards = [format_contact_card(c) for c in contacts[start:start + page_size]]

    header = f"=== {title} === (page {page + 1}/{total_pages}, {len(contacts)} record(s))"
    return "\n\n".join([header, *cards])


def format_user_table(users: Sequence[UserRead]) -> str:
    """Format users as a fixed-width table."""
    lines = [
        f"{'ID':<5} {'Username':<15} {'Name':<15} {'Surname':<15} {'Role':<17}",
        "-" * 71,
    ]
    for user in users:
        lines.append(f"{user.user_id:<5} {user.username:<15} {user.name:<15} {user.surname:<15} {user.role:<17}")
    return "\n".join(lines)


def format_statistics(stats: ContactStatistics) -> str:
    """Format aggregate contact statistics."""
    lines = [
        f"Total contacts: {stats.total}",
        f"With LinkedIn: {stats.with_linkedin}",
        f"With email: {stats.with_email}",
        f"With secondary phone: {stats.with_secondary_phone}",
        f"With birthdate: {stats.with_birthdate}",
    ]
    if stats.by_city:
        lines.append("Contacts by city:")
        lines.extend(f"  {city}: {count}" for city, count in stats.by_city.items())
    return "\n".join(lines)


def format_undo_result(kind: UndoKind, result: UndoResult) -> str:
    """Describe the outcome of an undo request."""
    label = UNDO_LABELS[kind]
    if result.outcome == UndoOutcome.NOTHING_TO_UNDO:
        return f"Nothing to undo ({label} history is empty)."
    name = result.snapshot.display_name
    if result.outcome == UndoOutcome.RESTORED:
        return f"Undo successful: {name} (#{result.snapshot.entity_id}) restored."
    return f"Undo failed for {name} (#{result.snapshot.entity_id}); it stays in the undo history."
