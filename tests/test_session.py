"""Tests for session operations, tier enforcement and undo round trips."""
from datetime import date

import pytest

from contacts_core import crud
from contacts_core.database import session_scope
from contacts_core.exceptions import (
    AuthenticationError,
    ContactsError,
    DuplicateUsernameError,
    FieldValidationError,
    NotFoundError,
    PermissionDeniedError,
    SelfDeleteError,
    StoreWriteError,
    UnknownRoleError,
)
from contacts_core.models import Role
from contacts_core.permissions import Operation
from contacts_core.session import SessionController
from contacts_core.undo import UndoKind, UndoOutcome

from conftest import PASSWORD


def always(answer):
    """Confirmation callback that records what it was shown."""
    shown = []

    def confirm(record):
        shown.append(record)
        return answer

    confirm.shown = shown
    return confirm


class TestLogin:
    """Test authentication and role resolution."""

    def test_login_resolves_tier(self, session_factory, users):
        session = SessionController.login(session_factory, "junior", PASSWORD)
        assert session.role == Role.JUNIOR_DEVELOPER
        assert session.can(Operation.UPDATE_CONTACT)
        assert not session.can(Operation.ADD_CONTACT)

    def test_wrong_password(self, session_factory, users):
        with pytest.raises(AuthenticationError):
            SessionController.login(session_factory, "junior", "wrong")

    def test_unknown_user(self, session_factory, users):
        with pytest.raises(AuthenticationError):
            SessionController.login(session_factory, "nobody", PASSWORD)

    def test_unrecognized_stored_role(self, session_factory, users):
        """A user whose stored role maps to no tier cannot log in."""
        with session_scope(session_factory) as db:
            crud.update_user(db, users[Role.TESTER].user_id, {"role": "Intern"})

        with pytest.raises(UnknownRoleError):
            SessionController.login(session_factory, "tester", PASSWORD)

    def test_loosely_written_stored_role(self, session_factory, users):
        with session_scope(session_factory) as db:
            crud.update_user(db, users[Role.TESTER].user_id, {"role": "  senior "})

        session = SessionController.login(session_factory, "tester", PASSWORD)
        assert session.role == Role.SENIOR_DEVELOPER

    def test_legacy_plain_text_password(self, session_factory, users):
        with session_scope(session_factory) as db:
            crud.update_password(db, users[Role.TESTER].user_id, "legacy-pass")

        session = SessionController.login(session_factory, "tester", "legacy-pass")
        assert session.role == Role.TESTER


class TestTierEnforcement:
    """Test that sessions only run operations their tier grants."""

    def test_tester_cannot_update(self, tester, make_contact):
        contact = make_contact()
        with pytest.raises(PermissionDeniedError):
            tester.update_contact(contact.contact_id, {"phone_primary": "5559999999"})

    def test_junior_cannot_delete(self, junior, make_contact):
        contact = make_contact()
        with pytest.raises(PermissionDeniedError):
            junior.delete_contact(contact.contact_id, always(True))
        assert junior.undo_depth(UndoKind.CONTACT_DELETE) == 0

    def test_senior_cannot_manage_users(self, senior, users):
        with pytest.raises(PermissionDeniedError):
            senior.list_users()
        with pytest.raises(PermissionDeniedError):
            senior.delete_user(users[Role.TESTER].user_id, always(True))

    def test_manager_cannot_touch_contacts(self, manager, make_contact):
        contact = make_contact()
        with pytest.raises(PermissionDeniedError):
            manager.list_contacts()
        with pytest.raises(PermissionDeniedError):
            manager.delete_contact(contact.contact_id, always(True))

    def test_dispatch_routes_by_operation(self, senior, make_contact):
        make_contact()
        contacts = senior.dispatch(Operation.LIST_CONTACTS)
        assert [c.first_name for c in contacts] == ["Ada"]

    def test_dispatch_rejects_operation_outside_tier(self, tester):
        with pytest.raises(PermissionDeniedError):
            tester.dispatch(Operation.ADD_CONTACT, {"first_name": "Ada"})

    def test_logout_clears_history_and_ends_session(self, senior, make_contact):
        contact = make_contact()
        senior.delete_contact(contact.contact_id, always(True))
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 1

        senior.logout()

        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0
        assert not senior.active
        with pytest.raises(ContactsError):
            senior.undo_contact_delete()

    def test_history_is_per_session(self, login, make_contact):
        """A new login starts with empty undo history."""
        contact = make_contact()
        first = login(Role.SENIOR_DEVELOPER)
        first.delete_contact(contact.contact_id, always(True))

        second = login(Role.SENIOR_DEVELOPER)
        assert second.undo_contact_delete().outcome == UndoOutcome.NOTHING_TO_UNDO
        assert first.undo_depth(UndoKind.CONTACT_DELETE) == 1


class TestContactDeleteUndo:
    """Test delete/undo round trips for contacts."""

    def test_add_delete_undo_scenario(self, senior):
        """Added contact survives a delete followed by an undo unchanged."""
        created = senior.add_contact({"first_name": "Ada", "last_name": "Lovelace", "phone_primary": "5551234567"})
        assert created.contact_id is not None
        assert created in senior.list_contacts()

        confirm = always(True)
        deleted = senior.delete_contact(created.contact_id, confirm)
        assert deleted.contact_id == created.contact_id
        assert confirm.shown[0].contact_id == created.contact_id
        assert senior.list_contacts() == []
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 1

        result = senior.undo_contact_delete()

        assert result.restored
        assert senior.list_contacts() == [created]
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0

    def test_round_trip_with_every_field(self, senior, make_contact):
        contact = make_contact(
            middle_name="King",
            nickname="Countess",
            phone_secondary="5557654321",
            birthdate="1990-12-10",
            email="ada@example.com",
            linkedin_url="https://linkedin.com/in/ada",
            address="12 St James Square, London",
        )

        senior.delete_contact(contact.contact_id, always(True))
        senior.undo_contact_delete()

        assert senior.get_contact(contact.contact_id) == contact

    def test_round_trip_keeps_null_optionals(self, senior, make_contact):
        contact = make_contact()
        assert contact.email is None and contact.birthdate is None

        senior.delete_contact(contact.contact_id, always(True))
        senior.undo_contact_delete()

        restored = senior.get_contact(contact.contact_id)
        assert restored == contact
        assert restored.email is None
        assert restored.birthdate is None

    def test_undo_in_reverse_order(self, senior, make_contact):
        contacts = [make_contact(first_name=name) for name in ("Ada", "Grace", "Hedy")]
        for contact in contacts:
            senior.delete_contact(contact.contact_id, always(True))
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 3

        restored = [senior.undo_contact_delete().snapshot.first_name for _ in contacts]

        assert restored == ["Hedy", "Grace", "Ada"]
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0
        assert senior.list_contacts() == contacts

    def test_undo_on_empty_ledger(self, senior, make_contact):
        contact = make_contact()

        for _ in range(2):
            result = senior.undo_contact_delete()
            assert result.outcome == UndoOutcome.NOTHING_TO_UNDO

        assert senior.list_contacts() == [contact]
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0

    def test_declined_confirmation(self, senior, make_contact):
        contact = make_contact()

        assert senior.delete_contact(contact.contact_id, always(False)) is None

        assert senior.list_contacts() == [contact]
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0

    def test_missing_contact(self, senior):
        confirm = always(True)
        with pytest.raises(NotFoundError):
            senior.delete_contact(404, confirm)
        assert confirm.shown == []
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 0

    def test_failed_delete_leaves_ledger_unchanged(self, senior, make_contact, monkeypatch):
        first, second = make_contact(), make_contact(first_name="Grace")
        senior.delete_contact(first.contact_id, always(True))

        monkeypatch.setattr(crud, "delete_contact", lambda db, contact_id: 0)
        with pytest.raises(StoreWriteError):
            senior.delete_contact(second.contact_id, always(True))

        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 1
        assert senior.undo.ledger(UndoKind.CONTACT_DELETE).peek().contact_id == first.contact_id
        assert senior.list_contacts() == [second]

    def test_failed_restore_keeps_entry(self, senior, make_contact, monkeypatch):
        contact = make_contact()
        senior.delete_contact(contact.contact_id, always(True))

        with monkeypatch.context() as patched:
            patched.setattr(crud, "insert_contact", lambda db, row: 0)
            result = senior.undo_contact_delete()

        assert result.outcome == UndoOutcome.FAILED
        assert senior.undo_depth(UndoKind.CONTACT_DELETE) == 1

        assert senior.undo_contact_delete().restored
        assert senior.list_contacts() == [contact]

    def test_deleted_ids_are_not_reused(self, senior, make_contact):
        contact = make_contact()
        senior.delete_contact(contact.contact_id, always(True))

        newer = senior.add_contact({"first_name": "Grace", "last_name": "Hopper", "phone_primary": "5550001111"})
        assert newer.contact_id != contact.contact_id

        assert senior.undo_contact_delete().restored
        assert {c.contact_id for c in senior.list_contacts()} == {contact.contact_id, newer.contact_id}


class TestContactUpdateUndo:
    """Test partial updates and their undo."""

    def test_phone_only_update_and_undo(self, junior, make_contact):
        contact = make_contact(email="ada@example.com")

        updated = junior.update_contact(contact.contact_id, {
            "first_name": "",
            "last_name": "",
            "phone_primary": "5559876543",
            "email": "",
        })

        assert updated.phone_primary == "5559876543"
        assert updated.first_name == "Ada"
        assert updated.last_name == "Lovelace"
        assert updated.email == "ada@example.com"
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 1

        result = junior.undo_contact_update()

        assert result.restored
        assert junior.get_contact(contact.contact_id) == contact
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 0

    def test_successive_updates_undo_in_reverse(self, junior, make_contact):
        contact = make_contact()
        junior.update_contact(contact.contact_id, {"nickname": "Countess"})
        junior.update_contact(contact.contact_id, {"birthdate": "1990-12-10"})

        junior.undo_contact_update()
        current = junior.get_contact(contact.contact_id)
        assert current.nickname == "Countess"
        assert current.birthdate is None

        junior.undo_contact_update()
        assert junior.get_contact(contact.contact_id) == contact

    def test_update_sets_birthdate(self, junior, make_contact):
        contact = make_contact()
        updated = junior.update_contact(contact.contact_id, {"birthdate": "1990-12-10"})
        assert updated.birthdate == date(1990, 12, 10)

    def test_invalid_field_changes_nothing(self, junior, make_contact):
        contact = make_contact()

        with pytest.raises(FieldValidationError):
            junior.update_contact(contact.contact_id, {"phone_primary": "12345"})

        assert junior.get_contact(contact.contact_id) == contact
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 0

    def test_nothing_supplied(self, junior, make_contact):
        contact = make_contact()
        with pytest.raises(FieldValidationError) as exc_info:
            junior.update_contact(contact.contact_id, {"first_name": "  "})
        assert exc_info.value.message == "No changes made."
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 0

    def test_missing_contact(self, junior):
        with pytest.raises(NotFoundError):
            junior.update_contact(99, {"nickname": "Ghost"})
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 0

    def test_failed_update_leaves_ledger_unchanged(self, junior, make_contact, monkeypatch):
        contact = make_contact()
        monkeypatch.setattr(crud, "update_contact", lambda db, contact_id, changes: 0)

        with pytest.raises(StoreWriteError):
            junior.update_contact(contact.contact_id, {"nickname": "Countess"})
        assert junior.undo_depth(UndoKind.CONTACT_UPDATE) == 0

    def test_senior_inherits_update(self, senior, make_contact):
        contact = make_contact()
        senior.update_contact(contact.contact_id, {"nickname": "Countess"})
        assert senior.undo_contact_update().restored


class TestAddContact:
    """Test adding contacts."""

    def test_required_fields(self, senior):
        with pytest.raises(FieldValidationError) as exc_info:
            senior.add_contact({"first_name": "Ada", "last_name": "", "phone_primary": "5551234567"})
        assert exc_info.value.field == "last_name"
        assert senior.list_contacts() == []

    def test_optional_fields_validated(self, senior):
        with pytest.raises(FieldValidationError):
            senior.add_contact({
                "first_name": "Ada",
                "last_name": "Lovelace",
                "phone_primary": "5551234567",
                "email": "not-an-email",
            })
        assert senior.list_contacts() == []

    def test_add_is_not_undoable(self, senior):
        senior.add_contact({"first_name": "Ada", "last_name": "Lovelace", "phone_primary": "5551234567"})
        assert senior.undo.depths() == {kind: 0 for kind in UndoKind}


class TestUserManagement:
    """Test the manager's user operations."""

    def test_list_users_ordered_by_role(self, manager, users):
        roles = [user.role for user in manager.list_users()]
        assert roles == ["Junior Developer", "Manager", "Senior Developer", "Tester"]

    def test_list_users_hides_password(self, manager, users):
        assert not hasattr(manager.list_users()[0], "password_hash")

    def test_self_delete_rejected(self, manager, users):
        confirm = always(True)
        with pytest.raises(SelfDeleteError):
            manager.delete_user(manager.principal.user_id, confirm)

        assert confirm.shown == []
        assert manager.undo_depth(UndoKind.USER_DELETE) == 0
        assert users[Role.MANAGER].user_id in [u.user_id for u in manager.list_users()]

    def test_delete_user_and_undo(self, manager, users, session_factory):
        target = users[Role.TESTER]

        deleted = manager.delete_user(target.user_id, always(True))
        assert deleted.username == "tester"
        assert target.user_id not in [u.user_id for u in manager.list_users()]
        with pytest.raises(AuthenticationError):
            SessionController.login(session_factory, "tester", PASSWORD)

        assert manager.undo_user_delete().restored

        assert target in manager.list_users()
        assert SessionController.login(session_factory, "tester", PASSWORD).role == Role.TESTER

    def test_declined_user_delete(self, manager, users):
        assert manager.delete_user(users[Role.TESTER].user_id, always(False)) is None
        assert manager.undo_depth(UndoKind.USER_DELETE) == 0

    def test_restore_blocked_by_reused_username(self, manager, users, session_factory):
        target = users[Role.TESTER]
        manager.delete_user(target.user_id, always(True))
        manager.add_user({
            "username": "tester",
            "password": "replacement",
            "name": "Other",
            "surname": "Person",
        })

        result = manager.undo_user_delete()

        assert result.outcome == UndoOutcome.FAILED
        assert manager.undo_depth(UndoKind.USER_DELETE) == 1
        with session_scope(session_factory) as db:
            assert crud.get_user(db, target.user_id) is None
            assert crud.get_user_by_username(db, "tester").name == "Other"

    def test_delete_missing_user(self, manager, users):
        with pytest.raises(NotFoundError):
            manager.delete_user(404, always(True))
        assert manager.undo_depth(UndoKind.USER_DELETE) == 0

    def test_add_user(self, manager, users, session_factory):
        created = manager.add_user({
            "username": "grace",
            "password": "hopper",
            "name": "Grace",
            "surname": "Hopper",
            "role": Role.SENIOR_DEVELOPER,
        })
        assert created.role == "Senior Developer"

        session = SessionController.login(session_factory, "grace", "hopper")
        assert session.role == Role.SENIOR_DEVELOPER

    def test_add_duplicate_username(self, manager, users):
        with pytest.raises(DuplicateUsernameError):
            manager.add_user({"username": "tester", "password": "abc", "name": "Other", "surname": "Person"})

    def test_promote_user(self, manager, users, session_factory):
        updated = manager.update_user(users[Role.TESTER].user_id, {"role": Role.JUNIOR_DEVELOPER})

        assert updated.role == "Junior Developer"
        assert updated.name == "Tina"
        session = SessionController.login(session_factory, "tester", PASSWORD)
        assert session.can(Operation.UPDATE_CONTACT)

    def test_update_user_without_changes(self, manager, users):
        with pytest.raises(FieldValidationError):
            manager.update_user(users[Role.TESTER].user_id, {"name": "", "surname": ""})

    def test_update_missing_user(self, manager, users):
        with pytest.raises(NotFoundError):
            manager.update_user(404, {"name": "Ghost"})

    def test_update_own_name(self, manager):
        manager.update_user(manager.principal.user_id, {"surname": "Boss"})
        assert manager.principal.full_name == "Maria Boss"

    def test_statistics(self, manager, make_contact):
        make_contact(email="ada@example.com", address="12 St James Square, London")
        make_contact(first_name="Grace", linkedin_url="https://linkedin.com/in/grace", address="Arlington, Virginia")
        make_contact(first_name="Hedy", phone_secondary="5557654321", birthdate="1990-11-09", address="Vienna")
        make_contact(first_name="Alan", address="Bletchley Park, London")

        stats = manager.contact_statistics()

        assert stats.total == 4
        assert stats.with_email == 1
        assert stats.with_linkedin == 1
        assert stats.with_secondary_phone == 1
        assert stats.with_birthdate == 1
        assert stats.by_city == {"London": 2, "Vienna": 1, "Virginia": 1}


class TestChangePassword:
    """Test changing the logged-in user's password."""

    def test_change_password(self, tester, session_factory):
        tester.change_password(PASSWORD, "new-secret")

        with pytest.raises(AuthenticationError):
            SessionController.login(session_factory, "tester", PASSWORD)
        assert SessionController.login(session_factory, "tester", "new-secret").role == Role.TESTER

    def test_second_change_uses_new_password(self, tester):
        tester.change_password(PASSWORD, "new-secret")
        tester.change_password("new-secret", "newer-secret")

    def test_wrong_current_password(self, tester):
        with pytest.raises(FieldValidationError):
            tester.change_password("wrong", "new-secret")

    def test_short_new_password(self, manager):
        with pytest.raises(FieldValidationError) as exc_info:
            manager.change_password(PASSWORD, "ab")
        assert exc_info.value.field == "password"
