"""Login session: binds a principal to its capability tier and undo history.

The controller owns the store handle (a ``sessionmaker``) and acquires a
database session per operation. Every public operation checks the caller's
tier first, so a Tester session cannot reach a Senior operation even when it is
called directly instead of through the menu.
"""
import logging
from typing import Any, Callable, Optional, Union

from sqlalchemy.orm import Session, sessionmaker

from . import crud, search
from .auth import authenticate, hash_password, verify_password
from .database import session_scope
from .exceptions import (
    ContactsError,
    DuplicateUsernameError,
    FieldValidationError,
    NotFoundError,
    SelfDeleteError,
    StoreWriteError,
)
from .models import Role
from .permissions import Operation, get_operations, require_operation
from .schemas import (
    ContactCreate,
    ContactRead,
    ContactSnapshot,
    ContactStatistics,
    ContactUpdate,
    Principal,
    UserCreate,
    UserRead,
    UserSnapshot,
    UserUpdate,
    check_password_strength,
)
from .search import ContactSearch, SortColumn
from .undo import UndoHistory, UndoKind, UndoOutcome, UndoResult

logger = logging.getLogger("contacts-core.session")

ContactConfirm = Callable[[ContactRead], bool]
UserConfirm = Callable[[UserRead], bool]


class SessionController:
    """Operations available to one logged-in user."""

    def __init__(self, session_factory: sessionmaker, principal: Principal):
        self._session_factory = session_factory
        self.principal = principal
        self.operations = get_operations(principal.role)
        self.undo = UndoHistory()
        self.active = True

    @classmethod
    def login(cls, session_factory: sessionmaker, username: str, password: str) -> "SessionController":
        """
        Authenticate and open a session.

        Raises:
            AuthenticationError: If the credentials do not match
            UnknownRoleError: If the user's stored role is not recognized
        """
        with session_scope(session_factory) as db:
            principal = authenticate(db, username, password)
        return cls(session_factory, principal)

    @property
    def role(self) -> Role:
        return self.principal.role

    def can(self, operation: Operation) -> bool:
        return operation in self.operations

    def undo_depth(self, kind: UndoKind) -> int:
        return self.undo.ledger(kind).depth

    def dispatch(self, operation: Operation, *args: Any, **kwargs: Any) -> Any:
        """
        Run an operation selected from a menu.

        Raises:
            PermissionDeniedError: If the operation is outside this session's tier
        """
        self._require(operation)
        return getattr(self, operation.value)(*args, **kwargs)

    def logout(self) -> None:
        """End the session and discard its undo history."""
        self.undo.clear()
        self.active = False
        logger.info(f"User {self.principal.username} logged out")

    def _require(self, operation: Operation) -> None:
        if not self.active:
            raise ContactsError("This session has been logged out.")
        require_operation(self.role, operation)

    def _store(self):
        return session_scope(self._session_factory)

    # ------------------------------------------------------------------
    # Tester operations
    # ------------------------------------------------------------------

    def change_password(self, current_password: str, new_password: str) -> None:
        """
        Change the logged-in user's password.

        Raises:
            FieldValidationError: If the current password is wrong or the new one too short
            StoreWriteError: If the user row could not be updated
        """
        self._require(Operation.CHANGE_PASSWORD)

        if not verify_password(current_password, self.principal.password_hash):
            logger.warning(f"Wrong current password for {self.principal.username}")
            raise FieldValidationError("password", "Incorrect current password!")
        check_password_strength(new_password)

        hashed = hash_password(new_password)
        with self._store() as db:
            if crud.update_password(db, self.principal.user_id, hashed) == 0:
                raise StoreWriteError("Failed to update password.")

        self.principal = self.principal.model_copy(update={"password_hash": hashed})
        logger.info(f"Password changed for {self.principal.username}")

    def list_contacts(self) -> list[ContactRead]:
        self._require(Operation.LIST_CONTACTS)
        with self._store() as db:
            return [ContactRead.model_validate(c) for c in crud.get_contacts(db)]

    def get_contact(self, contact_id: int) -> ContactRead:
        """
        Get one contact by ID.

        Raises:
            NotFoundError: If the contact does not exist
        """
        self._require(Operation.LIST_CONTACTS)
        with self._store() as db:
            db_contact = crud.get_contact(db, contact_id)
            if db_contact is None:
                raise NotFoundError("contact", contact_id)
            return ContactRead.model_validate(db_contact)

    def search_contacts(self, criteria: Union[ContactSearch, dict]) -> list[ContactRead]:
        """Find contacts matching every supplied criterion (partial, case-insensitive)."""
        self._require(Operation.SEARCH_CONTACTS)
        if isinstance(criteria, dict):
            criteria = ContactSearch(**criteria)
        with self._store() as db:
            return [ContactRead.model_validate(c) for c in search.search_contacts(db, criteria)]

    def sort_contacts(self, column: SortColumn = SortColumn.FIRST_NAME, descending: bool = False) -> list[ContactRead]:
        self._require(Operation.SORT_CONTACTS)
        with self._store() as db:
            return [ContactRead.model_validate(c) for c in search.sort_contacts(db, column, descending)]

    # ------------------------------------------------------------------
    # Junior operations
    # ------------------------------------------------------------------

    def update_contact(self, contact_id: int, changes: Union[ContactUpdate, dict]) -> ContactRead:
        """
        Replace the supplied fields of a contact.

        Fields left blank keep their current value. The contact's previous
        state is pushed onto the contact-update ledger.

        Raises:
            FieldValidationError: If a supplied field is malformed or nothing changes
            NotFoundError: If the contact does not exist
            StoreWriteError: If the update affected no rows
        """
        self._require(Operation.UPDATE_CONTACT)
        if isinstance(changes, dict):
            changes = ContactUpdate(**changes)

        patch = changes.changes()
        if not patch:
            raise FieldValidationError("update", "No changes made.")

        ledger = self.undo.ledger(UndoKind.CONTACT_UPDATE)
        with self._store() as db:
            snapshot = self._contact_snapshot(db, contact_id)
            if ledger.record(snapshot, lambda: crud.update_contact(db, contact_id, patch)) == 0:
                raise StoreWriteError("Failed to update contact.")

            logger.info(f"Updated contact {contact_id} fields {sorted(patch)} (undo depth={ledger.depth})")
            return ContactRead.model_validate(crud.get_contact(db, contact_id))

    def undo_contact_update(self) -> UndoResult[ContactSnapshot]:
        """Write the contact as it was before the most recent update."""
        self._require(Operation.UNDO_CONTACT_UPDATE)

        def restore(db: Session, snapshot: ContactSnapshot) -> int:
            row = snapshot.to_row()
            contact_id = row.pop("contact_id")
            return crud.update_contact(db, contact_id, row)

        return self._undo(UndoKind.CONTACT_UPDATE, restore)

    # ------------------------------------------------------------------
    # Senior operations
    # ------------------------------------------------------------------

    def add_contact(self, contact: Union[ContactCreate, dict]) -> ContactRead:
        """
        Add a new contact.

        Raises:
            FieldValidationError: If a required field is missing or a field is malformed
            StoreWriteError: If the insert fails
        """
        self._require(Operation.ADD_CONTACT)
        if isinstance(contact, dict):
            contact = ContactCreate(**contact)

        with self._store() as db:
            created = ContactRead.model_validate(crud.create_contact(db, contact))
        logger.info(f"Added contact {created.contact_id} ({created.display_name})")
        return created

    def delete_contact(self, contact_id: int, confirm: ContactConfirm) -> Optional[ContactSnapshot]:
        """
        Delete a contact after confirmation, keeping a snapshot for undo.

        Args:
            contact_id: Contact to delete
            confirm: Shown the contact; returns True to go ahead

        Returns:
            The deleted contact's snapshot, or None if the operator declined

        Raises:
            NotFoundError: If the contact does not exist
            StoreWriteError: If the delete affected no rows
        """
        self._require(Operation.DELETE_CONTACT)

        with self._store() as db:
            snapshot = self._contact_snapshot(db, contact_id)

        if not confirm(snapshot):
            logger.info(f"Delete of contact {contact_id} cancelled")
            return None

        ledger = self.undo.ledger(UndoKind.CONTACT_DELETE)
        with self._store() as db:
            if ledger.record(snapshot, lambda: crud.delete_contact(db, contact_id)) == 0:
                raise StoreWriteError("Delete failed.")

        logger.info(f"Deleted contact {contact_id} (undo depth={ledger.depth})")
        return snapshot

    def undo_contact_delete(self) -> UndoResult[ContactSnapshot]:
        """Re-insert the most recently deleted contact under its original ID."""
        self._require(Operation.UNDO_CONTACT_DELETE)
        return self._undo(
            UndoKind.CONTACT_DELETE,
            lambda db, snapshot: crud.insert_contact(db, snapshot.to_row()),
        )

    # ------------------------------------------------------------------
    # Manager operations
    # ------------------------------------------------------------------

    def list_users(self) -> list[UserRead]:
        self._require(Operation.LIST_USERS)
        with self._store() as db:
            return [UserRead.model_validate(u) for u in crud.get_users(db)]

    def add_user(self, user: Union[UserCreate, dict]) -> UserRead:
        """
        Add a login account.

        Raises:
            FieldValidationError: If a field is malformed or the password too short
            DuplicateUsernameError: If the username is already taken
            StoreWriteError: If the insert fails
        """
        self._require(Operation.ADD_USER)
        if isinstance(user, dict):
            user = UserCreate(**user)

        with self._store() as db:
            if crud.get_user_by_username(db, user.username) is not None:
                logger.warning(f"Duplicate username rejected: {user.username}")
                raise DuplicateUsernameError(user.username)
            created = UserRead.model_validate(crud.create_user(db, user, hash_password(user.password)))

        logger.info(f"Added user {created.user_id} ({created.username}) as {created.role}")
        return created

    def update_user(self, user_id: int, changes: Union[UserUpdate, dict]) -> UserRead:
        """
        Change a user's name, surname and/or role.

        A role change on the logged-in manager takes effect at the next login.

        Raises:
            FieldValidationError: If nothing changes or a name is malformed
            NotFoundError: If the user does not exist
            StoreWriteError: If the update affected no rows
        """
        self._require(Operation.UPDATE_USER)
        if isinstance(changes, dict):
            changes = UserUpdate(**changes)

        patch = changes.changes()
        if not patch:
            raise FieldValidationError("update", "No changes made.")

        with self._store() as db:
            if crud.get_user(db, user_id) is None:
                raise NotFoundError("user", user_id)
            if crud.update_user(db, user_id, patch) == 0:
                raise StoreWriteError("Failed to update user.")
            updated = UserRead.model_validate(crud.get_user(db, user_id))

        if user_id == self.principal.user_id:
            self.principal = self.principal.model_copy(
                update={"name": updated.name, "surname": updated.surname}
            )
        logger.info(f"Updated user {user_id}: {patch}")
        return updated

    def delete_user(self, user_id: int, confirm: UserConfirm) -> Optional[UserSnapshot]:
        """
        Delete a user after confirmation, keeping a snapshot for undo.

        Raises:
            SelfDeleteError: If the manager targets their own account
            NotFoundError: If the user does not exist
            StoreWriteError: If the delete affected no rows
        """
        self._require(Operation.DELETE_USER)
        if user_id == self.principal.user_id:
            logger.warning(f"{self.principal.username} attempted to delete their own account")
            raise SelfDeleteError(user_id)

        with self._store() as db:
            db_user = crud.get_user(db, user_id)
            if db_user is None:
                raise NotFoundError("user", user_id)
            snapshot = UserSnapshot.model_validate(db_user)

        if not confirm(snapshot):
            logger.info(f"Delete of user {user_id} cancelled")
            return None

        ledger = self.undo.ledger(UndoKind.USER_DELETE)
        with self._store() as db:
            if ledger.record(snapshot, lambda: crud.delete_user(db, user_id)) == 0:
                raise StoreWriteError("Delete failed.")

        logger.info(f"Deleted user {user_id} ({snapshot.username}) (undo depth={ledger.depth})")
        return snapshot

    def undo_user_delete(self) -> UndoResult[UserSnapshot]:
        """Re-insert the most recently deleted user under its original ID."""
        self._require(Operation.UNDO_USER_DELETE)
        return self._undo(
            UndoKind.USER_DELETE,
            lambda db, snapshot: crud.insert_user(db, snapshot.to_row()),
        )

    def contact_statistics(self) -> ContactStatistics:
        self._require(Operation.CONTACT_STATISTICS)
        with self._store() as db:
            return crud.get_contact_statistics(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _contact_snapshot(self, db: Session, contact_id: int) -> ContactSnapshot:
        db_contact = crud.get_contact(db, contact_id)
        if db_contact is None:
            logger.warning(f"Contact {contact_id} not found")
            raise NotFoundError("contact", contact_id)
        return ContactSnapshot.model_validate(db_contact)

    def _undo(self, kind: UndoKind, restore: Callable[[Session, Any], int]) -> UndoResult:
        ledger = self.undo.ledger(kind)
        if ledger.is_empty():
            logger.info(f"{kind.value}: nothing to undo")
            return UndoResult(UndoOutcome.NOTHING_TO_UNDO)

        with self._store() as db:
            return ledger.undo(lambda snapshot: restore(db, snapshot))
