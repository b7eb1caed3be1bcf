"""Session-scoped undo history for destructive operations.

Every reversible operation class (contact update, contact delete, user delete)
has its own last-in-first-out ledger of snapshots:

- A mutation pushes the pre-change snapshot, then writes. If the write affects
  no rows the push is rolled back, so a failed mutation leaves the ledger as it
  was.
- An undo pops the newest snapshot and writes it back. If that write affects no
  rows the snapshot is pushed back, so the operator can retry.
- Undo is not itself undoable and there is no redo.

Ledgers live only in memory and are cleared when the session logs out.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from .schemas import ContactSnapshot, UserSnapshot

logger = logging.getLogger("contacts-core.undo")

S = TypeVar("S", ContactSnapshot, UserSnapshot)


class UndoKind(str, enum.Enum):
    """Operation classes with their own undo ledger."""

    CONTACT_UPDATE = "contact_update"
    CONTACT_DELETE = "contact_delete"
    USER_DELETE = "user_delete"


class UndoOutcome(str, enum.Enum):
    """Result of an undo request."""

    NOTHING_TO_UNDO = "nothing_to_undo"
    RESTORED = "restored"
    FAILED = "failed"


@dataclass(frozen=True)
class UndoResult(Generic[S]):
    outcome: UndoOutcome
    snapshot: Optional[S] = None

    @property
    def restored(self) -> bool:
        return self.outcome == UndoOutcome.RESTORED


class UndoLedger(Generic[S]):
    """LIFO stack of snapshots for one operation class."""

    def __init__(self, kind: UndoKind):
        self.kind = kind
        self._entries: list[S] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def depth(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def peek(self) -> Optional[S]:
        """Return the newest snapshot without removing it."""
        return self._entries[-1] if self._entries else None

    def push(self, snapshot: S) -> None:
        self._entries.append(snapshot)
        logger.debug(f"{self.kind.value}: pushed #{snapshot.entity_id} (depth={self.depth})")

    def pop(self) -> S:
        """
        Remove and return the newest snapshot.

        Raises:
            IndexError: If the ledger is empty
        """
        snapshot = self._entries.pop()
        logger.debug(f"{self.kind.value}: popped #{snapshot.entity_id} (depth={self.depth})")
        return snapshot

    def clear(self) -> None:
        if self._entries:
            logger.info(f"{self.kind.value}: discarding {self.depth} undo entries")
        self._entries.clear()

    def record(self, snapshot: S, write: Callable[[], int]) -> int:
        """
        Push a snapshot and perform the write it backs up.

        The push is rolled back when ``write`` raises or reports zero affected
        rows.

        Args:
            snapshot: State of the entity before the write
            write: Performs the mutation and returns the affected-row count

        Returns:
            The affected-row count reported by ``write``
        """
        self.push(snapshot)
        try:
            affected = write()
        except Exception:
            self._rollback_push(snapshot)
            raise

        if affected == 0:
            self._rollback_push(snapshot)
        return affected

    def undo(self, restore: Callable[[S], int]) -> UndoResult[S]:
        """
        Pop the newest snapshot and write it back to the store.

        The snapshot is pushed back when ``restore`` raises or reports zero
        affected rows.

        Args:
            restore: Writes a snapshot back and returns the affected-row count

        Returns:
            UndoResult describing what happened
        """
        if self.is_empty():
            return UndoResult(UndoOutcome.NOTHING_TO_UNDO)

        snapshot = self.pop()
        try:
            affected = restore(snapshot)
        except Exception:
            self.push(snapshot)
            raise

        if affected == 0:
            self.push(snapshot)
            logger.warning(f"{self.kind.value}: restoring #{snapshot.entity_id} failed, entry kept")
            return UndoResult(UndoOutcome.FAILED, snapshot)

        logger.info(f"{self.kind.value}: restored #{snapshot.entity_id}")
        return UndoResult(UndoOutcome.RESTORED, snapshot)

    def _rollback_push(self, snapshot: S) -> None:
        # Only the entry this call pushed may be removed
        if self._entries and self._entries[-1] is snapshot:
            self._entries.pop()
            logger.debug(f"{self.kind.value}: rolled back push of #{snapshot.entity_id}")


class UndoHistory:
    """All undo ledgers owned by one login session."""

    def __init__(self):
        self._ledgers: dict[UndoKind, UndoLedger] = {kind: UndoLedger(kind) for kind in UndoKind}

    def ledger(self, kind: UndoKind) -> UndoLedger:
        return self._ledgers[kind]

    def depths(self) -> dict[UndoKind, int]:
        return {kind: ledger.depth for kind, ledger in self._ledgers.items()}

    def clear(self) -> None:
        for ledger in self._ledgers.values():
            ledger.clear()
