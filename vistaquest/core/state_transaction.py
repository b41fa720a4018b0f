"""
Staged history transactions.

A turn produces entries for both threads, but only after every service
call has succeeded.  Appends are staged here and applied together on
commit; if anything raises inside the block, nothing is applied.

Usage:
    with store.begin_transaction("turn 3") as txn:
        txn.append(ThreadName.IMAGE, [user_entry, image_entry])
        txn.append(ThreadName.NARRATIVE, [user_entry, choices_entry])
        txn.on_commit(mark_turn_started)
    # Commits on clean exit, discards on exception
"""

import logging
from typing import Callable, Iterable

from ..enums import ThreadName
from .history import DualHistoryStore, HistoryEntry

logger = logging.getLogger(__name__)


class HistoryTransaction:
    """All-or-nothing batch of appends to a :class:`DualHistoryStore`."""

    def __init__(self, store: DualHistoryStore, description: str = ""):
        self.store = store
        self.description = description
        self._staged: dict[ThreadName, list[HistoryEntry]] = {}
        self._callbacks: list[Callable[[], None]] = []
        self.committed = False
        self.discarded = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.discard()
            return False

        if not self.committed and not self.discarded:
            self.commit()
        return False

    def append(self, thread: ThreadName, entries: Iterable[HistoryEntry]) -> "HistoryTransaction":
        """Stage entries for *thread*.  Validated now, applied on commit."""
        self._ensure_open()
        thread = ThreadName(thread)
        checked = self.store.check_entries(thread, entries)
        self._staged.setdefault(thread, []).extend(checked)
        return self

    def on_commit(self, callback: Callable[[], None]) -> "HistoryTransaction":
        """Run *callback* after the staged entries are applied."""
        self._ensure_open()
        self._callbacks.append(callback)
        return self

    def staged(self, thread: ThreadName) -> tuple[HistoryEntry, ...]:
        return tuple(self._staged.get(ThreadName(thread), ()))

    def commit(self) -> None:
        self._ensure_open()
        for thread, entries in self._staged.items():
            self.store.commit(thread, entries)
        for callback in self._callbacks:
            callback()
        self.committed = True
        logger.debug("Transaction '%s' committed", self.description)

    def discard(self) -> None:
        if self.committed:
            raise RuntimeError("Cannot discard a committed transaction")
        self._staged.clear()
        self._callbacks.clear()
        self.discarded = True
        logger.debug("Transaction '%s' discarded", self.description)

    def _ensure_open(self) -> None:
        if self.committed or self.discarded:
            raise RuntimeError(f"Transaction '{self.description}' is already closed")
