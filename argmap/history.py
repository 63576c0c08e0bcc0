"""Linear undo/redo history of debate snapshots."""

import logging

from argmap.models import Snapshot

logger = logging.getLogger(__name__)


class History:
    """Append/truncate list of snapshots with a cursor.

    Pushing after an undo discards the redo branch; there is no history tree.
    Undo and redo are no-ops at the bounds.
    """

    def __init__(self, initial: Snapshot) -> None:
        self._entries: list[Snapshot] = [initial]
        self._index = 0

    @property
    def entries(self) -> list[Snapshot]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Snapshot:
        return self._entries[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def push(self, entry: Snapshot) -> None:
        dropped = len(self._entries) - self._index - 1
        if dropped:
            logger.debug("Discarding %d redo entries", dropped)
        del self._entries[self._index + 1:]
        self._entries.append(entry)
        self._index += 1

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._index -= 1
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._index += 1
        return True
