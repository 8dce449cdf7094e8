"""Linear undo/redo history over generated artifacts."""

import logging
from typing import List, Optional, Tuple

from .types import Artifact

logger = logging.getLogger(__name__)


class EditHistory:
    """Undo/redo stack with forward-branch discard.

    Pushing a new artifact while the cursor is not on the last entry drops
    every entry after the cursor first, so the history never branches.
    """

    def __init__(self):
        self._items: List[Artifact] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._items)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def items(self) -> Tuple[Artifact, ...]:
        return tuple(self._items)

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._index < len(self._items) - 1

    def reset(self) -> None:
        """Drop all entries."""
        self._items.clear()
        self._index = -1

    def push(self, artifact: Artifact) -> None:
        """Append an artifact after the cursor, truncating any redo entries."""
        if self._items and self._index < len(self._items) - 1:
            dropped = len(self._items) - self._index - 1
            del self._items[self._index + 1:]
            logger.debug(f"Discarded {dropped} redo entries")

        self._items.append(artifact)
        self._index = len(self._items) - 1

    def undo(self) -> bool:
        """
        Move the cursor back one entry.

        Returns:
            True if the cursor moved, False if there was nothing to undo
        """
        if not self.can_undo:
            return False
        self._index -= 1
        return True

    def redo(self) -> bool:
        """
        Move the cursor forward one entry.

        Returns:
            True if the cursor moved, False if there was nothing to redo
        """
        if not self.can_redo:
            return False
        self._index += 1
        return True

    def current(self) -> Optional[Artifact]:
        """Artifact under the cursor, or None when empty."""
        if self._index < 0:
            return None
        return self._items[self._index]
