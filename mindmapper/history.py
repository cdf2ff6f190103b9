"""Undo/Redo history for Mind Mapper."""

from copy import deepcopy
from typing import Callable, List, Optional


DEFAULT_MAX_HISTORY = 10


class HistoryManager:
    """Bounded linear history of full state snapshots.

    ``pointer`` indexes the entry matching the live state. Committing after
    an undo discards the redo branch.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_HISTORY):
        if max_size < 1:
            raise ValueError("History needs room for at least one entry")
        self.max_size = max_size
        self._entries: List[dict] = []
        self._pointer = -1

        # Callbacks
        self.on_state_changed: Optional[Callable[[], None]] = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return self._pointer < len(self._entries) - 1

    def commit(self, state: dict):
        """Record a committed state."""
        if self._pointer < len(self._entries) - 1:
            del self._entries[self._pointer + 1:]

        self._entries.append(deepcopy(state))
        if len(self._entries) > self.max_size:
            # Window slid; the pointer already names the new top
            self._entries.pop(0)
        else:
            self._pointer += 1

        self._notify_changed()

    def undo(self) -> Optional[dict]:
        """Step back and return a copy of the state to restore."""
        if not self.can_undo:
            return None
        self._pointer -= 1
        self._notify_changed()
        return deepcopy(self._entries[self._pointer])

    def redo(self) -> Optional[dict]:
        """Step forward and return a copy of the state to restore."""
        if not self.can_redo:
            return None
        self._pointer += 1
        self._notify_changed()
        return deepcopy(self._entries[self._pointer])

    def current(self) -> Optional[dict]:
        if self._pointer < 0:
            return None
        return deepcopy(self._entries[self._pointer])

    def clear(self):
        """Clear all history."""
        self._entries.clear()
        self._pointer = -1
        self._notify_changed()

    def _notify_changed(self):
        """Notify that undo/redo state changed."""
        if self.on_state_changed:
            self.on_state_changed()
