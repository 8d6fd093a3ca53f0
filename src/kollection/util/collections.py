import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)


class SeenRecord:
    """Append-only record of values already seen.

    Hashable values are tracked in a set, so membership tests are O(1) on
    average. Unhashable values (lists, dicts, ...) fall back to a list that
    is scanned linearly, compared by equality.
    """

    def __init__(self, values: Iterable[Any] = ()):
        self._hashed = set()
        self._unhashable = []
        for value in values:
            self.add(value)

    def __contains__(self, value: Any) -> bool:
        try:
            return value in self._hashed
        except TypeError:
            return value in self._unhashable

    def __len__(self):
        return len(self._hashed) + len(self._unhashable)

    def add(self, value: Any) -> bool:
        """Record value. Returns True if it had not been seen before."""
        try:
            if value in self._hashed:
                return False
            self._hashed.add(value)
            return True
        except TypeError:
            if value in self._unhashable:
                return False
            if not self._unhashable:
                logger.debug(f"Falling back to linear membership for unhashable {type(value).__name__}")
            self._unhashable.append(value)
            return True
