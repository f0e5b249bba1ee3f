"""Key-value storage abstractions."""

from dataclasses import dataclass, field
from typing import Protocol


class KeyValueStorage(Protocol):
    """Device storage interface for string documents."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value for ``key``, if present."""

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    def remove_item(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""


@dataclass
class InMemoryKeyValueStorage(KeyValueStorage):
    """In-process storage used when no device storage is configured."""

    prefix: str = "pic_logger_"
    _items: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def get_item(self, key: str) -> str | None:
        """Return a stored value."""
        return self._items.get(self.prefix + key)

    def set_item(self, key: str, value: str) -> None:
        """Store a value."""
        self._items[self.prefix + key] = value

    def remove_item(self, key: str) -> None:
        """Remove a value if present."""
        self._items.pop(self.prefix + key, None)
