"""Key-value storage port."""

from abc import ABC, abstractmethod
from typing import Optional


class StorageError(Exception):
    """Backend could not read or write (disk full, locked, unavailable)."""


class KeyValueStore(ABC):
    """String-keyed store of serialized documents."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored text, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; missing keys are ignored."""


class MemoryStore(KeyValueStore):
    """In-process store, used by tests and as a throwaway backend."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)
