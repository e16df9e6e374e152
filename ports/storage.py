"""Abstract interface for durable key-value persistence."""
from abc import ABC, abstractmethod


class KeyValueStorePort(ABC):
    """
    Port for the durable tier of the graph state cache.
    Abstracts away local files, browser-style storage, Redis, etc.

    Keys and values are strings. Implementations raise StorageQuotaExceeded
    when a write would exceed their quota, and StorageError for any other
    failure, so callers can tell the two apart.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string or None if absent
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: Storage key
            value: Serialized payload
        """
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if deleted, False if not found
        """
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        """Enumerate all stored keys."""
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.keys())

    @property
    @abstractmethod
    def storage_type(self) -> str:
        """Return the storage type (e.g., 'local', 'memory')."""
        raise NotImplementedError
