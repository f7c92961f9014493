"""
Abstract base class for key-value state stores.

This module defines the KeyValueStore interface used for the small amount of
state persisted between runs (the scheme cache). A store holds JSON-encodable
values under string keys, namespaced by an application suite name.

Implementations must serialize their own mutations; callers may use one store
from several threads.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStore(ABC):
    """Abstract base class for key-value store implementations."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Return the value stored under ``key``, or None if absent.

        Args:
            key: Namespaced key, e.g. "xrunner.scheme-cache"
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store a JSON-encodable value under ``key``.

        Raises:
            TypeError: If the value cannot be encoded
            OSError: If the backing storage cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error."""
        pass
