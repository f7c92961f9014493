"""
Storage module for state persisted between runs.

This module provides small key-value stores with a common interface:
- A JSON file store writing one document per application suite atomically
- An in-memory store for volatile use and tests

Stores are constructed explicitly and injected into the components that
need them (the scheme cache); there is no global instance.
"""

from .base import KeyValueStore
from .factory import create_store
from .json_store import JsonFileStore
from .memory import InMemoryStore

__all__ = ["KeyValueStore", "JsonFileStore", "InMemoryStore", "create_store"]
