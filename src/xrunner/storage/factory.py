"""
Factory for creating key-value store instances.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

from .base import KeyValueStore
from .json_store import JsonFileStore
from .memory import InMemoryStore

logger = logging.getLogger(__name__)


def create_store(
    backend: Literal["json", "memory"] = "json",
    state_dir: Optional[Path] = None,
    suite: str = "xrunner",
) -> KeyValueStore:
    """
    Create a key-value store.

    Args:
        backend: 'json' for a file-backed store, 'memory' for a volatile one
        state_dir: Directory holding the JSON document (json backend only)
        suite: Application suite name used as the document name

    Returns:
        KeyValueStore instance

    Raises:
        ValueError: If the backend is unknown or state_dir is missing
    """
    if backend == "json":
        if state_dir is None:
            raise ValueError("state_dir is required for the json store")
        logger.debug(f"Creating JsonFileStore in {state_dir} (suite {suite})")
        return JsonFileStore(state_dir, suite)
    elif backend == "memory":
        logger.debug("Creating InMemoryStore")
        return InMemoryStore()
    else:
        raise ValueError(f"Unsupported store backend: {backend}")
