"""
JSON file backed key-value store.

All keys of one suite live in a single ``<state_dir>/<suite>.json`` document.
Writes go to a temporary file in the same directory which is then renamed
over the document, so readers never observe a half-written file.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .base import KeyValueStore

logger = logging.getLogger(__name__)


class JsonFileStore(KeyValueStore):
    """Key-value store persisted as one JSON document per suite."""

    def __init__(self, state_dir: Path, suite: str):
        self.path = Path(state_dir).expanduser() / f"{suite}.json"
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, Any]] = None

    def _load_locked(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.warning(f"Ignoring malformed state file {self.path}")
                data = {}
        except FileNotFoundError:
            data = {}
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read state file {self.path}: {e}")
            data = {}
        self._data = data
        return data

    def _write_locked(self, data: Dict[str, Any]) -> None:
        encoded = json.dumps(data, indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(encoded)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved state to {self.path}")

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load_locked().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = dict(self._load_locked())
            data[key] = value
            self._write_locked(data)
            self._data = data

    def delete(self, key: str) -> None:
        with self._lock:
            data = dict(self._load_locked())
            if key not in data:
                return
            del data[key]
            self._write_locked(data)
            self._data = data
