# utils/kv_store.py

"""
Durable key-value storage for the credential and compression history
"""

import json
import os
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore:
    """get/set/remove of string values; subclasses decide where they live"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk, rewritten atomically on every change"""

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # history writes run in worker threads, other keys on the event loop
        self._write_lock = threading.Lock()
        logger.debug(f"JsonFileStore using {self.path}")

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"State file {self.path} is not valid JSON, ignoring it: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} does not hold an object, ignoring it")
            return {}
        return data

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._write_lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._write_lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)
