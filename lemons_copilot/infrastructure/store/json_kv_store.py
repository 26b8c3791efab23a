from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any

from lemons_copilot.application.ports.key_value_store import KeyValueStorePort

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


class JsonKeyValueStore(KeyValueStorePort):
    """Durable key-value storage, one JSON file per key, written atomically."""

    def __init__(self, data_dir: str = "./data/storage") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def _get_file_path(self, key: str) -> Path:
        return self._data_dir / f"{_UNSAFE.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        file_path = self._get_file_path(key)
        with self._lock:
            if not file_path.exists():
                return None
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    data: dict[str, Any] = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                # Corrupted entries read as missing
                self._logger.warning("Unreadable storage entry", extra={"reason": f"{key}: {e}"})
                return None
        value = data.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        file_path = self._get_file_path(key)
        temp_path = file_path.with_suffix(".json.tmp")
        data = {"key": key, "value": value, "version": 1}

        with self._lock:
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                temp_path.replace(file_path)
            except Exception:
                if temp_path.exists():
                    temp_path.unlink(missing_ok=True)
                raise

    def delete(self, key: str) -> None:
        with self._lock:
            self._get_file_path(key).unlink(missing_ok=True)
