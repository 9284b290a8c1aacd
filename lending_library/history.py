"""Durable store for returned loans.

The history lives in a single JSON file holding a list of entries, one per
returned loan, in the order they were appended. A missing or blank file is an
empty history. Reading and writing happen in a worker thread so callers on the
event loop can simply ``await`` the repository.

The append is a read-modify-write of the whole file with no locking; two
concurrent appends can lose one of the entries.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from lending_library.config import settings
from lending_library.errors import StorageError

logger = logging.getLogger(__name__)

# Key names used by stores written before entries were snake_case
_LEGACY_KEYS = {
    "userId": "user_id",
    "dueDate": "due_date",
    "borrowedAt": "borrowed_at",
    "returnedAt": "returned_at",
}


class HistoryRepository:
    """Append-only, file-backed list of history entries."""

    def __init__(self, file_path: Optional[Union[str, os.PathLike]] = None) -> None:
        self._file_path = Path(file_path or settings.history_file)

    @property
    def file_path(self) -> Path:
        return self._file_path

    async def save_record(self, record: Dict[str, Any]) -> None:
        """Append ``record`` to the history file, creating it if needed."""
        await asyncio.to_thread(self._append, record)

    async def get_history(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return all entries, or only those belonging to ``user_id``."""
        history = await asyncio.to_thread(self._load)
        if user_id:
            return [entry for entry in history if entry.get("user_id") == user_id]
        return history

    # ------------------------- File helpers ------------------------- #
    def _load(self) -> List[Dict[str, Any]]:
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = f.read()
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as e:
            raise StorageError(f"History file {self._file_path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read history file {self._file_path}: {e}") from e

        if not data.strip():
            return []
        try:
            history = json.loads(data)
        except json.JSONDecodeError as e:
            raise StorageError(f"History file {self._file_path} is not valid JSON: {e}") from e
        if not isinstance(history, list):
            raise StorageError(f"History file {self._file_path} is not a list")
        return [self._decode_entry(item) for item in history]

    def _append(self, record: Dict[str, Any]) -> None:
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create history directory: {e}") from e

        history = self._load()
        history.append(record)

        tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(history, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._file_path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to save record to history: {e}") from e
        logger.info(f"History entry saved: isbn={record.get('isbn')}, user={record.get('user_id')}")

    @staticmethod
    def _decode_entry(item: Any) -> Dict[str, Any]:
        # Older stores kept every entry as a JSON-encoded string
        if isinstance(item, str):
            try:
                item = json.loads(item)
            except json.JSONDecodeError as e:
                raise StorageError(f"Malformed history entry: {e}") from e
        if not isinstance(item, dict):
            raise StorageError(f"Malformed history entry: {item!r}")
        return {_LEGACY_KEYS.get(key, key): value for key, value in item.items()}
