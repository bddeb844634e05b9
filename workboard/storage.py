"""Local persistence: a small key-value medium and the records kept in it."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from .models import Activity, Board, Task

logger = logging.getLogger(__name__)

TASKS_KEY = "workboard-daily-tasks"
PENDING_KEY = "workboard-pending-sync"
ACTIVITY_KEY = "workboard-last-activity"


class LocalStorage:
    """String values keyed by name, one file per key under *directory*."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)


def _read_json(storage: LocalStorage, key: str):
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed local data under '%s'", key)
        return None


class BoardStore:
    """The task collection, stored as ``{day_key: [task_record, ...]}``."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self._pending_lock = threading.Lock()

    def load(self) -> Board:
        """Return the stored board, or an empty one if missing or corrupt."""
        data = _read_json(self.storage, TASKS_KEY)
        if not isinstance(data, dict):
            return {}
        board: Board = {}
        try:
            for day, records in data.items():
                board[day] = [Task.from_row(r) for r in records]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed task snapshot: %s", e)
            return {}
        return board

    def save(self, board: Board) -> None:
        """Re-serialize the whole board."""
        out: dict[str, list[dict]] = {}
        for day, tasks in board.items():
            # updatedAt is kept for readers of the older snapshot format
            out[day] = [{**t.to_row(), "updatedAt": t.updated_at} for t in tasks]
        self.storage.set_item(TASKS_KEY, json.dumps(out))

    # ------------------------------------------------------------------
    # Tasks whose remote write failed
    # ------------------------------------------------------------------

    def pending(self) -> set[str]:
        data = _read_json(self.storage, PENDING_KEY)
        if not isinstance(data, list):
            return set()
        return {str(i) for i in data}

    def add_pending(self, task_id: str) -> None:
        with self._pending_lock:
            ids = self.pending()
            ids.add(task_id)
            self.storage.set_item(PENDING_KEY, json.dumps(sorted(ids)))

    def clear_pending(self, task_ids: set[str]) -> None:
        with self._pending_lock:
            remaining = self.pending() - task_ids
            if remaining:
                self.storage.set_item(PENDING_KEY, json.dumps(sorted(remaining)))
            else:
                self.storage.remove_item(PENDING_KEY)


class ActivityStore:
    """Single-slot record of the last activity, stored as ``{id, message, at}``."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    def load(self) -> Activity | None:
        data = _read_json(self.storage, ACTIVITY_KEY)
        if not isinstance(data, dict) or not data.get("message"):
            return None
        return Activity.from_row(data)

    def save(self, activity: Activity) -> None:
        record = {
            "id": activity.id,
            "message": activity.message,
            "at": activity.created_at,
        }
        self.storage.set_item(ACTIVITY_KEY, json.dumps(record))
