from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import asyncio
import copy
import json
import logging
import pathlib
import threading

from .utils import _log_debug

logger = logging.getLogger(__name__)


class StaleRevisionError(Exception):
    """The user's schedule was written by someone else since it was read."""

    def __init__(self, user_id: str, expected: Optional[int], actual: int):
        super().__init__(
            f"schedule for {user_id} is at revision {actual}, expected {expected}")
        self.user_id = user_id
        self.expected = expected
        self.actual = actual


@dataclass
class StoredSchedule:
    items: List[Dict[str, Any]] = field(default_factory=list)
    revision: int = 0


def _schedule_as_list(value: Any) -> List[Dict[str, Any]]:
    """Schedules may be persisted as a list or as a keyed map; always hand back a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        keys = list(value.keys())
        if keys and all(isinstance(k, str) and k.isdigit() for k in keys):
            keys.sort(key=int)
        return [value[k] for k in keys if isinstance(value[k], dict)]
    return []


def _split_document(raw: Any) -> StoredSchedule:
    # {"revision": n, "schedule": [...]} or a bare legacy list/map
    if isinstance(raw, dict) and "schedule" in raw:
        revision = raw.get("revision")
        if not isinstance(revision, int) or revision < 0:
            revision = 0
        return StoredSchedule(items=_schedule_as_list(raw.get("schedule")),
                              revision=revision)
    return StoredSchedule(items=_schedule_as_list(raw), revision=0)


class ScheduleStore:
    """Per-user schedule documents, kept in memory and mirrored to a JSON file.

    With ``path=None`` nothing touches the disk. Every write is a whole-document
    replace guarded by the document revision.
    """

    def __init__(self, path: Optional[pathlib.Path] = None):
        self.path = pathlib.Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._documents: Dict[str, Any] = {}
        self._load_from_disk()

    def _load_from_disk(self) -> None:
        self._documents = {}
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("schedule store load failed: %s", exc)
            return
        users = data.get("users") if isinstance(data, dict) else None
        if isinstance(users, dict):
            self._documents = users

    def _save_to_disk(self, documents: Dict[str, Any]) -> None:
        if self.path is None:
            return
        payload = {"version": 1, "users": documents}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2),
                            encoding="utf-8")
        tmp_path.replace(self.path)

    def _read_sync(self, user_id: str) -> StoredSchedule:
        with self._lock:
            stored = _split_document(self._documents.get(user_id))
            return StoredSchedule(items=copy.deepcopy(stored.items),
                                  revision=stored.revision)

    def _write_sync(self, user_id: str, items: List[Dict[str, Any]],
                    expected_revision: Optional[int]) -> int:
        with self._lock:
            current = _split_document(self._documents.get(user_id))
            if expected_revision is not None and current.revision != expected_revision:
                raise StaleRevisionError(user_id, expected_revision, current.revision)
            new_revision = current.revision + 1
            documents = dict(self._documents)
            documents[user_id] = {
                "revision": new_revision,
                "schedule": copy.deepcopy(items),
            }
            # memory only moves once the file write went through
            self._save_to_disk(documents)
            self._documents = documents
            _log_debug(f"[SCHEDULE STORE] {user_id} -> revision {new_revision} "
                       f"({len(items)} items)")
            return new_revision

    async def read(self, user_id: str) -> StoredSchedule:
        return await asyncio.to_thread(self._read_sync, user_id)

    async def write(self,
                    user_id: str,
                    items: List[Dict[str, Any]],
                    expected_revision: Optional[int] = None) -> int:
        return await asyncio.to_thread(self._write_sync, user_id, items,
                                       expected_revision)


_store: Optional[ScheduleStore] = None


def init_store(path: Optional[pathlib.Path]) -> ScheduleStore:
    global _store
    _store = ScheduleStore(path)
    return _store


def get_store() -> Optional[ScheduleStore]:
    return _store
