"""
Locally persisted tombstones for deleted matches.

A tombstoned match id stays hidden from every match listing and stats
recompute served by this process, whether or not the backend row was
actually removed. The set is stored as a JSON array under the
``deletedMatchIds`` key of a small string-keyed local storage file, read
once at startup and rewritten on every change.

Storage problems never propagate: a failed write is logged and the
in-memory set still hides the match for the lifetime of the process.
"""
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, TypeVar

from matchledger.core.logging import get_logger
from matchledger.core.metrics import tombstones_count
from matchledger.models import MatchRecord

logger = get_logger(__name__)

TOMBSTONE_KEY = "deletedMatchIds"

M = TypeVar("M", bound=MatchRecord)


class LocalStorage:
    """Durable string key/value entries kept in one JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


class TombstoneSet:
    """Match ids that must be treated as deleted."""

    def __init__(self, storage: LocalStorage, key: str = TOMBSTONE_KEY):
        self.storage = storage
        self.key = key
        self._ids: Set[int] = set()
        self._load()

    def _load(self) -> None:
        try:
            raw = self.storage.get_item(self.key)
            if raw:
                ids = json.loads(raw)
                if isinstance(ids, list):
                    self._ids.update(int(i) for i in ids)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load deleted match ids from {self.storage.path}: {e}")
        tombstones_count.set(len(self._ids))
        if self._ids:
            logger.info(f"Loaded {len(self._ids)} deleted match ids")

    def _persist(self) -> None:
        try:
            self.storage.set_item(self.key, json.dumps(sorted(self._ids)))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save deleted match ids to {self.storage.path}: {e}")

    def add(self, match_id: int) -> None:
        self._ids.add(match_id)
        tombstones_count.set(len(self._ids))
        self._persist()

    def contains(self, match_id: Optional[int]) -> bool:
        return match_id is not None and match_id in self._ids

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> List[int]:
        return sorted(self._ids)

    def filter(self, matches: Iterable[M]) -> List[M]:
        """Drop every tombstoned match."""
        return [m for m in matches if m.id not in self._ids]

    def clear(self) -> None:
        """Forget every tombstone, including the persisted copy."""
        self._ids.clear()
        tombstones_count.set(0)
        try:
            self.storage.remove_item(self.key)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to clear deleted match ids in {self.storage.path}: {e}")
