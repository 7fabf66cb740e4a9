"""Tracks which level ids the player has solved.

Stored as a small JSON document next to the player's data:

    {"version": 1, "completed": ["level-01", "level-02"]}

Ids are opaque strings.  A missing, empty, or corrupt file loads as an
empty set (with a warning) so a bad save never blocks play.  Writes go
through a temp file and ``os.replace`` so a crash mid-save leaves the old
file intact.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path

from loguru import logger

_VERSION = 1


class CompletedLevels:
    """Persistent set of completed level ids."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._ids: set[str] = set()
        self._load()

    def __contains__(self, level_id: object) -> bool:
        return level_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def is_completed(self, level_id: str) -> bool:
        return level_id in self._ids

    def ids(self) -> list[str]:
        with self._lock:
            return sorted(self._ids)

    def add(self, level_id: str, save: bool = True) -> bool:
        """Mark a level completed.  Returns False if it already was."""
        if not isinstance(level_id, str) or not level_id:
            raise ValueError("Level id must be a non-empty string")
        with self._lock:
            if level_id in self._ids:
                return False
            self._ids.add(level_id)
        if save:
            self.save()
        return True

    def clear(self, save: bool = True) -> None:
        with self._lock:
            self._ids.clear()
        if save:
            self.save()

    def save(self) -> None:
        with self._lock:
            data = {"version": _VERSION, "completed": sorted(self._ids)}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)
        logger.debug(f"Progress saved: {len(data['completed'])} completed levels")

    def _load(self) -> None:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            completed = data.get("completed", []) if isinstance(data, dict) else data
            if not isinstance(completed, list):
                raise ValueError("'completed' is not a list")
            self._ids = {str(level_id) for level_id in completed}
            logger.info(f"Progress loaded: {len(self._ids)} completed levels")
        except (json.JSONDecodeError, OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable progress file {self.path}: {e}")
            self._ids = set()
