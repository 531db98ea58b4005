"""Durable key-value storage for session state.

``LocalStore`` mirrors the browser's ``localStorage`` contract: a flat map of
string keys to string values, persisted as one JSON file. ``ProjectRepository``
stores the project list under a single key.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter

from src.models import Project

_PROJECT_LIST = TypeAdapter(list[Project])


class LocalStore:
    """A string-to-string store backed by a JSON file.

    The backing file is read lazily on first access. Every ``set_item`` or
    ``remove_item`` rewrites the whole file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._items: Optional[dict[str, str]] = None

    def _load(self) -> dict[str, str]:
        if self._items is None:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                self._items = {str(k): str(v) for k, v in data.items()}
            else:
                self._items = {}
        return self._items

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._load(), indent=2, ensure_ascii=False), encoding="utf-8"
        )

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()


class ProjectRepository:
    """Serialises the whole project list under one storage key."""

    def __init__(self, store: LocalStore, key: str = "nexus_projects") -> None:
        self.store = store
        self.key = key

    def save(self, projects: list[Project]) -> None:
        payload = _PROJECT_LIST.dump_json(projects, by_alias=True, exclude_none=True)
        self.store.set_item(self.key, payload.decode("utf-8"))

    def load(self) -> Optional[list[Project]]:
        """Return the stored list, or ``None`` when nothing was stored.

        A malformed payload is not caught: ``json`` or pydantic validation
        errors propagate to the caller.
        """
        raw = self.store.get_item(self.key)
        if not raw:
            return None
        return _PROJECT_LIST.validate_json(raw)
