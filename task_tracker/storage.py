from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Protocol

from task_tracker.config import DEFAULT_SESSION_FILE

LOGGER = logging.getLogger(__name__)


class PersistenceAdapter(Protocol):
    """Async key to string storage backing the persisted session."""

    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value or ``None`` when the key is absent."""

    async def set_item(self, key: str, value: str) -> None:
        """Store a single value."""

    async def remove_item(self, key: str) -> None:
        """Remove a single key. Missing keys are ignored."""

    async def multi_set(self, items: Mapping[str, str]) -> None:
        """Store several values so that either all or none become visible."""

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove several keys so that either all or none disappear."""


class MemoryPersistenceAdapter:
    """Keep values in a dict. Used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.values[key] = value

    async def remove_item(self, key: str) -> None:
        self.values.pop(key, None)

    async def multi_set(self, items: Mapping[str, str]) -> None:
        self.values.update(items)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.values.pop(key, None)


class FilePersistenceAdapter:
    """Persist values to a JSON file on disk. Every write rewrites the whole file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path).expanduser() if path is not None else DEFAULT_SESSION_FILE

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        with self.path.open("r", encoding="utf-8") as file_handle:
            payload = json.load(file_handle)
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring malformed session file %s", self.path)
            return {}
        return {str(key): str(value) for key, value in payload.items() if isinstance(value, str)}

    def _write(self, values: Mapping[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(dict(values), ensure_ascii=False, sort_keys=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        temp_path.write_text(serialized, encoding="utf-8")
        temp_path.replace(self.path)

    async def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    async def set_item(self, key: str, value: str) -> None:
        await self.multi_set({key: value})

    async def remove_item(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_set(self, items: Mapping[str, str]) -> None:
        values = self._load()
        values.update(items)
        self._write(values)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        values = self._load()
        removed = False
        for key in keys:
            if key in values:
                del values[key]
                removed = True
        if removed:
            self._write(values)


__all__ = ["FilePersistenceAdapter", "MemoryPersistenceAdapter", "PersistenceAdapter"]
