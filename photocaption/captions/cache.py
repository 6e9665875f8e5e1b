"""
Purpose:
- Two-tier response cache so the same image isn't paid for twice.
    volatile : in-process dict keyed by "<image_id>-<options fingerprint>"
    durable  : KeyValueStore keyed by image_id only ("last known good analysis")
- All durable entries live in one JSON object under DURABLE_KEY.

Notes:
- The durable tier is an optimization. Read failures are misses, write failures
  are no-ops; both are logged and never raised.
"""

from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol
from pydantic import ValidationError
from .schema import CacheEntry, GenerationOptions

logger = logging.getLogger(__name__)

DURABLE_KEY = "captionmaption_image_analysis"

class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...

class MemoryStore:
    """Process-local KeyValueStore (tests, ephemeral runs)."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

class JsonFileStore:
    """
    KeyValueStore backed by a single JSON document on disk.
    Writes go to a temp file in the same directory and are swapped in with
    os.replace, so readers see either the old or the new document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except ValueError as e:
            logger.warning("Replacing unreadable store %s: %r", self.path, e)
            data = {}
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

def cache_key(image_id: str, options: GenerationOptions) -> str:
    return f"{image_id}-{options.fingerprint()}"

class ResponseCache:
    def __init__(self, store: Optional[KeyValueStore] = None):
        self._volatile: Dict[str, CacheEntry] = {}
        self._store: KeyValueStore = store if store is not None else MemoryStore()

    @property
    def volatile_size(self) -> int:
        return len(self._volatile)

    # --- volatile tier -----------------------------------------------------

    def get_by_fingerprint(self, image_id: str, options: GenerationOptions) -> Optional[CacheEntry]:
        return self._volatile.get(cache_key(image_id, options))

    def clear_volatile(self) -> None:
        self._volatile.clear()

    # --- durable tier ------------------------------------------------------

    def _read_durable(self) -> Dict[str, dict]:
        raw = self._store.get(DURABLE_KEY)
        if not raw:
            return {}
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}

    def get_by_image(self, image_id: str) -> Optional[CacheEntry]:
        try:
            stored = self._read_durable().get(image_id)
            if stored is None:
                return None
            return CacheEntry.model_validate(stored)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Error reading from cache for %s: %r", image_id, e)
            return None

    def _write_durable(self, image_id: str, entry: CacheEntry) -> None:
        try:
            data = self._read_durable()
        except (OSError, ValueError) as e:
            logger.warning("Durable cache unreadable, starting fresh: %r", e)
            data = {}
        data[image_id] = entry.model_dump(mode="json", by_alias=True)
        try:
            self._store.set(DURABLE_KEY, json.dumps(data, ensure_ascii=False))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Error saving to cache for %s: %r", image_id, e)

    # --- both --------------------------------------------------------------

    def put(self, image_id: str, options: GenerationOptions, entry: CacheEntry) -> None:
        self._volatile[cache_key(image_id, options)] = entry
        self._write_durable(image_id, entry)
