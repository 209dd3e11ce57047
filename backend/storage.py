# storage.py
from __future__ import annotations
import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from typing import Any, Dict

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Collection = Dict[str, Record]


class StorageWriteError(RuntimeError):
    """Writing a collection to durable storage failed."""


def new_id() -> str:
    return str(uuid.uuid4())


# one lock per backing file, shared by every store object pointing at it
_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()

def _lock_for(path: str) -> threading.RLock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(path, threading.RLock())


class JsonFileStore:
    """A whole collection persisted as one pretty-printed JSON object.

    Every ``load()`` re-reads the file; nothing is cached between calls.
    Reads fail soft (missing or corrupt file -> empty mapping), writes fail
    loud (``StorageWriteError``).
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self.lock = _lock_for(self.path)
        self._ensure_file()

    def _ensure_file(self) -> None:
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        try:
            # exclusive create: two processes starting together both end up with "{}"
            with open(self.path, "x", encoding="utf-8") as fh:
                fh.write("{}")
            logger.info("initialised empty collection at %s", self.path)
        except FileExistsError:
            pass

    def load(self) -> Collection:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("could not read %s, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("%s does not hold a JSON object, treating as empty", self.path)
            return {}
        return data

    def save(self, records: Collection) -> None:
        directory = os.path.dirname(self.path)
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=directory, prefix=".tmp-", suffix=".json", delete=False
            ) as tmp:
                tmp_path = tmp.name
                json.dump(records, tmp, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageWriteError(f"failed to write {self.path}: {e}") from e


class MemoryStore:
    """In-process store with the same contract, used by tests."""

    def __init__(self, initial: Collection | None = None):
        self.lock = threading.RLock()
        self._data: Collection = copy.deepcopy(initial or {})

    def load(self) -> Collection:
        return copy.deepcopy(self._data)

    def save(self, records: Collection) -> None:
        self._data = copy.deepcopy(records)
