"""Keyed JSON object storage.

``JsonFileStore`` keeps one JSON file per key under a root directory;
``MemoryStore`` keeps objects in a dict and is what tests inject.
"""
from __future__ import annotations

import copy
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from loguru import logger

from .errors import TokenStorageError

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_key(key: str) -> str:
    if not key or not _KEY_RE.match(key) or key in {".", ".."}:
        raise ValueError(f"invalid storage key: {key!r}")
    return key


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def put(self, key: str, value: Dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class JsonFileStore:
    """File-based store: ``<root>/<key>.json``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{_check_key(key)}.json"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Error loading {}: {}", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring {}: expected a JSON object", path)
            return None
        return data

    def put(self, key: str, value: Dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file 0600
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise TokenStorageError(f"could not write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise TokenStorageError(f"could not remove {path}: {exc}") from exc


class MemoryStore:
    """In-process store; values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        for key, value in (initial or {}).items():
            self.put(key, value)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(_check_key(key))
        return copy.deepcopy(value) if value is not None else None

    def put(self, key: str, value: Dict[str, Any]) -> None:
        self._data[_check_key(key)] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(_check_key(key), None)

    def __contains__(self, key: object) -> bool:
        return key in self._data
