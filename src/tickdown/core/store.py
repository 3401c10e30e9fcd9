"""Key-value stores used to persist a countdown across process restarts."""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path
from typing import Mapping, Protocol

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "tickdown"
_STORE_FILE = "store.json"


class StoreError(Exception):
    """Raised when the backing file does not hold a JSON object of strings."""


class KeyValueStore(Protocol):
    """A string-to-string store.  ``get`` returns ``None`` for absent keys."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def update(self, values: Mapping[str, str]) -> None: ...


class MemoryStore:
    """An in-process store backed by a dict."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def update(self, values: Mapping[str, str]) -> None:
        self._data.update(values)


class JsonFileStore:
    """A store kept in ``<config_dir>/store.json`` with file locking.

    Every write rewrites the file under an exclusive lock so that
    concurrent invocations from separate terminals do not interleave.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else _DEFAULT_CONFIG_DIR

    @property
    def path(self) -> Path:
        return self._config_dir / _STORE_FILE

    def get(self, key: str) -> str | None:
        path = self.path
        if not path.exists():
            return None

        with open(path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            data = self._decode(f.read())
        return data.get(key)

    def set(self, key: str, value: str) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, str]) -> None:
        """Write all of *values* in a single locked read-modify-write."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a+") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.seek(0)
            data = self._decode(f.read())
            data.update(values)
            f.seek(0)
            f.truncate()
            json.dump(data, f)
        logger.debug("Stored %s in %s", dict(values), self.path)

    def _decode(self, raw: str) -> dict[str, str]:
        """Parse file contents; an empty file is an empty store."""
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise StoreError(f"{self.path} must hold a JSON object of strings")
        return data
