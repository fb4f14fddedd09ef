"""JSON file persistence for the user collection."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from contextlib import suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .errors import StorageError

logger = logging.getLogger("usersapi.storage")

Record = Dict[str, Any]
T = TypeVar("T")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_data_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the users file."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.json").resolve(strict=False)


def generate_user_id() -> str:
    return str(uuid.uuid4())


def current_timestamp() -> str:
    """UTC timestamp in the ``2024-01-31T12:00:00.000Z`` form."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UserStore:
    """Reads and writes the whole user collection as one JSON array.

    Mutations go through :meth:`mutate`, which holds a process-wide lock for
    the full load/change/save cycle so concurrent writers cannot overwrite
    each other's changes.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def initialize(self) -> None:
        """Create the data file with an empty collection if it does not exist."""

        try:
            with self._lock:
                _ensure_directory(self._path)
                if not self._path.exists():
                    self._write([])
                    logger.info("Created empty users file at %s", self._path)
        except OSError as exc:
            raise StorageError(detail=f"Unable to initialise {self._path}: {exc}") from exc

    def load(self) -> List[Record]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = handle.read()
        except FileNotFoundError:
            self.initialize()
            return []
        except UnicodeDecodeError as exc:
            raise StorageError(detail=f"{self._path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise StorageError(detail=f"Unable to read {self._path}: {exc}") from exc

        try:
            users = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(detail=f"{self._path} does not contain valid JSON: {exc}") from exc
        if not isinstance(users, list):
            raise StorageError(detail=f"{self._path} must contain a JSON array")
        if not all(isinstance(user, dict) for user in users):
            raise StorageError(detail=f"{self._path} must contain only JSON objects")
        return users

    def save(self, users: List[Record]) -> None:
        try:
            _ensure_directory(self._path)
            self._write(users)
        except OSError as exc:
            raise StorageError(detail=f"Unable to write {self._path}: {exc}") from exc

    def mutate(self, change: Callable[[List[Record]], T]) -> T:
        """Apply ``change`` to the loaded collection and persist the result.

        Nothing is written when ``change`` raises.
        """

        with self._lock:
            users = self.load()
            result = change(users)
            self.save(users)
            return result

    def _write(self, users: List[Record]) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(users, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            with suppress(OSError):
                os.unlink(tmp_name)
            raise


__all__ = [
    "Record",
    "UserStore",
    "current_timestamp",
    "generate_user_id",
    "resolve_data_path",
]
