"""JSON file credential store.

Implements the CredentialStore protocol with a single small JSON document,
written atomically and readable only by its owner.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import structlog

log = structlog.get_logger()


class CredentialStoreError(Exception):
    """Raised when the credential file cannot be written."""


class FileCredentialStore:
    """CredentialStore backed by a JSON file.

    Example:
        store = FileCredentialStore(Path("~/.smartcall/credentials.json").expanduser())
        store.set("token", session.token)
        token = store.get("token")
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, object]:
        try:
            with self._path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            # A corrupt file is treated as signed out
            log.warning("credential_store_unreadable", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, object]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f)
            os.chmod(tmp_path, 0o600)
            tmp_path.replace(self._path)
        except OSError as e:
            raise CredentialStoreError(f"Could not write credentials to {self._path}: {e}") from e
