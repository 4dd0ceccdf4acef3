"""Tests for the JSON file credential store."""

import json
import stat
from pathlib import Path

import pytest

from smartcall_client.adapters.storage.file import CredentialStoreError, FileCredentialStore


class TestFileCredentialStore:
    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        store = FileCredentialStore(tmp_path / "credentials.json")
        assert store.get("token") is None

    def test_set_get_delete(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "credentials.json"
        store = FileCredentialStore(path)

        store.set("token", "abc")
        store.set("user", '{"email": "ana@x.com"}')

        assert store.get("token") == "abc"
        assert json.loads(path.read_text()) == {"token": "abc", "user": '{"email": "ana@x.com"}'}

        store.delete("token")
        store.delete("token")
        assert store.get("token") is None
        assert store.get("user") is not None

    def test_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "credentials.json"
        FileCredentialStore(path).set("token", "abc")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_reads_as_signed_out(self, tmp_path: Path) -> None:
        path = tmp_path / "credentials.json"
        path.write_text("{not json")
        store = FileCredentialStore(path)

        assert store.get("token") is None
        store.set("token", "fresh")
        assert store.get("token") == "fresh"

    def test_non_string_values_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "credentials.json"
        path.write_text('{"token": 12}')
        assert FileCredentialStore(path).get("token") is None

    def test_unwritable_location(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = FileCredentialStore(blocker / "credentials.json")
        with pytest.raises(CredentialStoreError):
            store.set("token", "abc")
