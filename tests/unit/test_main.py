"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from smartcall_client.__main__ import parse_args, run_command, unauthorized_handler
from smartcall_client.adapters.api import smartcall
from smartcall_client.adapters.storage.file import FileCredentialStore
from smartcall_client.interfaces.storage import TOKEN_KEY


@pytest.fixture
def credentials_path(tmp_path: Path) -> Path:
    return tmp_path / "credentials.json"


@pytest.fixture
def config_path(tmp_path: Path, credentials_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n"
        "  base_url: http://smartcall.test/api\n"
        "storage:\n"
        f"  credentials_path: {credentials_path}\n"
    )
    return path


@pytest.fixture
def backend(monkeypatch) -> list[httpx.Response]:
    """Route the CLI's client through a MockTransport answering with queued responses."""
    responses: list[httpx.Response] = []

    class ScriptedClient(smartcall.SmartCallClient):
        def __init__(self, *args, **kwargs) -> None:
            kwargs["transport"] = httpx.MockTransport(lambda request: responses.pop(0))
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(smartcall, "SmartCallClient", ScriptedClient)
    monkeypatch.setattr("getpass.getpass", lambda prompt="": "segredo")
    return responses


def cli(config_path: Path, *argv: str):
    return parse_args(["-d", "-c", str(config_path), *argv])


class TestParseArgs:
    def test_chat_takes_ticket_id(self) -> None:
        args = parse_args(["chat", "42"])
        assert args.command == "chat"
        assert args.ticket_id == 42

    def test_new_joins_description_words(self) -> None:
        args = parse_args(["new", "impressora", "offline"])
        assert args.description == ["impressora", "offline"]


class TestUnauthorizedHandler:
    def test_prints_relogin_hint(self, capsys) -> None:
        unauthorized_handler("tickets")()
        assert "Sessão expirada" in capsys.readouterr().err

    def test_silent_for_login(self, capsys) -> None:
        unauthorized_handler("login")()
        assert capsys.readouterr().err == ""


class TestRunCommand:
    """Run commands end to end against a scripted backend."""

    async def test_login_stores_token(self, config_path, credentials_path, backend, capsys) -> None:
        backend.append(
            httpx.Response(200, json={"Token": "jwt", "User": {"Id": 5, "Email": "ana@x.com"}})
        )

        code = await run_command(cli(config_path, "login", "ana@x.com"))

        assert code == 0
        assert "Conectado como ana@x.com" in capsys.readouterr().out
        assert FileCredentialStore(credentials_path).get(TOKEN_KEY) == "jwt"

    async def test_login_with_wrong_password(self, config_path, backend, capsys) -> None:
        backend.append(httpx.Response(401, json={"error": "Credenciais inválidas"}))

        code = await run_command(cli(config_path, "login", "ana@x.com"))

        assert code == 1
        err = capsys.readouterr().err
        assert "E-mail ou senha inválidos." in err
        assert "Sessão expirada" not in err

    async def test_expired_token_asks_for_login(
        self, config_path, credentials_path, backend, capsys
    ) -> None:
        FileCredentialStore(credentials_path).set(TOKEN_KEY, "expired")
        backend.append(httpx.Response(401, json={"error": "Token expirado"}))

        code = await run_command(cli(config_path, "tickets"))

        assert code == 1
        assert "Sessão expirada" in capsys.readouterr().err
        assert FileCredentialStore(credentials_path).get(TOKEN_KEY) is None

    async def test_commands_require_login(self, config_path, backend, capsys) -> None:
        code = await run_command(cli(config_path, "tickets"))

        assert code == 1
        assert "Faça login primeiro" in capsys.readouterr().err
        assert backend == []
