"""Tests for the terminal chat front end."""

from __future__ import annotations

import pytest

from smartcall_client.config.schema import PollingConfig
from smartcall_client.console import TerminalChat, render_message, render_notice, render_ticket_line
from smartcall_client.core.session import ChatSession
from smartcall_client.models.message import ProvisionalMessage, SenderKind
from smartcall_client.models.notice import Notice, NoticeKind
from smartcall_client.models.ticket import TicketStatus
from smartcall_client.utils.async_helpers import GatewayError

QUIET_POLLING = PollingConfig(warmup_delay=30.0, interval=30.0)


class ScriptedInput:
    """Feeds prepared lines to the chat, then EOF."""

    def __init__(self, *lines: str) -> None:
        self.lines = [f"{line}\n" for line in lines]

    async def __call__(self) -> str:
        return self.lines.pop(0) if self.lines else ""


@pytest.fixture
def output() -> list[str]:
    return []


def make_chat(gateway, output: list[str], *lines: str) -> tuple[ChatSession, TerminalChat]:
    session = ChatSession(
        gateway,
        42,
        QUIET_POLLING,
        notify=lambda notice: output.append(render_notice(notice)),
    )
    return session, TerminalChat(session, read_line=ScriptedInput(*lines), write=output.append)


class TestRendering:
    def test_render_message(self, message_factory) -> None:
        line = render_message(message_factory(3, "Técnico aqui", SenderKind.TECHNICIAN))
        assert line.endswith("Técnico: Técnico aqui")

    def test_render_provisional_message(self) -> None:
        line = render_message(ProvisionalMessage.create("Ainda não funciona"))
        assert line.endswith("Você: Ainda não funciona (enviando...)")

    def test_render_notice(self) -> None:
        assert render_notice(Notice.of(NoticeKind.LOAD_FAILED, "boom")) == "[aviso] boom"

    def test_render_ticket_line(self, ticket_factory) -> None:
        line = render_ticket_line(ticket_factory(status=TicketStatus.ESCALATED, assigned_technician="Carla"))
        assert "#42" in line
        assert "Escalado" in line
        assert "Carla" in line


class TestTerminalChat:
    """Test the input loop against a mocked gateway."""

    async def test_prints_history_and_quits(self, mock_gateway, output) -> None:
        session, chat = make_chat(mock_gateway, output, "/quit")

        await chat.run()

        assert any("A impressora não imprime" in line for line in output)
        assert any("Já tentou reiniciar?" in line for line in output)
        assert not session.is_active

    async def test_send_prints_pending_echo_then_confirmed(self, mock_gateway, output) -> None:
        _, chat = make_chat(mock_gateway, output, "Sim, continua igual")

        await chat.run()

        mock_gateway.send_message.assert_awaited_once_with(42, "Sim, continua igual")
        assert sum("Vou verificar o spooler" in line for line in output) == 1
        echoed = [line for line in output if "Sim, continua igual" in line]
        assert len(echoed) == 2
        assert echoed[0].endswith("Você: Sim, continua igual (enviando...)")
        assert echoed[1].endswith("Você: Sim, continua igual")
        assert "... agente respondendo" in output

    async def test_failed_send_shows_pending_echo_and_notice(self, mock_gateway, output) -> None:
        mock_gateway.send_message.side_effect = GatewayError("HTTP 500", status_code=500)
        _, chat = make_chat(mock_gateway, output, "Sim, continua igual")

        await chat.run()

        echoed = [line for line in output if "Sim, continua igual" in line]
        assert len(echoed) == 1
        assert echoed[0].endswith("(enviando...)")
        assert any(line.startswith("[aviso]") for line in output)

    async def test_resolve_command(self, mock_gateway, output, ticket_factory) -> None:
        _, chat = make_chat(mock_gateway, output, "/resolve")
        chat_ticket = mock_gateway.fetch_ticket.return_value
        mock_gateway.fetch_ticket.side_effect = [
            chat_ticket,
            ticket_factory(status=TicketStatus.RESOLVED),
        ]

        await chat.run()

        mock_gateway.set_status.assert_awaited_once()
        assert "Status do chamado: Resolvido" in output

    async def test_escalate_command(self, mock_gateway, output) -> None:
        _, chat = make_chat(mock_gateway, output, "/escalate", "/sair")

        await chat.run()

        mock_gateway.escalate.assert_awaited_once_with(42)
        assert any(line.startswith("[aviso]") for line in output)

    async def test_blank_lines_are_ignored(self, mock_gateway, output) -> None:
        _, chat = make_chat(mock_gateway, output, "", "   ")

        await chat.run()

        mock_gateway.send_message.assert_not_awaited()
