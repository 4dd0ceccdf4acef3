"""Terminal rendering of a chat session.

Stands in for the mobile chat screen: prints timeline entries as they
arrive, shows the agent-responding indicator and notices, and turns input
lines into session actions.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime

from .core.lifecycle import TicketChange
from .core.session import ChatSession
from .models.message import Message, SenderKind
from .models.notice import Notice
from .models.ticket import Ticket

SENDER_LABELS = {
    SenderKind.USER: "Você",
    SenderKind.AI: "Assistente",
    SenderKind.TECHNICIAN: "Técnico",
}

QUIT_COMMANDS = frozenset({"/quit", "/sair"})


def format_local_time(moment: datetime) -> str:
    """Render a UTC timestamp as local HH:MM."""
    return moment.astimezone().strftime("%H:%M")


def render_message(message: Message) -> str:
    label = SENDER_LABELS[message.sender]
    line = f"[{format_local_time(message.created_at)}] {label}: {message.text}"
    if message.is_provisional:
        return f"{line} (enviando...)"
    return line


def render_notice(notice: Notice) -> str:
    return f"[aviso] {notice.text}"


def render_ticket_line(ticket: Ticket) -> str:
    technician = ""
    if ticket.is_assigned:
        technician = f" (técnico: {ticket.assigned_technician or 'atribuído'})"
    return f"#{ticket.id:<6} {ticket.status.label:<13} {ticket.title}{technician}"


async def read_stdin_line() -> str:
    return await asyncio.to_thread(sys.stdin.readline)


def write_stdout(text: str) -> None:
    print(text, flush=True)


class TerminalChat:
    """Line-based chat front end for one session."""

    def __init__(
        self,
        session: ChatSession,
        read_line: Callable[[], Awaitable[str]] = read_stdin_line,
        write: Callable[[str], None] = write_stdout,
    ) -> None:
        self._session = session
        self._read_line = read_line
        self._write = write
        self._printed: set[tuple[str, int | str]] = set()

        session.timeline.add_listener(self._on_timeline)
        session.lifecycle.add_listener(self._on_ticket_change)
        session.sender.add_indicator_listener(self._on_indicator)

    async def run(self) -> None:
        """Open the session and process input until EOF or /quit."""
        await self._session.open()
        self._write("Digite sua mensagem. Comandos: /resolve, /escalate, /quit")
        try:
            while self._session.is_active:
                line = await self._read_line()
                if not line:
                    break
                if not await self.handle_line(line.strip()):
                    break
        finally:
            await self._session.close()

    async def handle_line(self, line: str) -> bool:
        """Apply one input line. Returns False when the user wants to leave."""
        if not line:
            return True
        if line in QUIT_COMMANDS:
            return False
        if line == "/resolve":
            await self._session.resolve()
        elif line == "/escalate":
            await self._session.escalate()
        else:
            await self._session.send(line)
        return True

    def _on_timeline(self, messages: tuple[Message, ...]) -> None:
        for message in messages:
            if message.key in self._printed:
                continue
            self._printed.add(message.key)
            self._write(render_message(message))

    def _on_ticket_change(self, change: TicketChange) -> None:
        if change.previous is None:
            self._write(render_ticket_line(change.current))
            return
        if change.status_changed:
            self._write(f"Status do chamado: {change.current.status.label}")
        if change.technician_changed and change.current.is_assigned:
            self._write("Um técnico foi atribuído ao seu chamado.")

    def _on_indicator(self, responding: bool) -> None:
        if responding:
            self._write("... agente respondendo")
