"""Shared test fixtures for the SmartCall client."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from smartcall_client.models.message import (
    AuthoritativeMessage,
    MessageBatch,
    SenderKind,
    SendResult,
)
from smartcall_client.models.ticket import Ticket, TicketStatus

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_message(
    message_id: int,
    text: str | None = None,
    sender: SenderKind = SenderKind.AI,
) -> AuthoritativeMessage:
    """Build an authoritative message with a deterministic timestamp."""
    return AuthoritativeMessage(
        id=message_id,
        text=text or f"message {message_id}",
        sender=sender,
        created_at=BASE_TIME + timedelta(seconds=message_id),
    )


def make_ticket(
    ticket_id: int = 42,
    status: TicketStatus = TicketStatus.IN_PROGRESS,
    messages: tuple[AuthoritativeMessage, ...] = (),
    assigned_technician: str | None = None,
) -> Ticket:
    return Ticket(
        id=ticket_id,
        title="Impressora offline",
        status=status,
        assigned_technician=assigned_technician,
        messages=messages,
        created_at=BASE_TIME,
    )


class FakeCredentialStore:
    """In-memory CredentialStore."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def message_factory() -> Callable[..., AuthoritativeMessage]:
    """Return the authoritative message builder."""
    return make_message


@pytest.fixture
def ticket_factory() -> Callable[..., Ticket]:
    """Return the ticket builder."""
    return make_ticket


@pytest.fixture
def credential_store() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Create a TicketGateway mock for an open ticket with two messages."""
    gateway = AsyncMock()
    history = (
        make_message(1, "A impressora não imprime", SenderKind.USER),
        make_message(2, "Já tentou reiniciar?", SenderKind.AI),
    )
    gateway.fetch_ticket.return_value = make_ticket(messages=history)
    gateway.fetch_new_messages.return_value = MessageBatch()
    gateway.send_message.return_value = SendResult(
        user_message=make_message(3, "Sim, continua igual", SenderKind.USER),
        bot_message=make_message(4, "Vou verificar o spooler", SenderKind.AI),
    )
    gateway.set_status.return_value = None
    gateway.escalate.return_value = make_ticket(status=TicketStatus.ESCALATED, messages=history)
    return gateway


def wire_message(message_id: int, text: str = "olá", sender: str = "ai", **extra: Any) -> dict:
    """Build a backend message payload."""
    payload = {
        "Id": message_id,
        "Message": text,
        "IsUser": sender == "user",
        "SenderType": sender,
        "CreatedAt": "2024-05-01T12:00:00Z",
    }
    payload.update(extra)
    return payload


def wire_ticket(ticket_id: int = 42, status: Any = "Em Andamento", **extra: Any) -> dict:
    """Build a backend ticket payload."""
    payload = {
        "Id": ticket_id,
        "Titulo": "Impressora offline",
        "Status": status,
        "AtribuidoATecnico": False,
        "CreatedAt": "2024-05-01T12:00:00",
        "Mensagens": [wire_message(1, "A impressora não imprime", "user")],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def wire_message_factory() -> Callable[..., dict]:
    return wire_message


@pytest.fixture
def wire_ticket_factory() -> Callable[..., dict]:
    return wire_ticket
