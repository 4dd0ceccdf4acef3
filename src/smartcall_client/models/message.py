"""Data models for chat messages."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class SenderKind(Enum):
    """Who wrote a message."""

    USER = "user"
    AI = "ai"
    TECHNICIAN = "tecnico"

    @classmethod
    def from_wire(cls, sender_type: str | None, is_user: bool = False) -> SenderKind:
        """Normalize the backend's SenderType/IsUser pair.

        Anything that is neither the user nor a technician is treated as the AI.
        """
        value = (sender_type or "").strip().lower()
        if is_user or value == "user":
            return cls.USER
        if value in ("tecnico", "technician"):
            return cls.TECHNICIAN
        return cls.AI


@dataclass(frozen=True)
class AuthoritativeMessage:
    """A message persisted by the backend."""

    id: int
    text: str
    sender: SenderKind
    created_at: datetime

    def __post_init__(self) -> None:
        if self.id <= 0:
            raise ValueError(f"Backend message id must be positive, got {self.id}")
        if not self.text:
            raise ValueError("Message text must not be empty")

    @property
    def is_provisional(self) -> bool:
        return False

    @property
    def key(self) -> tuple[str, int | str]:
        """Identity inside a timeline."""
        return ("a", self.id)


@dataclass(frozen=True)
class ProvisionalMessage:
    """A locally echoed user message whose send is still in flight."""

    local_id: str
    text: str
    created_at: datetime
    sender: SenderKind = field(default=SenderKind.USER)

    def __post_init__(self) -> None:
        if not self.local_id:
            raise ValueError("Provisional message needs a local id")
        if not self.text:
            raise ValueError("Message text must not be empty")

    @classmethod
    def create(cls, text: str, created_at: datetime | None = None) -> ProvisionalMessage:
        """Build a provisional user message with a fresh opaque id."""
        return cls(
            local_id=uuid.uuid4().hex,
            text=text,
            created_at=created_at or datetime.now(UTC),
        )

    @property
    def is_provisional(self) -> bool:
        return True

    @property
    def key(self) -> tuple[str, int | str]:
        """Identity inside a timeline."""
        return ("p", self.local_id)


Message = AuthoritativeMessage | ProvisionalMessage


@dataclass(frozen=True)
class SendResult:
    """Backend answer to a send: the stored user message and, when generated, the reply."""

    user_message: AuthoritativeMessage
    bot_message: AuthoritativeMessage | None = None

    @property
    def messages(self) -> tuple[AuthoritativeMessage, ...]:
        if self.bot_message is None:
            return (self.user_message,)
        return (self.user_message, self.bot_message)


@dataclass(frozen=True)
class MessageBatch:
    """Answer to an incremental fetch.

    ``highest_id`` covers every id the backend returned, including entries
    that could not be read, so the polling watermark can move past them.
    """

    messages: tuple[AuthoritativeMessage, ...] = ()
    highest_id: int = 0
