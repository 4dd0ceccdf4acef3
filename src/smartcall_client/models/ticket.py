"""Data models for helpdesk tickets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .message import AuthoritativeMessage


class TicketStatus(Enum):
    """Lifecycle state of a ticket."""

    PENDING = "Pendente"
    IN_PROGRESS = "Em Andamento"
    RESOLVED = "Resolvido"
    ESCALATED = "Escalado"

    @property
    def label(self) -> str:
        """Display label, as the backend spells it."""
        return self.value

    @classmethod
    def from_wire(cls, raw: str | int) -> TicketStatus:
        """Normalize the backend's string or numeric status.

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(raw, bool):
            raise ValueError(f"Unknown ticket status: {raw!r}")
        if isinstance(raw, int):
            try:
                return _STATUS_BY_CODE[raw]
            except KeyError:
                raise ValueError(f"Unknown ticket status code: {raw}") from None

        text = str(raw).strip()
        if text.isdigit():
            return cls.from_wire(int(text))

        folded = text.casefold().replace("_", " ")
        for status in cls:
            if folded in (status.value.casefold(), status.name.casefold().replace("_", " ")):
                return status
        raise ValueError(f"Unknown ticket status: {raw!r}")


_STATUS_BY_CODE = {
    0: TicketStatus.PENDING,
    1: TicketStatus.IN_PROGRESS,
    2: TicketStatus.RESOLVED,
    3: TicketStatus.ESCALATED,
}


@dataclass(frozen=True)
class Ticket:
    """A helpdesk ticket ("chamado") as last seen on the backend."""

    id: int
    title: str
    status: TicketStatus
    assigned_technician: str | None = None  # "" when assigned but unnamed
    messages: tuple[AuthoritativeMessage, ...] = ()
    created_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status is TicketStatus.RESOLVED

    @property
    def is_assigned(self) -> bool:
        return self.assigned_technician is not None
