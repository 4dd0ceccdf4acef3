"""Ticket creation and listing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ..config.schema import TicketConfig
from ..utils.async_helpers import InputValidationError

if TYPE_CHECKING:
    from ..interfaces.gateway import TicketGateway
    from ..models.ticket import Ticket

log = structlog.get_logger()


class TicketService:
    """Opens new tickets and lists the user's tickets."""

    def __init__(self, gateway: TicketGateway, config: TicketConfig | None = None) -> None:
        self._gateway = gateway
        self._config = config or TicketConfig()

    def validate_description(self, description: str) -> str:
        """Return the trimmed description, or raise if it cannot open a ticket.

        Raises:
            InputValidationError: If empty or shorter than the configured minimum
        """
        text = description.strip()
        if not text:
            raise InputValidationError("Por favor, descreva o problema do chamado")
        minimum = self._config.min_description_length
        if len(text) < minimum:
            raise InputValidationError(f"A descrição deve ter no mínimo {minimum} caracteres")
        return text

    async def create(self, description: str) -> Ticket:
        """Open a ticket whose first message is the problem description.

        The backend answers only after the AI has produced its first reply.
        """
        text = self.validate_description(description)
        ticket = await self._gateway.create_ticket(text)
        log.info("ticket_created", ticket_id=ticket.id, status=ticket.status.label)
        return ticket

    async def list_mine(self) -> list[Ticket]:
        tickets = await self._gateway.list_tickets()
        log.debug("tickets_listed", count=len(tickets))
        return tickets
