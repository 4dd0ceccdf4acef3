"""Abstract interfaces for the remote helpdesk backend."""

from typing import Protocol

from ..models.auth import AuthSession, UserProfile
from ..models.message import MessageBatch, SendResult
from ..models.ticket import Ticket, TicketStatus


class TicketGateway(Protocol):
    """Remote ticket operations consumed by the chat core.

    Implementations normalize the backend's wire format (PascalCase JSON,
    string or numeric statuses) into the client models before returning.
    """

    async def fetch_ticket(self, ticket_id: int) -> Ticket:
        """
        Fetch a ticket with its full message list.

        Args:
            ticket_id: Ticket identifier

        Returns:
            The ticket as currently stored by the backend

        Raises:
            NotFoundError: If the ticket does not exist
            GatewayError: On any other backend error
            TransportError: If the backend could not be reached
        """
        ...

    async def fetch_new_messages(
        self,
        ticket_id: int,
        after_id: int,
    ) -> MessageBatch:
        """
        Fetch messages newer than a watermark.

        Args:
            ticket_id: Ticket identifier
            after_id: Only messages with id strictly greater are returned

        Returns:
            New readable messages in ascending id order, plus the highest id
            returned, counting entries that were skipped as unreadable
        """
        ...

    async def send_message(self, ticket_id: int, text: str) -> SendResult:
        """
        Post a user message and wait for the AI turn.

        Args:
            ticket_id: Ticket identifier
            text: Message text (already trimmed)

        Returns:
            The stored user message and, when generated, the paired reply

        Raises:
            TicketClosedError: If the ticket no longer accepts messages
            GatewayError: On any other backend error
        """
        ...

    async def set_status(self, ticket_id: int, status: TicketStatus) -> None:
        """
        Set the ticket status. Idempotent.

        Raises:
            NotFoundError: If the ticket does not exist
        """
        ...

    async def escalate(self, ticket_id: int) -> Ticket:
        """
        Hand the ticket over to a human technician.

        The backend may inject a system or technician message as a side effect.

        Returns:
            The escalated ticket
        """
        ...

    async def create_ticket(self, initial_message: str) -> Ticket:
        """
        Open a new ticket whose first message is the problem description.

        Returns:
            The created ticket
        """
        ...

    async def list_tickets(self) -> list[Ticket]:
        """
        List the signed-in user's tickets.

        Returns:
            Tickets as summaries (messages may be empty)
        """
        ...


class AuthGateway(Protocol):
    """Remote authentication operations."""

    async def login(self, email: str, password: str) -> AuthSession:
        """
        Exchange credentials for a bearer token.

        Raises:
            GatewayError: If the credentials are rejected
        """
        ...

    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str = "",
    ) -> UserProfile:
        """
        Create an account.

        Returns:
            The registered user's profile
        """
        ...

    async def logout(self) -> None:
        """Invalidate the current token on the backend."""
        ...
