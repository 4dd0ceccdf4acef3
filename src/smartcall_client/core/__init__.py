"""Core business logic components.

This module exports the chat synchronization core and the services around it:
- MessageTimeline: Ordered, identity-deduplicated messages of one ticket
- PollLoop: Fixed-period scheduler of independent poll checks
- SendCoordinator: Optimistic send with rollback
- TicketLifecycle: Ticket status mirror that gates sending
- ChatSession: Owns all of the above for one open chat
- AuthService / TicketService: Sign-in and ticket management
"""

from smartcall_client.core.auth import AuthService
from smartcall_client.core.lifecycle import InvalidTransitionError, TicketChange, TicketLifecycle
from smartcall_client.core.poller import PollCheck, PollLoop
from smartcall_client.core.sender import SendCoordinator, SendOutcome, is_ticket_closed_error
from smartcall_client.core.session import ChatSession
from smartcall_client.core.tickets import TicketService
from smartcall_client.core.timeline import MessageTimeline, TimelineError

__all__ = [
    "AuthService",
    "ChatSession",
    "InvalidTransitionError",
    "MessageTimeline",
    "PollCheck",
    "PollLoop",
    "SendCoordinator",
    "SendOutcome",
    "TicketChange",
    "TicketLifecycle",
    "TicketService",
    "TimelineError",
    "is_ticket_closed_error",
]
