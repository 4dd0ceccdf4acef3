"""Data models and transfer objects."""

from .auth import AuthSession, UserProfile
from .message import (
    AuthoritativeMessage,
    Message,
    MessageBatch,
    ProvisionalMessage,
    SenderKind,
    SendResult,
)
from .notice import Notice, NoticeKind
from .ticket import Ticket, TicketStatus

__all__ = [
    # Message models
    "SenderKind",
    "AuthoritativeMessage",
    "ProvisionalMessage",
    "Message",
    "SendResult",
    "MessageBatch",
    # Ticket models
    "TicketStatus",
    "Ticket",
    # Auth models
    "UserProfile",
    "AuthSession",
    # Notices
    "NoticeKind",
    "Notice",
]
