"""Protocol definitions for pluggable adapters."""

from .gateway import AuthGateway, TicketGateway
from .storage import CredentialStore

__all__ = ["AuthGateway", "CredentialStore", "TicketGateway"]
