"""Utility functions and helpers.

This module provides various utilities for the SmartCall client:
- async_helpers: Error taxonomy, async retry, cooperative cancellation
- logging: Structured logging with secret sanitization
- security: Secret redaction
"""

from smartcall_client.utils.async_helpers import (
    AuthenticationError,
    CancellationToken,
    ClientError,
    GatewayError,
    InputValidationError,
    NotFoundError,
    TicketClosedError,
    TransportError,
)
from smartcall_client.utils.logging import (
    LogFormat,
    LogLevel,
    bind_context,
    configure_logging,
    unbind_context,
)
from smartcall_client.utils.security import RedactionError, SecretRedactor, SecurityError

__all__ = [
    # Errors
    "AuthenticationError",
    "CancellationToken",
    "ClientError",
    "GatewayError",
    "InputValidationError",
    # Logging
    "LogFormat",
    "LogLevel",
    "NotFoundError",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "TicketClosedError",
    "TransportError",
    "bind_context",
    "configure_logging",
    "unbind_context",
]
