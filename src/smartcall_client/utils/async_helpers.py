"""Async utilities and the client's error taxonomy.

This module provides:
- Custom exceptions raised by gateways, services and the chat core
- Retry decorators with exponential backoff for idempotent API calls
- Cooperative cancellation used as the chat session's liveness check
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class ClientError(Exception):
    """Base exception for all client errors."""


class GatewayError(ClientError):
    """The backend answered with an error or an unreadable payload.

    Attributes:
        status_code: HTTP status code, if the error came from a response.
        detail: Error text extracted from the response body.
    """

    def __init__(self, message: str, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthenticationError(GatewayError):
    """The bearer token was rejected (HTTP 401)."""


class NotFoundError(GatewayError):
    """The requested ticket or resource does not exist."""


# Markers the backend puts in its error text when a ticket is closed
CLOSED_TICKET_MARKERS = ("resolvido", "bloqueado", "resolved", "blocked")


class TicketClosedError(GatewayError):
    """The ticket is resolved and no longer accepts messages."""


class TransportError(ClientError):
    """The request never got an answer (network failure or timeout)."""


class InputValidationError(ClientError):
    """User input rejected before any network call."""


# =============================================================================
# Retries
# =============================================================================

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError)


def _log_retry(retry_state: RetryCallState) -> None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return
    exception = retry_state.outcome.exception()
    log.warning(
        "retrying_request",
        attempt=retry_state.attempt_number,
        exception_type=type(exception).__name__,
        error=str(exception),
        wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def create_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Build a retry decorator with exponential backoff.

    Only idempotent calls should be wrapped: a POST that timed out may still
    have been applied by the backend.

    Args:
        max_attempts: Total attempts, including the first
        min_wait: Lower bound of the backoff (seconds)
        max_wait: Upper bound of the backoff (seconds)
        retry_on: Exception types worth another attempt

    Returns:
        A decorator for async callables; the last exception is re-raised
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )


# =============================================================================
# Cancellation
# =============================================================================


class CancellationToken:
    """One-way flag that marks a unit of async work as torn down.

    Chat sessions hand their token to every component that awaits the
    network; once cancelled, results that arrive late are discarded instead
    of being applied.

    Example:
        liveness = CancellationToken()
        result = await gateway.send_message(ticket_id, text)
        if liveness.is_cancelled:
            return
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
