"""Optimistic send protocol.

A send goes through these steps:
1. Validate the text and refuse locally if the ticket is known to be resolved
2. Re-fetch the ticket and abort if the backend says it is resolved
3. Echo a provisional message into the timeline and raise the typing indicator
4. Post the message and wait for the AI turn
5. Swap the provisional message for the authoritative ones, or drop it on failure

Whatever happens, the provisional message is gone once send() returns.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from ..models.message import ProvisionalMessage
from ..models.notice import Notice, NoticeKind
from ..models.ticket import TicketStatus
from ..utils.async_helpers import CLOSED_TICKET_MARKERS, CancellationToken, TicketClosedError

if TYPE_CHECKING:
    from ..interfaces.gateway import TicketGateway
    from .lifecycle import TicketLifecycle
    from .timeline import MessageTimeline

log = structlog.get_logger()

NoticeSink = Callable[[Notice], None]
IndicatorListener = Callable[[bool], None]


class SendOutcome(Enum):
    """How a send attempt ended."""

    SENT = "sent"
    REJECTED_INVALID = "rejected_invalid"
    REJECTED_RESOLVED = "rejected_resolved"
    FAILED = "failed"
    ABANDONED = "abandoned"  # session torn down while in flight


def is_ticket_closed_error(error: BaseException) -> bool:
    """Check whether a failure means the ticket no longer accepts messages."""
    if isinstance(error, TicketClosedError):
        return True
    detail = getattr(error, "detail", "") or ""
    text = f"{detail} {error}".lower()
    return any(marker in text for marker in CLOSED_TICKET_MARKERS)


class SendCoordinator:
    """Runs the optimistic send protocol for one chat session.

    The coordinator writes into the session's timeline and lifecycle and
    reports user-facing outcomes through ``notify``. Every step that follows
    a network call first checks the session's liveness token, so a send that
    settles after teardown changes nothing.
    """

    def __init__(
        self,
        gateway: TicketGateway,
        timeline: MessageTimeline,
        lifecycle: TicketLifecycle,
        notify: NoticeSink,
        liveness: CancellationToken,
    ) -> None:
        self._gateway = gateway
        self._timeline = timeline
        self._lifecycle = lifecycle
        self._notify = notify
        self._liveness = liveness

        self._in_flight = 0
        self._indicator_listeners: list[IndicatorListener] = []

    @property
    def ticket_id(self) -> int:
        return self._timeline.ticket_id

    @property
    def agent_responding(self) -> bool:
        """True while at least one send awaits the backend's answer."""
        return self._in_flight > 0

    def add_indicator_listener(self, listener: IndicatorListener) -> None:
        self._indicator_listeners.append(listener)

    async def send(self, text: str) -> SendOutcome:
        """Send a user message.

        Args:
            text: Raw composer text; surrounding whitespace is dropped

        Returns:
            How the attempt ended. Errors are reported as notices, never raised.
        """
        message_text = text.strip()
        if not message_text:
            self._notify(Notice.of(NoticeKind.INVALID_INPUT))
            return SendOutcome.REJECTED_INVALID

        if self._lifecycle.is_resolved:
            log.info("message_send_rejected", ticket_id=self.ticket_id, reason="resolved")
            self._notify(Notice.of(NoticeKind.TICKET_RESOLVED))
            return SendOutcome.REJECTED_RESOLVED

        if not await self._preflight_allows_send():
            if self._liveness.is_cancelled:
                return SendOutcome.ABANDONED
            return SendOutcome.REJECTED_RESOLVED

        if self._liveness.is_cancelled:
            return SendOutcome.ABANDONED

        provisional = ProvisionalMessage.create(message_text)
        self._timeline.insert_provisional(provisional)
        self._set_in_flight(+1)
        start_time = time.monotonic()
        log.info("message_send_started", ticket_id=self.ticket_id, local_id=provisional.local_id)

        failure: Exception | None = None
        try:
            result = await self._gateway.send_message(self.ticket_id, message_text)
        except Exception as e:
            failure = e
        finally:
            self._set_in_flight(-1)

        if failure is not None:
            return await self._handle_failure(provisional, failure)

        if self._liveness.is_cancelled:
            log.info("message_send_abandoned", ticket_id=self.ticket_id)
            return SendOutcome.ABANDONED

        added = self._timeline.reconcile_provisional(provisional.local_id, result.messages)
        log.info(
            "message_send_completed",
            ticket_id=self.ticket_id,
            user_message_id=result.user_message.id,
            bot_message_id=result.bot_message.id if result.bot_message else None,
            added=len(added),
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        return SendOutcome.SENT

    async def _preflight_allows_send(self) -> bool:
        """Ask the backend, not the cache, whether the ticket is still open."""
        try:
            fresh = await self._gateway.fetch_ticket(self.ticket_id)
        except Exception as e:
            # The backend still has the final word when the message is posted
            log.warning(
                "send_preflight_check_failed",
                ticket_id=self.ticket_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return True

        if self._liveness.is_cancelled:
            return False

        if fresh.status is TicketStatus.RESOLVED:
            log.info("message_send_rejected", ticket_id=self.ticket_id, reason="resolved_remotely")
            self._lifecycle.load(fresh)
            self._notify(Notice.of(NoticeKind.TICKET_RESOLVED))
            return False
        return True

    async def _handle_failure(self, provisional: ProvisionalMessage, error: Exception) -> SendOutcome:
        log.warning(
            "message_send_failed",
            ticket_id=self.ticket_id,
            error_type=type(error).__name__,
            error=str(error),
        )
        if self._liveness.is_cancelled:
            return SendOutcome.ABANDONED

        self._timeline.discard_provisional(provisional.local_id)

        if not is_ticket_closed_error(error):
            self._notify(Notice.of(NoticeKind.SEND_FAILED))
            return SendOutcome.FAILED

        self._notify(Notice.of(NoticeKind.TICKET_RESOLVED))
        try:
            fresh = await self._gateway.fetch_ticket(self.ticket_id)
        except Exception as e:
            log.warning("ticket_refresh_failed", ticket_id=self.ticket_id, error=str(e))
            fresh = None

        if self._liveness.is_cancelled:
            return SendOutcome.ABANDONED
        if fresh is not None:
            self._lifecycle.load(fresh)
        else:
            # Trust the error payload until the next poll brings the real status
            self._lifecycle.mark_resolved()
        return SendOutcome.REJECTED_RESOLVED

    def _set_in_flight(self, delta: int) -> None:
        was_responding = self.agent_responding
        self._in_flight += delta
        if was_responding != self.agent_responding:
            for listener in list(self._indicator_listeners):
                try:
                    listener(self.agent_responding)
                except Exception as e:
                    log.warning("indicator_listener_error", error=str(e))
