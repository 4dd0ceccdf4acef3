"""Chat session for one ticket.

A ChatSession owns the timeline, the lifecycle, the poll loop and the send
coordinator of a single ticket, and implements the user actions of the chat
screen: send, resolve and escalate. It is rebuilt from scratch every time a
chat is opened; nothing survives close().

Every failure is reported as a Notice; no gateway error escapes a session
method, so the front end never has to guard against a crashed chat.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING

import structlog

from ..config.schema import PollingConfig
from ..models.notice import Notice, NoticeKind
from ..models.ticket import Ticket, TicketStatus
from ..utils.async_helpers import CancellationToken, TicketClosedError
from .lifecycle import InvalidTransitionError, TicketLifecycle
from .poller import PollCheck, PollLoop
from .sender import SendCoordinator, SendOutcome
from .timeline import MessageTimeline

if TYPE_CHECKING:
    from ..interfaces.gateway import TicketGateway

log = structlog.get_logger()

NoticeSink = Callable[[Notice], None]


class ChatSession:
    """Keeps one ticket's chat in sync with the backend.

    Example:
        async with ChatSession(gateway, ticket_id=42, polling=config.polling) as chat:
            chat.timeline.add_listener(render)
            await chat.send("A impressora continua offline")
            if chat.lifecycle.can_send:
                await chat.resolve()
    """

    def __init__(
        self,
        gateway: TicketGateway,
        ticket_id: int,
        polling: PollingConfig | None = None,
        notify: NoticeSink | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            gateway: Remote ticket operations
            ticket_id: Ticket this session is bound to
            polling: Warm-up delay and period of the poll loop
            notify: Receives user-facing notices; they are only logged if None
        """
        polling = polling or PollingConfig()
        self._gateway = gateway
        self._ticket_id = ticket_id
        self._notify_sink = notify
        self._liveness = CancellationToken()
        self._opened = False

        self.timeline = MessageTimeline(ticket_id)
        self.lifecycle = TicketLifecycle()
        self.sender = SendCoordinator(
            gateway,
            self.timeline,
            self.lifecycle,
            self._notify,
            self._liveness,
        )
        self.poller = PollLoop(
            [
                PollCheck("messages", self._pull_new_messages),
                PollCheck("ticket_status", self._pull_ticket_status),
            ],
            warmup_delay=polling.warmup_delay,
            interval=polling.interval,
            name=f"ticket_{ticket_id}",
        )

    @property
    def ticket_id(self) -> int:
        return self._ticket_id

    @property
    def ticket(self) -> Ticket | None:
        return self.lifecycle.ticket

    @property
    def is_active(self) -> bool:
        """False once the session has been torn down."""
        return not self._liveness.is_cancelled

    @property
    def can_send(self) -> bool:
        return self.is_active and self.lifecycle.can_send

    @property
    def agent_responding(self) -> bool:
        return self.sender.agent_responding

    async def __aenter__(self) -> ChatSession:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Lifecycle of the session itself
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """Load the ticket and start polling."""
        if self._opened:
            return
        self._opened = True
        log.info("chat_session_opening", ticket_id=self._ticket_id)

        try:
            await self.reload()
        except Exception as e:
            log.error("chat_session_load_failed", ticket_id=self._ticket_id, error=str(e))
            self._notify(Notice.of(NoticeKind.LOAD_FAILED))

        if self.is_active:
            self.poller.start()
            log.info(
                "chat_session_opened",
                ticket_id=self._ticket_id,
                messages=len(self.timeline),
                status=self.lifecycle.status.label if self.lifecycle.status else None,
            )

    async def close(self) -> None:
        """Tear the session down. In-flight calls settle as no-ops."""
        if self._liveness.is_cancelled:
            return
        self._liveness.cancel()
        await self.poller.stop()
        log.info("chat_session_closed", ticket_id=self._ticket_id)

    async def reload(self) -> Ticket:
        """Replace ticket snapshot and timeline with a full fetch.

        Raises:
            GatewayError: If the ticket cannot be fetched
            TransportError: If the backend cannot be reached
        """
        ticket = await self._gateway.fetch_ticket(self._ticket_id)
        if self.is_active:
            self.lifecycle.load(ticket)
            self.timeline.replace_all(ticket.messages)
        return ticket

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def send(self, text: str) -> SendOutcome:
        """Send a message through the optimistic send protocol."""
        if not self.is_active:
            return SendOutcome.ABANDONED
        return await self.sender.send(text)

    async def resolve(self) -> bool:
        """Mark the ticket resolved, once the user has confirmed it.

        Returns:
            True if the backend accepted the new status
        """
        if not self.is_active:
            return False
        try:
            self.lifecycle.ensure_can_resolve()
        except TicketClosedError:
            self._notify(Notice.of(NoticeKind.TICKET_RESOLVED))
            return False

        try:
            await self._gateway.set_status(self._ticket_id, TicketStatus.RESOLVED)
        except Exception as e:
            log.error("ticket_resolve_error", ticket_id=self._ticket_id, error=str(e))
            if self.is_active:
                self._notify(Notice.of(NoticeKind.RESOLVE_FAILED))
            return False

        if not self.is_active:
            return True
        self.lifecycle.mark_resolved()
        log.info("ticket_resolved", ticket_id=self._ticket_id)
        self._notify(Notice.of(NoticeKind.RESOLVE_CONFIRMED))

        # Confirm against the backend; the optimistic state stands if this fails
        try:
            confirmed = await self._gateway.fetch_ticket(self._ticket_id)
        except Exception as e:
            log.warning("ticket_refresh_failed", ticket_id=self._ticket_id, error=str(e))
            return True
        if self.is_active:
            self.lifecycle.load(confirmed)
        return True

    async def escalate(self) -> bool:
        """Hand the ticket to a human technician, once the user has confirmed it.

        Escalation can inject messages server-side, so the whole timeline is
        reloaded afterwards instead of waiting for the next poll.

        Returns:
            True if the backend accepted the escalation
        """
        if not self.is_active:
            return False
        try:
            self.lifecycle.ensure_can_escalate()
        except InvalidTransitionError as e:
            log.info("ticket_escalate_skipped", ticket_id=self._ticket_id, reason=str(e))
            return False
        except TicketClosedError as e:
            log.info("ticket_escalate_refused", ticket_id=self._ticket_id, reason=str(e))
            self._notify(Notice.of(NoticeKind.TICKET_RESOLVED))
            return False

        try:
            await self._gateway.escalate(self._ticket_id)
        except Exception as e:
            log.error("ticket_escalate_error", ticket_id=self._ticket_id, error=str(e))
            if self.is_active:
                self._notify(Notice.of(NoticeKind.ESCALATE_FAILED))
            return False

        if not self.is_active:
            return True
        log.info("ticket_escalated", ticket_id=self._ticket_id)
        self._notify(Notice.of(NoticeKind.ESCALATED))

        try:
            await self.reload()
        except Exception as e:
            log.warning("ticket_refresh_failed", ticket_id=self._ticket_id, error=str(e))
        return True

    # -------------------------------------------------------------------------
    # Poll checks
    # -------------------------------------------------------------------------

    async def _pull_new_messages(self) -> None:
        if not self.is_active:
            return
        batch = await self._gateway.fetch_new_messages(
            self._ticket_id, self.timeline.last_seen_id
        )
        if not self.is_active:
            return
        added = self.timeline.merge_incoming(batch.messages)
        self.timeline.advance_watermark(batch.highest_id)
        if added:
            log.info("new_messages_received", ticket_id=self._ticket_id, count=len(added))

    async def _pull_ticket_status(self) -> None:
        if not self.is_active:
            return
        ticket = await self._gateway.fetch_ticket(self._ticket_id)
        if self.is_active:
            self.lifecycle.observe(ticket)

    def _notify(self, notice: Notice) -> None:
        log.info("notice_raised", ticket_id=self._ticket_id, kind=notice.kind.value)
        if self._notify_sink is None:
            return
        try:
            self._notify_sink(notice)
        except Exception as e:
            log.warning("notice_sink_error", ticket_id=self._ticket_id, error=str(e))
