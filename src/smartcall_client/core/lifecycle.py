"""Ticket lifecycle state machine.

Mirrors the backend status of the ticket behind a chat session and decides
whether the composer may send. The backend is authoritative: remote changes
seen by polling are always mirrored, whatever the local state was.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog

from ..models.ticket import Ticket, TicketStatus
from ..utils.async_helpers import TicketClosedError

log = structlog.get_logger()


class InvalidTransitionError(Exception):
    """A local action that the current status does not allow."""


@dataclass(frozen=True)
class TicketChange:
    """A difference between two snapshots of the same ticket."""

    previous: Ticket | None
    current: Ticket

    @property
    def status_changed(self) -> bool:
        return self.previous is None or self.previous.status is not self.current.status

    @property
    def technician_changed(self) -> bool:
        return (
            self.previous is None
            or self.previous.assigned_technician != self.current.assigned_technician
        )


LifecycleListener = Callable[[TicketChange], None]


class TicketLifecycle:
    """Tracks ticket status and gates sending.

    States are PENDING, IN_PROGRESS, RESOLVED and ESCALATED. Only RESOLVED
    blocks the composer; an escalated ticket stays writable and may still be
    resolved later.
    """

    def __init__(self, ticket: Ticket | None = None) -> None:
        self._ticket = ticket
        self._listeners: list[LifecycleListener] = []

    @property
    def ticket(self) -> Ticket | None:
        """Last known snapshot, or None before the first successful fetch."""
        return self._ticket

    @property
    def status(self) -> TicketStatus | None:
        return self._ticket.status if self._ticket else None

    @property
    def is_resolved(self) -> bool:
        return self.status is TicketStatus.RESOLVED

    @property
    def can_send(self) -> bool:
        """Whether the composer is enabled."""
        return self._ticket is not None and not self.is_resolved

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    def load(self, ticket: Ticket) -> TicketChange | None:
        """Adopt a freshly fetched ticket as the snapshot.

        Returns:
            The change, if status or technician differ from the old snapshot
        """
        change = self._diff(ticket)
        self._ticket = ticket
        if change:
            self._announce(change)
        return change

    def observe(self, ticket: Ticket) -> TicketChange | None:
        """Mirror a polled ticket.

        Only status and technician assignment count as changes; the snapshot
        is kept otherwise, since polled tickets carry no new information the
        session uses.

        Returns:
            The change, or None when nothing relevant moved
        """
        change = self._diff(ticket)
        if change is None:
            return None
        self._ticket = ticket
        self._announce(change)
        return change

    def mark_resolved(self) -> TicketChange | None:
        """Optimistically flip to RESOLVED after the backend accepted it."""
        if self._ticket is None or self.is_resolved:
            return None
        return self.load(replace(self._ticket, status=TicketStatus.RESOLVED))

    def ensure_can_resolve(self) -> None:
        """Raise when resolving makes no sense locally."""
        if self.is_resolved:
            raise TicketClosedError("Ticket is already resolved", detail="resolvido")

    def ensure_can_escalate(self) -> None:
        """Raise when escalating makes no sense locally."""
        if self.is_resolved:
            raise TicketClosedError("Resolved tickets cannot be escalated", detail="resolvido")
        if self.status is TicketStatus.ESCALATED:
            raise InvalidTransitionError("Ticket is already escalated")

    def _diff(self, ticket: Ticket) -> TicketChange | None:
        change = TicketChange(previous=self._ticket, current=ticket)
        if change.status_changed or change.technician_changed:
            return change
        return None

    def _announce(self, change: TicketChange) -> None:
        if change.status_changed:
            log.info(
                "ticket_status_changed",
                ticket_id=change.current.id,
                previous=change.previous.status.label if change.previous else None,
                current=change.current.status.label,
            )
        if change.previous is not None and change.technician_changed:
            log.info(
                "ticket_technician_changed",
                ticket_id=change.current.id,
                technician=change.current.assigned_technician,
            )
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                log.warning("lifecycle_listener_error", ticket_id=change.current.id, error=str(e))
