"""Message timeline for one ticket.

The timeline is the ordered, identity-deduplicated list of messages shown in
a chat session. Three writers feed it:
1. The initial load and full reloads (replace_all)
2. The poll loop (merge_incoming)
3. The send path (insert_provisional, then reconcile_provisional or
   discard_provisional)

Every mutating method is synchronous. Under asyncio that makes each call
atomic with respect to the others, so merging by identity is enough to keep
poll-driven and send-driven updates from duplicating or dropping a message,
whatever order the network answers in.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

import structlog

from ..models.message import AuthoritativeMessage, Message, ProvisionalMessage

log = structlog.get_logger()

TimelineListener = Callable[[tuple[Message, ...]], None]


class TimelineError(Exception):
    """Raised on misuse of the timeline (not on network races)."""


class MessageTimeline:
    """Ordered message store for a single ticket.

    Messages keep their arrival order. A provisional message is appended as
    soon as the user sends, ahead of its authoritative counterpart, and is
    later swapped for it in a single step.

    ``last_seen_id`` is the polling watermark: the highest backend id folded in
    so far. It never decreases and provisional messages never move it.

    Example:
        timeline = MessageTimeline(ticket_id=42)
        timeline.replace_all(ticket.messages)

        pending = ProvisionalMessage.create("Ainda não funciona")
        timeline.insert_provisional(pending)
        result = await gateway.send_message(42, pending.text)
        timeline.reconcile_provisional(pending.local_id, result.messages)
    """

    def __init__(self, ticket_id: int) -> None:
        self._ticket_id = ticket_id
        self._messages: list[Message] = []
        self._keys: set[tuple[str, int | str]] = set()
        self._last_seen_id = 0
        self._listeners: list[TimelineListener] = []

    @property
    def ticket_id(self) -> int:
        return self._ticket_id

    @property
    def last_seen_id(self) -> int:
        """Highest authoritative message id folded in so far (0 when none)."""
        return self._last_seen_id

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the timeline in display order."""
        return tuple(self._messages)

    @property
    def provisional_count(self) -> int:
        return sum(1 for message in self._messages if message.is_provisional)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def contains_id(self, message_id: int) -> bool:
        """Check whether an authoritative message with this id is present."""
        return ("a", message_id) in self._keys

    def add_listener(self, listener: TimelineListener) -> None:
        """Register a callback invoked with the new snapshot after each change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TimelineListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def replace_all(self, messages: Iterable[AuthoritativeMessage]) -> None:
        """Replace the whole sequence, as on initial load or a full reload.

        Duplicated ids in the input keep their first occurrence. Any
        provisional entry is dropped along with the old sequence.

        Args:
            messages: Authoritative messages in display order
        """
        self._messages = []
        self._keys = set()
        for message in messages:
            self._append(message)

        self._advance_watermark(self._messages)

        log.debug(
            "timeline_replaced",
            ticket_id=self._ticket_id,
            count=len(self._messages),
            last_seen_id=self._last_seen_id,
        )
        self._notify()

    def merge_incoming(self, messages: Iterable[AuthoritativeMessage]) -> list[AuthoritativeMessage]:
        """Append messages whose id is not yet present.

        Merging is idempotent: folding the same message twice leaves the
        timeline unchanged, and existing entries are never reordered.

        Args:
            messages: Authoritative messages, typically from a poll or a send

        Returns:
            The messages that were actually appended
        """
        incoming = list(messages)
        added = [message for message in incoming if self._append(message)]

        # The watermark follows everything the backend has shown us, including
        # ids that were already present (e.g. put there by a send).
        self._advance_watermark(incoming)

        if added:
            log.debug(
                "timeline_merged",
                ticket_id=self._ticket_id,
                added=len(added),
                skipped=len(incoming) - len(added),
                last_seen_id=self._last_seen_id,
            )
            self._notify()
        return added

    def advance_watermark(self, message_id: int) -> None:
        """Move the watermark past an id the backend returned but that was not merged."""
        if message_id > self._last_seen_id:
            self._last_seen_id = message_id
            log.debug("watermark_advanced", ticket_id=self._ticket_id, last_seen_id=message_id)

    def insert_provisional(self, message: ProvisionalMessage) -> None:
        """Append a provisional message for an in-flight send.

        Raises:
            TimelineError: If a provisional message with this local id exists
        """
        if message.key in self._keys:
            raise TimelineError(f"Provisional message {message.local_id} already inserted")

        self._append(message)
        log.debug("provisional_inserted", ticket_id=self._ticket_id, local_id=message.local_id)
        self._notify()

    def reconcile_provisional(
        self,
        local_id: str,
        authoritative: Iterable[AuthoritativeMessage],
    ) -> list[AuthoritativeMessage]:
        """Swap a provisional message for the backend's version of it.

        The provisional entry is removed and the authoritative messages merged
        in one synchronous step, so no render sees both or neither. Any
        authoritative message a concurrent poll already merged is skipped.

        Args:
            local_id: Local id of the provisional message
            authoritative: The stored user message and the paired reply, if any

        Returns:
            The messages that were actually appended
        """
        removed = self._remove_provisional(local_id)
        incoming = list(authoritative)
        added = [message for message in incoming if self._append(message)]
        self._advance_watermark(incoming)

        log.debug(
            "provisional_reconciled",
            ticket_id=self._ticket_id,
            local_id=local_id,
            removed=removed,
            added=len(added),
            last_seen_id=self._last_seen_id,
        )
        if removed or added:
            self._notify()
        return added

    def discard_provisional(self, local_id: str) -> bool:
        """Drop a provisional message whose send failed.

        Returns:
            True if the message was present and removed
        """
        removed = self._remove_provisional(local_id)
        if removed:
            log.debug("provisional_discarded", ticket_id=self._ticket_id, local_id=local_id)
            self._notify()
        return removed

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _append(self, message: Message) -> bool:
        if message.key in self._keys:
            return False
        self._messages.append(message)
        self._keys.add(message.key)
        return True

    def _remove_provisional(self, local_id: str) -> bool:
        key = ("p", local_id)
        if key not in self._keys:
            return False
        self._keys.discard(key)
        self._messages = [message for message in self._messages if message.key != key]
        return True

    def _advance_watermark(self, messages: Iterable[Message]) -> None:
        ids = [m.id for m in messages if isinstance(m, AuthoritativeMessage)]
        if ids:
            self._last_seen_id = max(self._last_seen_id, max(ids))

    def _notify(self) -> None:
        snapshot = tuple(self._messages)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                log.warning(
                    "timeline_listener_error",
                    ticket_id=self._ticket_id,
                    error=str(e),
                )
