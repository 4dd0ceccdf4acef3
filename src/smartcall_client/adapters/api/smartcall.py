"""SmartCall REST API adapter using httpx.

This module implements the TicketGateway and AuthGateway protocols against
the SmartCall backend.

Transport features:
- Bearer token read from the credential store and attached to every request
- Session-wide invalidation on 401: stored credentials are cleared and the
  front end is told to return to its sign-in entry point
- Idempotent reads retried on timeouts and network errors (tenacity)
- One generous client-wide timeout, since sends wait for the AI reply

Wire payloads use PascalCase keys and Portuguese status labels (or their
numeric codes); both are normalized here, once, into the client models.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Awaitable, Callable, Generator
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from ...config.schema import ApiConfig, RetryConfig
from ...interfaces.storage import TOKEN_KEY, USER_KEY, CredentialStore
from ...models.auth import AuthSession, UserProfile
from ...models.message import AuthoritativeMessage, MessageBatch, SenderKind, SendResult
from ...models.ticket import Ticket, TicketStatus
from ...utils.async_helpers import (
    CLOSED_TICKET_MARKERS,
    AuthenticationError,
    GatewayError,
    NotFoundError,
    TicketClosedError,
    TransportError,
    create_retry,
)

log = structlog.get_logger()

UnauthorizedCallback = Callable[[], Awaitable[None] | None]

# Statuses where the backend reports business rule violations
BUSINESS_RULE_STATUSES = frozenset({400, 403, 409, 422})

MAX_ERROR_DETAIL_LENGTH = 500


class BearerTokenAuth(httpx.Auth):
    """Attach the stored token, if any, to each request."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._store.get(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def parse_timestamp(value: str | None) -> datetime:
    """Parse a backend timestamp into an aware UTC datetime.

    The backend stores UTC but does not always say so; timestamps without
    an offset are read as UTC.
    """
    if not value:
        return datetime.now(UTC)

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_message(data: dict[str, Any]) -> AuthoritativeMessage:
    """Convert a wire message into an AuthoritativeMessage.

    Raises:
        GatewayError: If the payload is malformed
    """
    try:
        return AuthoritativeMessage(
            id=int(data["Id"]),
            text=str(data.get("Message") or ""),
            sender=SenderKind.from_wire(data.get("SenderType"), bool(data.get("IsUser"))),
            created_at=parse_timestamp(data.get("CreatedAt")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Malformed message payload: {e}") from e


def _wire_id(data: Any) -> int | None:
    try:
        return int(data["Id"])
    except (KeyError, TypeError, ValueError):
        return None


def parse_message_list(raw_messages: list[Any]) -> tuple[list[AuthoritativeMessage], int]:
    """Parse a list of wire messages, skipping the ones that cannot be read.

    One unreadable entry must not hide the rest of the conversation, so it is
    logged and dropped instead of failing the whole list.

    Returns:
        The readable messages and the highest id seen, unreadable ones included
    """
    messages: list[AuthoritativeMessage] = []
    highest_id = 0
    for raw in raw_messages:
        message_id = _wire_id(raw)
        if message_id is not None:
            highest_id = max(highest_id, message_id)
        try:
            messages.append(parse_message(raw))
        except GatewayError as e:
            log.warning("malformed_message_skipped", message_id=message_id, error=str(e))
    return messages, highest_id


def _parse_technician(data: dict[str, Any]) -> str | None:
    raw = data.get("AtribuidoATecnico")
    if isinstance(raw, bool):
        if not raw:
            return None
        return str(data.get("TecnicoNome") or "")
    if raw is None or raw == "":
        return None
    return str(raw)


def parse_ticket(data: dict[str, Any]) -> Ticket:
    """Convert a wire ticket into a Ticket.

    Raises:
        GatewayError: If the payload is malformed or the status is unknown
    """
    try:
        raw_messages = data.get("Mensagens") or []
        created_at = data.get("CreatedAt")
        return Ticket(
            id=int(data["Id"]),
            title=str(data.get("Titulo") or data.get("Title") or ""),
            status=TicketStatus.from_wire(data.get("Status", 0)),
            assigned_technician=_parse_technician(data),
            messages=tuple(parse_message_list(raw_messages)[0]),
            created_at=parse_timestamp(created_at) if created_at else None,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Malformed ticket payload: {e}") from e


def parse_user(data: dict[str, Any]) -> UserProfile:
    """Convert a wire user into a UserProfile, accepting either key casing."""
    raw_id = data.get("Id", data.get("id"))
    return UserProfile(
        id=int(raw_id) if raw_id is not None else None,
        email=str(data.get("Email") or data.get("email") or ""),
        full_name=str(data.get("FullName") or data.get("fullName") or ""),
    )


def extract_error_detail(response: httpx.Response) -> str:
    """Pull a human-readable error out of an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:MAX_ERROR_DETAIL_LENGTH]

    if isinstance(body, str):
        return body[:MAX_ERROR_DETAIL_LENGTH]
    if isinstance(body, dict):
        for key in ("error", "Error", "message", "Message", "title", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value[:MAX_ERROR_DETAIL_LENGTH]
        errors = body.get("Errors") or body.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(str(e) for e in errors)[:MAX_ERROR_DETAIL_LENGTH]
    return response.text[:MAX_ERROR_DETAIL_LENGTH]


class SmartCallClient:
    """SmartCall backend adapter implementing TicketGateway and AuthGateway.

    Example:
        store = FileCredentialStore(config.storage.credentials_path)
        async with SmartCallClient(config.api, store, on_unauthorized=go_to_login) as api:
            ticket = await api.fetch_ticket(42)
            result = await api.send_message(42, "Ainda está lento")
    """

    def __init__(
        self,
        config: ApiConfig,
        store: CredentialStore,
        retry: RetryConfig | None = None,
        on_unauthorized: UnauthorizedCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Base URL and request timeout
            store: Where the bearer token lives
            retry: Retry policy for idempotent reads
            on_unauthorized: Invoked after a 401 has cleared the credentials
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        retry = retry or RetryConfig()
        self._config = config
        self._store = store
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={"Accept": "application/json"},
            auth=BearerTokenAuth(store),
            transport=transport,
        )
        self._read_retry = create_retry(
            max_attempts=retry.max_attempts,
            min_wait=retry.initial_delay,
            max_wait=retry.max_delay,
        )

    async def __aenter__(self) -> SmartCallClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # TicketGateway
    # -------------------------------------------------------------------------

    async def fetch_ticket(self, ticket_id: int) -> Ticket:
        data = await self._read(f"/chamados/{ticket_id}")
        return parse_ticket(self._expect_dict(data, "ticket"))

    async def fetch_new_messages(self, ticket_id: int, after_id: int) -> MessageBatch:
        data = await self._read(
            f"/chamados/{ticket_id}/mensagens/novas",
            params={"afterId": after_id},
        )
        if not data:
            return MessageBatch()
        if not isinstance(data, list):
            raise GatewayError("Expected a list of messages")
        messages, highest_id = parse_message_list(data)
        # Guard the watermark contract even if the backend is sloppy
        return MessageBatch(
            messages=tuple(sorted((m for m in messages if m.id > after_id), key=lambda m: m.id)),
            highest_id=highest_id,
        )

    async def send_message(self, ticket_id: int, text: str) -> SendResult:
        data = self._expect_dict(
            await self._request("POST", f"/chamados/{ticket_id}/mensagens", json={"Message": text}),
            "send result",
        )
        user_data = data.get("UserMessage")
        if not isinstance(user_data, dict):
            raise GatewayError("Send result carries no user message")
        bot_data = data.get("BotMessage")
        return SendResult(
            user_message=parse_message(user_data),
            bot_message=parse_message(bot_data) if isinstance(bot_data, dict) else None,
        )

    async def set_status(self, ticket_id: int, status: TicketStatus) -> None:
        # The endpoint takes a bare JSON string
        await self._request("PATCH", f"/chamados/{ticket_id}/status", json=status.label)

    async def escalate(self, ticket_id: int) -> Ticket:
        data = await self._request("POST", f"/chamados/{ticket_id}/escalar")
        if isinstance(data, dict) and "Id" in data and "Status" in data:
            return parse_ticket(data)
        return await self.fetch_ticket(ticket_id)

    async def create_ticket(self, initial_message: str) -> Ticket:
        data = await self._request("POST", "/chamados", json={"MensagemInicial": initial_message})
        return parse_ticket(self._expect_dict(data, "ticket"))

    async def list_tickets(self) -> list[Ticket]:
        data = await self._read("/chamados")
        if not data:
            return []
        if not isinstance(data, list):
            raise GatewayError("Expected a list of tickets")
        return [parse_ticket(t) for t in data]

    # -------------------------------------------------------------------------
    # AuthGateway
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthSession:
        data = self._expect_dict(
            await self._request("POST", "/auth/login", json={"Email": email, "Password": password}),
            "login result",
        )
        token = data.get("Token") or data.get("token")
        if not token:
            raise GatewayError("Login response carries no token")
        user_data = data.get("User") or data.get("user") or {"Email": email}
        return AuthSession(token=str(token), user=parse_user(user_data))

    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str = "",
    ) -> UserProfile:
        data = await self._request(
            "POST",
            "/auth/register",
            json={
                "Email": email,
                "Password": password,
                "ConfirmPassword": confirm_password,
                "FullName": full_name,
            },
        )
        if isinstance(data, dict):
            user_data = data.get("User") or data.get("user") or data
            profile = parse_user(user_data)
            if profile.email:
                return profile
        return UserProfile(id=None, email=email, full_name=full_name)

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    @staticmethod
    def _expect_dict(data: Any, what: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise GatewayError(f"Expected a {what} object")
        return data

    async def _read(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET with retries on transient transport failures."""
        return await self._request("GET", path, params=params, retry=True)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry: bool = False,
    ) -> Any:
        send = self._read_retry(self._send) if retry else self._send
        start_time = time.monotonic()
        try:
            response = await send(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            log.warning("api_error", method=method, path=path, error_type="timeout")
            raise TransportError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            log.warning("api_error", method=method, path=path, error=str(e))
            raise TransportError(f"{method} {path} failed: {e}") from e

        log.debug(
            "api_request",
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        await self._raise_for_status(method, path, response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"{method} {path} returned invalid JSON") from e

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if json is None:
            return await self._client.request(method, path, params=params)
        return await self._client.request(method, path, json=json, params=params)

    async def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        detail = extract_error_detail(response)
        log.warning("api_error", method=method, path=path, status=status, detail=detail)

        if status == 401:
            await self._invalidate_session()
            raise AuthenticationError("Session expired or invalid", status_code=401, detail=detail)
        if status == 404:
            raise NotFoundError(f"{method} {path} not found", status_code=404, detail=detail)
        if status in BUSINESS_RULE_STATUSES and any(
            marker in detail.lower() for marker in CLOSED_TICKET_MARKERS
        ):
            raise TicketClosedError(detail or "Ticket is closed", status_code=status, detail=detail)
        raise GatewayError(
            f"{method} {path} failed with HTTP {status}",
            status_code=status,
            detail=detail,
        )

    async def _invalidate_session(self) -> None:
        self._store.delete(TOKEN_KEY)
        self._store.delete(USER_KEY)
        log.warning("auth_session_invalidated")

        if self._on_unauthorized is None:
            return
        try:
            result = self._on_unauthorized()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.error("unauthorized_callback_failed", error=str(e))
