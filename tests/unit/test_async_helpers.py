"""Tests for async utility functions and the error taxonomy."""

from __future__ import annotations

import httpx
import pytest

from smartcall_client.utils.async_helpers import (
    AuthenticationError,
    CancellationToken,
    ClientError,
    GatewayError,
    InputValidationError,
    NotFoundError,
    TicketClosedError,
    TransportError,
    create_retry,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_gateway_error_attributes(self) -> None:
        error = GatewayError("failed", status_code=400, detail="Chamado resolvido")
        assert str(error) == "failed"
        assert error.status_code == 400
        assert error.detail == "Chamado resolvido"

    def test_gateway_error_defaults(self) -> None:
        error = GatewayError("failed")
        assert error.status_code is None
        assert error.detail == ""

    @pytest.mark.parametrize("cls", [AuthenticationError, NotFoundError, TicketClosedError])
    def test_gateway_subclasses(self, cls: type[GatewayError]) -> None:
        assert isinstance(cls("x"), GatewayError)
        assert isinstance(cls("x"), ClientError)

    @pytest.mark.parametrize("cls", [TransportError, InputValidationError])
    def test_client_errors(self, cls: type[ClientError]) -> None:
        error = cls("x")
        assert isinstance(error, ClientError)
        assert not isinstance(error, GatewayError)


class TestCreateRetry:
    """Test the retry decorator factory."""

    async def test_retries_network_errors(self) -> None:
        attempts = 0

        @create_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise httpx.ConnectError("refused")
            return "ok"

        assert await flaky() == "ok"
        assert attempts == 3

    async def test_reraises_after_max_attempts(self) -> None:
        attempts = 0

        @create_retry(max_attempts=2, min_wait=0, max_wait=0)
        async def down() -> None:
            nonlocal attempts
            attempts += 1
            raise httpx.ReadTimeout("slow")

        with pytest.raises(httpx.ReadTimeout):
            await down()
        assert attempts == 2

    async def test_does_not_retry_other_errors(self) -> None:
        attempts = 0

        @create_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def broken() -> None:
            nonlocal attempts
            attempts += 1
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await broken()
        assert attempts == 1


class TestCancellationToken:
    """Test the cooperative cancellation token."""

    def test_initial_state(self) -> None:
        assert not CancellationToken().is_cancelled

    def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled

    def test_cancel_is_idempotent(self) -> None:
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.is_cancelled
