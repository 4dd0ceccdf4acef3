"""Sign-in, registration and sign-out.

The auth token is the only credential the client keeps. It is written at
login, read once when a front end starts, and cleared at logout or when the
backend rejects it (see SmartCallClient's 401 handling).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import structlog

from ..interfaces.storage import TOKEN_KEY, USER_KEY
from ..models.auth import AuthSession, UserProfile
from ..utils.async_helpers import InputValidationError

if TYPE_CHECKING:
    from ..interfaces.gateway import AuthGateway
    from ..interfaces.storage import CredentialStore

log = structlog.get_logger()


class AuthService:
    """Coordinates the auth gateway with the local credential store."""

    def __init__(self, gateway: AuthGateway, store: CredentialStore) -> None:
        self._gateway = gateway
        self._store = store

    def current_token(self) -> str | None:
        return self._store.get(TOKEN_KEY)

    def is_authenticated(self) -> bool:
        return bool(self.current_token())

    def current_user(self) -> UserProfile | None:
        """Return the stored profile, or None if absent or unreadable."""
        raw = self._store.get(USER_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return UserProfile(
                id=data.get("id"),
                email=data["email"],
                full_name=data.get("full_name", ""),
            )
        except (ValueError, KeyError, TypeError, AttributeError):
            log.warning("stored_user_unreadable")
            return None

    async def login(self, email: str, password: str) -> AuthSession:
        """Sign in and persist the token.

        Raises:
            InputValidationError: If email or password is empty
            GatewayError: If the backend rejects the credentials
        """
        email = email.strip()
        if not email or not password:
            raise InputValidationError("Email and password are required")

        session = await self._gateway.login(email, password)
        self._store.set(TOKEN_KEY, session.token)
        self._store.set(
            USER_KEY,
            json.dumps(
                {
                    "id": session.user.id,
                    "email": session.user.email,
                    "full_name": session.user.full_name,
                }
            ),
        )
        log.info("login_succeeded", user_id=session.user.id)
        return session

    async def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str = "",
    ) -> UserProfile:
        """Create an account. Does not sign in.

        Raises:
            InputValidationError: If a field is missing or passwords differ
            GatewayError: If the backend refuses the registration
        """
        email = email.strip()
        if not email or not password:
            raise InputValidationError("Email and password are required")
        if password != confirm_password:
            raise InputValidationError("Passwords do not match")

        return await self._gateway.register(email, password, confirm_password, full_name.strip())

    async def logout(self) -> None:
        """Sign out remotely if possible; local credentials are always cleared."""
        try:
            await self._gateway.logout()
        except Exception as e:
            log.warning("logout_remote_failed", error=str(e))
        finally:
            self.clear()

    def clear(self) -> None:
        """Forget the stored token and profile."""
        self._store.delete(TOKEN_KEY)
        self._store.delete(USER_KEY)
