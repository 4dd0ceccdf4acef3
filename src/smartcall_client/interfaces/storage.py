"""Abstract interface for local credential storage."""

from typing import Protocol

TOKEN_KEY = "token"
USER_KEY = "user"


class CredentialStore(Protocol):
    """Key/value storage for the auth token and the signed-in user.

    Values are opaque strings; the user profile is stored as JSON text.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove a value. Removing a missing key is not an error."""
        ...
