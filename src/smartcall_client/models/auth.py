"""Data models for authentication."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserProfile:
    """The signed-in user."""

    id: int | None
    email: str
    full_name: str = ""


@dataclass(frozen=True)
class AuthSession:
    """Result of a successful login."""

    token: str
    user: UserProfile
