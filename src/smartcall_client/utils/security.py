"""Secret redaction for log output.

The client handles exactly two kinds of secret: the bearer token issued at
login and the passwords typed at login or registration. Both can surface in
log entries (request bodies, error details, exception text), so every entry
passes through SecretRedactor before rendering.

Redaction is fail-closed: a pattern that cannot be compiled or applied raises
instead of letting the text through unredacted.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

import structlog

log = structlog.get_logger()


class SecurityError(Exception):
    """Base exception for security-related errors."""


class RedactionError(SecurityError):
    """Raised when secret redaction fails."""


class SecretRedactor:
    """Replaces tokens and passwords in text with a placeholder.

    Patterns with a capture group keep group 1 (the field name) and replace
    only the value, so ``"Password": "x"`` becomes ``"Password": [REDACTED]``.

    Example:
        redactor = SecretRedactor()
        safe_detail = redactor.redact(error_detail)
    """

    DEFAULT_PATTERNS: tuple[tuple[str, str], ...] = (
        (r"(?i)bearer\s+[\w\-.~+/]+=*", "Bearer token"),
        # JWTs as issued by the helpdesk API
        (r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*", "JWT token"),
        (
            r"(?i)(\"?(?:password|confirmpassword|senha|token)\"?\s*[=:]\s*)\"?[^\s\",}]+\"?",
            "Credential field",
        ),
    )

    def __init__(
        self,
        placeholder: str = "[REDACTED]",
        custom_patterns: Sequence[tuple[str, str]] | None = None,
    ) -> None:
        """Compile the default patterns plus any custom ones.

        Args:
            placeholder: Replacement text for each secret
            custom_patterns: Extra (regex, name) pairs

        Raises:
            RedactionError: If a pattern does not compile
        """
        self.placeholder = placeholder
        self._compiled: list[tuple[re.Pattern[str], str]] = []

        for source, name in (*self.DEFAULT_PATTERNS, *(custom_patterns or ())):
            try:
                self._compiled.append((re.compile(source), name))
            except re.error as e:
                log.error("pattern_compilation_failed", pattern_name=name, error=str(e))
                raise RedactionError(f"Invalid secret pattern {name!r}: {e}") from e

    def redact(self, text: str) -> str:
        """Return text with every secret replaced.

        Raises:
            RedactionError: If a substitution fails
        """
        if not text:
            return text
        try:
            for pattern, _ in self._compiled:
                text = pattern.sub(self._replacement, text)
        except Exception as e:
            log.error("redaction_failed", error_type=type(e).__name__)
            raise RedactionError(f"Redaction failed: {e}") from e
        return text

    def _replacement(self, match: re.Match[str]) -> str:
        if match.re.groups:
            return f"{match.group(1)}{self.placeholder}"
        return self.placeholder
