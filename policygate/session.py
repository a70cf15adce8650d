"""
Authentication session handed to authorizers.

The authentication subsystem establishes the session before any authorizer runs.
Authorizers receive it alongside the request.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class MatchContext:
    """
    Details of the access rule that matched the request.

    Attributes:
        regexp_capture_groups: Capture groups of the matched URL pattern
        url: Full URL of the matched request
    """
    regexp_capture_groups: list[str] = field(default_factory=list)
    url: str = ""


@dataclass
class AuthenticationSession:
    """
    Result of authenticating a request.

    Attributes:
        subject: Authenticated subject (user or client identifier)
        extra: Additional claims provided by the authenticator
        header: Headers the authenticator wants forwarded upstream
        match_context: Rule match details
    """
    subject: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    header: dict[str, str] = field(default_factory=dict)
    match_context: MatchContext = field(default_factory=MatchContext)

    @classmethod
    def anonymous(cls, metadata: Optional[dict[str, Any]] = None) -> "AuthenticationSession":
        """Create a session for an unauthenticated request."""
        return cls(subject="", extra=metadata or {})
