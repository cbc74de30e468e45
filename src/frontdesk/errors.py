"""Exceptions raised inside the dispatch core.

None of these escape a tool handler: each one is turned into a failed
response envelope for the call that raised it.
"""

from __future__ import annotations

# Fixed message for a patient-scoped call with neither an explicit id nor
# a remembered one in the session context.
NO_IDENTIFIER_MESSAGE = "no identifier available"


class DispatchError(Exception):
    """Base class for errors raised while serving a tool call."""


class AuthError(DispatchError):
    """Raised when a bearer credential cannot be acquired."""


class UpstreamError(DispatchError):
    """Raised when a request to the resource API cannot complete."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Request to {url} failed: {detail}")


class ValidationError(DispatchError):
    """Raised when a call's arguments are missing or unusable."""
