"""Bearer credential acquisition for the FHIR API.

The OAuth2 exchange itself happens in a small local token service; this
module only asks that service for a fresh access token. Tokens are fetched
on demand, once per API call, and never cached here.

Usage:
    tokens = TokenProvider(http=httpx.AsyncClient())
    credential = await tokens.acquire()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from frontdesk.config import TOKEN_URL
from frontdesk.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """A short-lived bearer token. Expiry is not tracked."""

    token: str

    @property
    def header(self) -> str:
        return f"Bearer {self.token}"


class TokenProvider:
    """Fetches access tokens from the local token endpoint.

    Attributes:
        token_url: The endpoint that answers GET with {"access_token": ...}.
    """

    def __init__(self, http: httpx.AsyncClient, token_url: str = TOKEN_URL) -> None:
        self.token_url = token_url
        self._http = http

    async def acquire(self) -> Credential:
        """Fetch a new access token.

        No retry is attempted; callers decide what a failure means.

        Returns:
            The credential to send with the next API request.

        Raises:
            AuthError: If the endpoint is unreachable, answers with a
                non-success status, or returns no access token.
        """
        try:
            response = await self._http.get(self.token_url)
        except httpx.HTTPError as exc:
            raise AuthError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            raise AuthError(f"Token fetch error: {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AuthError(f"Token response is not JSON: {response.text}") from exc
        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("Token response did not include an access_token")

        logger.debug("Token acquired from %s", self.token_url)
        return Credential(token=token)
