"""HTTP client for a FHIR R4 clinical-records API.

This module provides the FHIRClient class, which handles:
1. Fetching a bearer credential for every request
2. Building search, read and create requests against versioned resource paths
3. Turning each HTTP exchange into a FHIRResponse (status + parsed body)

Unlike a typical REST wrapper, a non-2xx status is NOT raised here. The
status is part of the result the agent sees, so it is handed back to the
caller unchanged. Only failures where no response arrived at all (DNS,
connection reset, timeout) raise UpstreamError.

Usage:
    client = FHIRClient(tokens=TokenProvider(http), http=http)
    response = await client.search("Patient", {"family": "Lopez"})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from frontdesk.config import FHIR_BASE_URL
from frontdesk.credentials import TokenProvider
from frontdesk.errors import UpstreamError

logger = logging.getLogger(__name__)

# Reads ask for FHIR JSON; writes declare it as the body's content type.
FHIR_JSON = "application/fhir+json"


@dataclass(frozen=True)
class FHIRResponse:
    """The outcome of one resource API call.

    Attributes:
        status_code: HTTP status returned by the server.
        data: Parsed JSON body, or None when the body was empty or not JSON.
        location: The Location header (set on 201 Created), if any.
        reason: The HTTP reason phrase.
    """

    status_code: int
    data: Any = None
    location: str | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def parse_or_null(response: httpx.Response) -> Any:
    """Return the response's JSON body, or None if there isn't one.

    Create calls often answer 201 with an empty body, and error pages are
    frequently HTML, so a parse failure is expected and only logged.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        logger.warning(
            "No JSON body in %s %s (HTTP %d): %s",
            response.request.method,
            response.request.url,
            response.status_code,
            exc,
        )
        return None


class FHIRClient:
    """Async client for FHIR search/read/create calls.

    Attributes:
        base_url: Versioned API root, e.g. ".../api/FHIR/R4".
    """

    def __init__(
        self,
        tokens: TokenProvider,
        http: httpx.AsyncClient,
        base_url: str = FHIR_BASE_URL,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._tokens = tokens
        self._http = http

    async def search(self, resource_type: str, params: dict[str, str]) -> FHIRResponse:
        """Search a resource type, e.g. GET /Patient?family=Lopez.

        Args:
            resource_type: FHIR resource name ("Patient", "Observation", ...).
            params: Query parameters. Callers leave out absent values.
        """
        return await self._request("GET", f"/{resource_type}", params=params)

    async def read(self, resource_type: str, resource_id: str) -> FHIRResponse:
        """Read one resource by id, e.g. GET /Medication/{id}."""
        return await self._request("GET", f"/{resource_type}/{resource_id}")

    async def create(self, resource_type: str, document: dict[str, Any]) -> FHIRResponse:
        """Create a resource, e.g. POST /Patient with a Patient document."""
        return await self._request("POST", f"/{resource_type}", document=document)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        document: dict[str, Any] | None = None,
    ) -> FHIRResponse:
        """Send one authenticated request.

        A credential is acquired for every request; nothing is reused
        between calls.

        Raises:
            AuthError: If the credential cannot be acquired.
            UpstreamError: If the request does not complete.
        """
        credential = await self._tokens.acquire()

        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": credential.header,
            "Accept": FHIR_JSON,
        }
        if document is not None:
            headers["Content-Type"] = FHIR_JSON

        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                params=params,
                json=document,
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(url, str(exc) or type(exc).__name__) from exc

        logger.info("%s %s -> HTTP %d", method, url, response.status_code)
        location = response.headers.get("location")
        if response.status_code == 201:
            logger.info("Created %s at %s", path.lstrip("/"), location or "(no location)")

        return FHIRResponse(
            status_code=response.status_code,
            data=parse_or_null(response),
            location=location,
            reason=response.reason_phrase,
        )
