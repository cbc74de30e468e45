"""Tests for the FHIR API client.

One MockTransport answers both the token endpoint and the FHIR server,
routing on the request URL.
"""

import json

import httpx
import pytest

from frontdesk.credentials import TokenProvider
from frontdesk.errors import AuthError, UpstreamError
from frontdesk.fhir_client import FHIRClient

BASE_URL = "https://fhir.example.org/api/FHIR/R4"
TOKEN_URL = "http://localhost:8080/getToken"


def _make_client(fhir_handler) -> FHIRClient:  # type: ignore[no-untyped-def]
    """Client whose token endpoint always succeeds and whose FHIR calls
    go to fhir_handler."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            return httpx.Response(200, json={"access_token": "test-access-token"})
        return await fhir_handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FHIRClient(TokenProvider(http, token_url=TOKEN_URL), http, base_url=BASE_URL)


class TestRequests:
    @pytest.mark.asyncio
    async def test_search_sends_bearer_and_fhir_accept(self) -> None:
        captured: list[httpx.Request] = []

        async def fhir(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"resourceType": "Bundle", "total": 0})

        client = _make_client(fhir)
        response = await client.search("Patient", {"family": "Lopez"})

        assert response.ok
        assert response.data == {"resourceType": "Bundle", "total": 0}
        request = captured[0]
        assert request.url.path == "/api/FHIR/R4/Patient"
        assert request.url.params["family"] == "Lopez"
        assert request.headers["authorization"] == "Bearer test-access-token"
        assert request.headers["accept"] == "application/fhir+json"

    @pytest.mark.asyncio
    async def test_read_uses_resource_path(self) -> None:
        captured: list[str] = []

        async def fhir(request: httpx.Request) -> httpx.Response:
            captured.append(request.url.path)
            return httpx.Response(200, json={"resourceType": "Medication", "id": "m1"})

        response = await _make_client(fhir).read("Medication", "m1")

        assert captured == ["/api/FHIR/R4/Medication/m1"]
        assert response.data["id"] == "m1"

    @pytest.mark.asyncio
    async def test_create_posts_fhir_json(self) -> None:
        captured: list[httpx.Request] = []

        async def fhir(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                201, headers={"Location": f"{BASE_URL}/Patient/new-id/_history/1"}
            )

        response = await _make_client(fhir).create("Patient", {"resourceType": "Patient"})

        request = captured[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/fhir+json"
        assert json.loads(request.content) == {"resourceType": "Patient"}
        assert response.status_code == 201
        assert response.ok
        assert response.data is None
        assert response.location.endswith("/Patient/new-id/_history/1")


class TestResponseHandling:
    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self) -> None:
        async def fhir(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"resourceType": "OperationOutcome"})

        response = await _make_client(fhir).read("Medication", "missing")

        assert response.status_code == 404
        assert not response.ok
        assert response.data == {"resourceType": "OperationOutcome"}

    @pytest.mark.asyncio
    async def test_unparseable_body_becomes_none(self) -> None:
        async def fhir(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        response = await _make_client(fhir).search("Goal", {"patient": "p1"})

        assert response.ok
        assert response.data is None

    @pytest.mark.asyncio
    async def test_network_failure_raises_upstream_error(self) -> None:
        async def fhir(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UpstreamError, match="timed out"):
            await _make_client(fhir).search("Goal", {"patient": "p1"})

    @pytest.mark.asyncio
    async def test_token_failure_skips_resource_call(self) -> None:
        fhir_calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == TOKEN_URL:
                return httpx.Response(500, text="token service down")
            fhir_calls.append(str(request.url))
            return httpx.Response(200, json={})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = FHIRClient(TokenProvider(http, token_url=TOKEN_URL), http, base_url=BASE_URL)

        with pytest.raises(AuthError, match="token service down"):
            await client.search("Patient", {})
        assert fhir_calls == []
