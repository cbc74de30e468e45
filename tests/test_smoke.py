"""Smoke tests — verify the package is wired up correctly.

These tests ensure that:
1. All modules can be imported without errors
2. Configuration loads with default values
3. The FastAPI app starts and serves its endpoints
"""

import httpx
from fastapi.testclient import TestClient

TOKEN_URL = "http://localhost:8080/getToken"


def test_imports() -> None:
    """Verify all modules can be imported without crashing."""
    import frontdesk  # noqa: F401
    import frontdesk.app  # noqa: F401
    import frontdesk.config  # noqa: F401
    import frontdesk.context  # noqa: F401
    import frontdesk.correlator  # noqa: F401
    import frontdesk.credentials  # noqa: F401
    import frontdesk.declarations  # noqa: F401
    import frontdesk.fhir_client  # noqa: F401
    import frontdesk.protocol  # noqa: F401
    import frontdesk.router  # noqa: F401
    import frontdesk.session  # noqa: F401
    import frontdesk.tools  # noqa: F401
    import frontdesk.tools.clinical  # noqa: F401
    import frontdesk.tools.patient  # noqa: F401
    import frontdesk.tools.scheduling  # noqa: F401


def test_config_defaults() -> None:
    """Config should load with sensible defaults even without a .env file."""
    from frontdesk.config import FHIR_BASE_URL, HTTP_TIMEOUT, TOKEN_URL as DEFAULT_TOKEN_URL

    assert FHIR_BASE_URL.endswith("/api/FHIR/R4")
    assert DEFAULT_TOKEN_URL == TOKEN_URL
    assert HTTP_TIMEOUT > 0


def _fake_upstream() -> httpx.AsyncClient:
    async def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            return httpx.Response(200, json={"access_token": "tok"})
        if request.url.path.endswith("/Patient"):
            return httpx.Response(
                200,
                json={
                    "resourceType": "Bundle",
                    "entry": [{"resource": {"resourceType": "Patient", "id": "pat-1"}}],
                },
            )
        return httpx.Response(200, json={"resourceType": "Bundle", "entry": []})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_health_endpoint() -> None:
    """The /agent/health endpoint should return 200 OK."""
    from frontdesk.app import create_app

    with TestClient(create_app(_fake_upstream())) as client:
        response = client.get("/agent/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_tools_endpoint_lists_declarations() -> None:
    from frontdesk.app import create_app

    with TestClient(create_app(_fake_upstream())) as client:
        response = client.get("/agent/tools")

    declarations = {d["name"]: d for d in response.json()["functionDeclarations"]}
    assert "search_record" in declarations
    assert "book_appointment" in declarations
    create = declarations["create_record"]["parameters"]
    assert set(create["required"]) == {"givenName", "familyName", "telecom", "gender"}
    assert "title" not in create
    assert declarations["search_observation"]["parameters"]["required"] == []


def test_toolcall_endpoint_keeps_session_context() -> None:
    """A search in one request feeds a follow-up in the same session."""
    from frontdesk.app import create_app

    with TestClient(create_app(_fake_upstream())) as client:
        first = client.post(
            "/agent/toolcall",
            json={"functionCalls": [{"name": "search_record", "id": "1", "args": {}}]},
        )
        session_id = first.json()["session_id"]

        follow_up = client.post(
            "/agent/toolcall",
            json={
                "session_id": session_id,
                "functionCalls": [{"name": "search_goal", "id": "2", "args": {}}],
            },
        )
        fresh = client.post(
            "/agent/toolcall",
            json={"functionCalls": [{"name": "search_goal", "id": "3", "args": {}}]},
        )

    assert first.status_code == 200
    assert follow_up.json()["session_id"] == session_id
    output = follow_up.json()["functionResponses"][0]["response"]["output"]
    assert output["success"] is True
    fresh_output = fresh.json()["functionResponses"][0]["response"]["output"]
    assert fresh_output == {"success": False, "error": "no identifier available"}


def test_toolcall_endpoint_serves_well_formed_calls_next_to_malformed_ones() -> None:
    from frontdesk.app import create_app

    with TestClient(create_app(_fake_upstream())) as client:
        response = client.post(
            "/agent/toolcall",
            json={
                "functionCalls": [
                    {"name": "get_schedule", "id": "ok-1", "args": {}},
                    {"name": "googleSearch", "id": "x", "args": None},
                    {"name": "search_goal", "id": 42, "args": {}},
                ]
            },
        )

    assert response.status_code == 200
    responses = response.json()["functionResponses"]
    assert [r["id"] for r in responses] == ["ok-1"]
    assert responses[0]["response"]["output"]["success"] is True
