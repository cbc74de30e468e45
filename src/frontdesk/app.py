"""FastAPI server — the HTTP entry point for tool calls.

Agents that cannot hold an event connection to the core post their
tool-call batches here instead. Endpoints:

- GET  /agent/health    — Simple check that the server is running
- GET  /agent/tools     — Function declarations for every tool
- POST /agent/toolcall  — Serve a batch of tool calls, get envelopes back

Each batch belongs to a session. The session remembers the patient found
by the last search_record call so follow-up calls may omit patientId.

Run locally with:
    uvicorn frontdesk.app:app --reload
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.config import FHIR_SSL_VERIFY, HTTP_TIMEOUT, LOG_LEVEL
from frontdesk.context import SessionStore
from frontdesk.credentials import TokenProvider
from frontdesk.declarations import tool_declarations
from frontdesk.fhir_client import FHIRClient
from frontdesk.protocol import ToolCallBatch
from frontdesk.router import ToolCallRouter

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class ToolCallPayload(BaseModel):
    """What the client sends to the /agent/toolcall endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    # Entries are validated one by one when the batch is built, so a single
    # malformed call does not reject the whole request.
    function_calls: list[Any] = Field(alias="functionCalls")
    session_id: str | None = None  # Optional: continue an existing session


class ToolResponsePayload(BaseModel):
    """What the /agent/toolcall endpoint sends back."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str
    function_responses: list[dict[str, Any]] = Field(alias="functionResponses")


def create_app(http_client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the app.

    Args:
        http_client: Client used for token and FHIR calls. When omitted one
            is created at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        http = http_client or httpx.AsyncClient(
            verify=FHIR_SSL_VERIFY,
            timeout=httpx.Timeout(HTTP_TIMEOUT),
        )
        fhir = FHIRClient(tokens=TokenProvider(http), http=http)
        app.state.router = ToolCallRouter.default(fhir)
        app.state.sessions = SessionStore()
        try:
            yield
        finally:
            if http_client is None:
                await http.aclose()

    app = FastAPI(
        title="Front Desk Tool-Call Core",
        description="Serves a front-office agent's tool calls against a FHIR API",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/agent/health")
    async def health() -> dict[str, str]:
        """Health check endpoint. Returns 200 if the server is running."""
        return {"status": "ok"}

    @app.get("/agent/tools")
    async def tools(request: Request) -> dict[str, Any]:
        """Function declarations to hand to the agent's model."""
        return {"functionDeclarations": tool_declarations(request.app.state.router)}

    @app.post("/agent/toolcall", response_model=ToolResponsePayload)
    async def toolcall(payload: ToolCallPayload, request: Request) -> ToolResponsePayload:
        """Serve a batch of tool calls.

        Include a session_id to continue a previous session. If omitted,
        a new session is created and its ID is returned in the response.
        """
        session = request.app.state.sessions.get_or_create(payload.session_id)
        batch = ToolCallBatch.model_validate({"functionCalls": payload.function_calls})
        envelopes = await request.app.state.router.dispatch(batch, session)
        return ToolResponsePayload(
            session_id=session.session_id,
            function_responses=[envelope.to_wire() for envelope in envelopes],
        )

    return app


app = create_app()
