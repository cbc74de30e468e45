"""Turns handler outcomes into response envelopes and sends them back.

An envelope's `success` mirrors the HTTP outcome of the upstream call, not
whether dispatch worked: a 404 from the resource API is a delivered,
unsuccessful answer. A body that could not be parsed is already None by
the time it gets here and does not change `success`.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from frontdesk.fhir_client import FHIRResponse
from frontdesk.protocol import ResponseEnvelope, ToolOutput, tool_response_payload

logger = logging.getLogger(__name__)


class ToolResponseSender(Protocol):
    async def send_tool_response(self, payload: dict[str, Any]) -> None: ...


def _outcome_detail(data: Any) -> str | None:
    """Pull a human-readable message out of an OperationOutcome body."""
    if not isinstance(data, dict) or data.get("resourceType") != "OperationOutcome":
        return None
    for issue in data.get("issue") or []:
        if not isinstance(issue, dict):
            continue
        details = issue.get("details") or {}
        text = issue.get("diagnostics") or details.get("text")
        if text:
            return str(text)
    return None


def envelope_from_response(correlation_id: str, response: FHIRResponse) -> ResponseEnvelope:
    """Wrap an upstream HTTP result."""
    if response.ok:
        output = ToolOutput(success=True, data=response.data)
    else:
        detail = _outcome_detail(response.data) or response.reason or "request failed"
        output = ToolOutput(success=False, error=f"HTTP {response.status_code}: {detail}")
    return ResponseEnvelope(id=correlation_id, output=output)


def envelope_from_data(correlation_id: str, data: Any) -> ResponseEnvelope:
    """Wrap a result computed in-process (no upstream call)."""
    return ResponseEnvelope(id=correlation_id, output=ToolOutput(success=True, data=data))


def envelope_from_error(correlation_id: str, error: Exception | str) -> ResponseEnvelope:
    """Wrap a failure caught while serving a call."""
    return ResponseEnvelope(
        id=correlation_id, output=ToolOutput(success=False, error=str(error))
    )


class ResponseCorrelator:
    """Emits envelopes on the agent-facing channel."""

    def __init__(self, sender: ToolResponseSender) -> None:
        self._sender = sender

    async def emit(self, envelopes: list[ResponseEnvelope]) -> None:
        """Send all envelopes of a batch as one tool response."""
        if not envelopes:
            return
        failed = sum(1 for e in envelopes if not e.output.success)
        logger.info("Sending %d tool response(s) (%d failed)", len(envelopes), failed)
        await self._sender.send_tool_response(tool_response_payload(envelopes))
