"""Routes a batch of tool calls to their handlers.

Selection rules:
1. A call whose name is not a registered operation is dropped (logged,
   no envelope). One bad name does not fail the rest of the batch.
2. Per operation, only the first call in the batch is served. Later calls
   for the same operation are dropped the same way.

Scheduling:
    Handlers that write the session context (search_record) run first and
    are awaited before anything else in the batch starts. The remaining
    calls then run concurrently. A batch of "search_record" plus
    "search_observation" without a patientId therefore always sees the
    patient the search just found.

Envelopes come back in batch order, one per served call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from frontdesk.context import SessionContext
from frontdesk.fhir_client import FHIRClient
from frontdesk.protocol import Operation, ResponseEnvelope, ToolCallBatch, ToolCallRequest
from frontdesk.tools import ToolHandler, build_handlers

logger = logging.getLogger(__name__)


class ToolCallRouter:
    """Maps operations to handlers and serves batches of calls."""

    def __init__(self, handlers: Iterable[ToolHandler]) -> None:
        self._handlers: dict[Operation, ToolHandler] = {}
        for handler in handlers:
            if handler.operation in self._handlers:
                raise ValueError(f"Handler already registered: {handler.name}")
            self._handlers[handler.operation] = handler

        missing = [op.value for op in Operation if op not in self._handlers]
        if missing:
            logger.info("Router has no handler for: %s", ", ".join(missing))

    @classmethod
    def default(cls, fhir: FHIRClient) -> ToolCallRouter:
        """A router with a handler for every operation."""
        return cls(build_handlers(fhir))

    @property
    def handlers(self) -> list[ToolHandler]:
        return list(self._handlers.values())

    def select(self, batch: ToolCallBatch) -> list[tuple[ToolCallRequest, ToolHandler]]:
        """Pick the calls that will be served, in batch order."""
        selected: dict[Operation, tuple[ToolCallRequest, ToolHandler]] = {}
        for request in batch.function_calls:
            operation = Operation.lookup(request.name)
            handler = self._handlers.get(operation) if operation else None
            if handler is None:
                logger.warning(
                    "Dropping call %s: no handler for %r", request.id, request.name
                )
                continue
            if operation in selected:
                logger.warning(
                    "Dropping call %s: %s already served by call %s in this batch",
                    request.id,
                    request.name,
                    selected[operation][0].id,
                )
                continue
            selected[operation] = (request, handler)
        return list(selected.values())

    async def dispatch(
        self, batch: ToolCallBatch, session: SessionContext
    ) -> list[ResponseEnvelope]:
        """Serve a batch and return one envelope per served call."""
        selected = self.select(batch)
        if not selected:
            return []
        logger.info(
            "Dispatching %s for session %s",
            ", ".join(f"{r.name}({r.id})" for r, _ in selected),
            session.session_id,
        )

        envelopes: list[ResponseEnvelope | None] = [None] * len(selected)

        for index, (request, handler) in enumerate(selected):
            if handler.updates_context:
                envelopes[index] = await handler.handle(request, session)

        pending = [
            (index, request, handler)
            for index, (request, handler) in enumerate(selected)
            if not handler.updates_context
        ]
        results = await asyncio.gather(
            *(handler.handle(request, session) for _, request, handler in pending)
        )
        for (index, _, _), envelope in zip(pending, results):
            envelopes[index] = envelope

        return [envelope for envelope in envelopes if envelope is not None]
