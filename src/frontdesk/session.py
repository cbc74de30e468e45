"""Binds the dispatch core to a live agent connection.

The agent connection is event based: it fires a "toolcall" event with a
batch of function calls and accepts tool responses back. A ToolCallSession
listens for that event while it is attached, serves each batch through the
router and emits the envelopes through the correlator.

Usage:
    async with ToolCallSession(channel, router) as session:
        ...  # batches arriving on the channel are served
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import pydantic

from frontdesk.context import SessionContext
from frontdesk.correlator import ResponseCorrelator
from frontdesk.protocol import ResponseEnvelope, ToolCallBatch
from frontdesk.router import ToolCallRouter

logger = logging.getLogger(__name__)

TOOLCALL_EVENT = "toolcall"

BatchListener = Callable[[Any], Awaitable[None]]


class AgentChannel(Protocol):
    """The agent-facing connection, as far as the core needs it."""

    def on(self, event: str, listener: BatchListener) -> None: ...

    def off(self, event: str, listener: BatchListener) -> None: ...

    async def send_tool_response(self, payload: dict[str, Any]) -> None: ...


class ToolCallSession:
    """Serves tool-call batches from one agent connection.

    Attributes:
        context: The session's remembered patient. Pass one in to share or
            inspect it; otherwise a fresh, empty context is created.
    """

    def __init__(
        self,
        channel: AgentChannel,
        router: ToolCallRouter,
        context: SessionContext | None = None,
    ) -> None:
        self.context = context or SessionContext()
        self._channel = channel
        self._router = router
        self._correlator = ResponseCorrelator(channel)
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        """Start listening for tool-call batches."""
        if self._attached:
            return
        self._channel.on(TOOLCALL_EVENT, self.on_tool_call)
        self._attached = True
        logger.info("Session %s attached", self.context.session_id)

    def detach(self) -> None:
        """Stop listening. Calls already in flight still complete."""
        if not self._attached:
            return
        self._channel.off(TOOLCALL_EVENT, self.on_tool_call)
        self._attached = False
        logger.info("Session %s detached", self.context.session_id)

    async def __aenter__(self) -> ToolCallSession:
        self.attach()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.detach()

    async def on_tool_call(self, batch: ToolCallBatch | dict[str, Any]) -> None:
        """Serve one batch and send its envelopes back to the agent."""
        envelopes = await self.serve(batch)
        await self._correlator.emit(envelopes)

    async def serve(self, batch: ToolCallBatch | dict[str, Any]) -> list[ResponseEnvelope]:
        """Dispatch one batch. Malformed calls inside it are dropped."""
        if not isinstance(batch, ToolCallBatch):
            try:
                batch = ToolCallBatch.model_validate(batch)
            except pydantic.ValidationError as exc:
                logger.warning(
                    "Session %s: ignoring unreadable tool-call batch: %s",
                    self.context.session_id,
                    exc,
                )
                return []
        return await self._router.dispatch(batch, self.context)
