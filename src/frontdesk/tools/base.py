"""Shared shape of a tool handler.

A handler serves exactly one Operation. Subclasses implement run(), which
returns either a FHIRResponse (for calls that went upstream) or plain data
(for answers computed in-process). handle() wraps run() so that every
outcome, including every failure, becomes exactly one envelope.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import pydantic

from frontdesk.context import SessionContext
from frontdesk.correlator import (
    envelope_from_data,
    envelope_from_error,
    envelope_from_response,
)
from frontdesk.errors import DispatchError
from frontdesk.fhir_client import FHIRResponse
from frontdesk.protocol import Operation, ResponseEnvelope, ToolArgs, ToolCallRequest

logger = logging.getLogger(__name__)


def _validation_message(exc: pydantic.ValidationError) -> str:
    """Summarize pydantic errors using the agent's argument names."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "args"
        problems.append(f"{field}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(problems)


class ToolHandler(ABC):
    """Base class for the handler of one operation.

    Class attributes:
        operation: The operation this handler serves.
        description: Shown to the agent in the function declaration.
        args_model: Pydantic model the call's args are validated against.
        updates_context: True if the handler writes the session context.
            The router runs these before the rest of a batch.
    """

    operation: ClassVar[Operation]
    description: ClassVar[str]
    args_model: ClassVar[type[ToolArgs]]
    updates_context: ClassVar[bool] = False

    @property
    def name(self) -> str:
        return self.operation.value

    @abstractmethod
    async def run(self, args: Any, session: SessionContext) -> FHIRResponse | Any:
        """Serve the call. May raise DispatchError."""

    async def handle(self, request: ToolCallRequest, session: SessionContext) -> ResponseEnvelope:
        """Serve one call and return its envelope. Never raises."""
        try:
            args = self.args_model.model_validate(request.args)
            outcome = await self.run(args, session)
        except pydantic.ValidationError as exc:
            envelope = envelope_from_error(request.id, _validation_message(exc))
        except DispatchError as exc:
            envelope = envelope_from_error(request.id, exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error serving %s (%s)", self.name, request.id)
            envelope = envelope_from_error(request.id, f"Unexpected error: {exc}")
        else:
            if isinstance(outcome, FHIRResponse):
                envelope = envelope_from_response(request.id, outcome)
            else:
                envelope = envelope_from_data(request.id, outcome)

        if not envelope.output.success:
            logger.warning(
                "%s (%s) failed: %s", self.name, request.id, envelope.output.error
            )
        return envelope
