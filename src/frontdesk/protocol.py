"""Wire types exchanged with the conversational agent.

Inbound, the agent sends a batch of function calls:

    {"functionCalls": [{"name": "search_record", "id": "call-1",
                        "args": {"givenName": "Camila"}}]}

Outbound, each call that was served gets one envelope, tagged with the id
of the call it answers:

    {"functionResponses": [{"id": "call-1",
                            "response": {"output": {"success": true,
                                                    "data": {...}}}}]}

The operation names in Operation are the dispatch surface: the agent's
function declarations use exactly these strings.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

# FHIR resource ids: letters, digits, "-" and ".", at most 64 characters.
# Ids end up in the request path, so nothing else is let through.
FHIR_ID_PATTERN = r"^[A-Za-z0-9\-.]{1,64}$"


class Operation(str, Enum):
    """Every tool call the core knows how to serve."""

    CREATE_RECORD = "create_record"
    SEARCH_RECORD = "search_record"
    SEARCH_DIAGNOSTIC_REPORT = "search_diagnostic_report"
    SEARCH_GOAL = "search_goal"
    SEARCH_MEDICATION_REQUEST = "search_medication_request"
    SEARCH_MEDICATION_STATEMENT = "search_medication_statement"
    READ_MEDICATION = "read_medication"
    SEARCH_OBSERVATION = "search_observation"
    SEARCH_PROCEDURE = "search_procedure"
    GET_SCHEDULE = "get_schedule"
    BOOK_APPOINTMENT = "book_appointment"

    @classmethod
    def lookup(cls, name: str) -> Operation | None:
        """Return the operation called name, or None if there is none."""
        try:
            return cls(name)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Requests and responses
# ---------------------------------------------------------------------------


class ToolCallRequest(BaseModel):
    """One named call from the agent. `id` is the correlation id."""

    model_config = ConfigDict(frozen=True)

    name: str
    id: str
    args: dict[str, Any] = Field(default_factory=dict)

    @field_validator("args", mode="before")
    @classmethod
    def _null_args_are_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolCallBatch(BaseModel):
    """The calls the agent emitted in one turn, in order.

    Each call is validated on its own. A malformed entry (missing name, a
    non-string id, args that are not an object) is logged and dropped so the
    well-formed calls next to it are still served.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    function_calls: list[ToolCallRequest] = Field(
        default_factory=list, alias="functionCalls"
    )

    @field_validator("function_calls", mode="before")
    @classmethod
    def _drop_malformed_calls(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        calls: list[ToolCallRequest] = []
        for position, item in enumerate(value):
            if isinstance(item, ToolCallRequest):
                calls.append(item)
                continue
            try:
                calls.append(ToolCallRequest.model_validate(item))
            except PydanticValidationError as exc:
                logger.warning(
                    "Dropping malformed function call at position %d: %s",
                    position,
                    "; ".join(err["msg"] for err in exc.errors()),
                )
        return calls


class ToolOutput(BaseModel):
    """What the agent reads back: success plus either data or an error."""

    success: bool
    data: Any = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


class ResponseEnvelope(BaseModel):
    """A ToolOutput tagged with the correlation id of the call it answers."""

    id: str
    output: ToolOutput

    @property
    def correlation_id(self) -> str:
        return self.id

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "response": {"output": self.output.to_wire()}}


def tool_response_payload(envelopes: list[ResponseEnvelope]) -> dict[str, Any]:
    """Build the single message that returns a batch of envelopes."""
    return {"functionResponses": [envelope.to_wire() for envelope in envelopes]}


# ---------------------------------------------------------------------------
# Argument records, one per operation
# ---------------------------------------------------------------------------
# Field names are snake_case in Python; the agent sends camelCase, so each
# field carries its wire name as an alias. Unknown keys are ignored.

Gender = Literal["male", "female", "other", "unknown"]


class ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class CreateRecordArgs(ToolArgs):
    given_name: str = Field(
        min_length=1, alias="givenName", description="Patient's given (first) name"
    )
    family_name: str = Field(
        min_length=1, alias="familyName", description="Patient's family (last) name"
    )
    telecom: str = Field(
        min_length=1, description="Patient's telecom info (e.g. phone number)"
    )
    gender: Gender = Field(description="Patient's gender (male, female, other, unknown)")
    birth_date: str | None = Field(
        default=None,
        alias="birthDate",
        description="Patient's birth date (YYYY-MM-DD) if needed",
    )


class SearchRecordArgs(ToolArgs):
    given_name: str | None = Field(
        default=None, alias="givenName", description="Patient's given (first) name"
    )
    family_name: str | None = Field(
        default=None, alias="familyName", description="Patient's family (last) name"
    )
    birth_date: str | None = Field(
        default=None, alias="birthDate", description="YYYY-MM-DD format birth date"
    )
    gender: Gender | None = Field(
        default=None,
        description="Legal sex or FHIR 'gender' parameter (male, female, other, unknown)",
    )
    telecom: str | None = Field(default=None, description="Patient's phone number to match on")


class PatientScopedArgs(ToolArgs):
    patient_id: str | None = Field(
        default=None,
        alias="patientId",
        pattern=FHIR_ID_PATTERN,
        description=(
            "FHIR id of the patient. Omit to use the patient found by the "
            "most recent search_record call."
        ),
    )

    @field_validator("patient_id", mode="before")
    @classmethod
    def _empty_id_is_absent(cls, value: Any) -> Any:
        return None if value == "" else value


class ReadMedicationArgs(ToolArgs):
    medication_id: str = Field(
        alias="medicationId",
        pattern=FHIR_ID_PATTERN,
        description="FHIR id of the Medication resource (not a patient id)",
    )


class GetScheduleArgs(ToolArgs):
    doctor_name: str | None = Field(
        default=None,
        alias="doctorName",
        description="Part of the doctor's name to filter by (case-insensitive)",
    )


class BookAppointmentArgs(ToolArgs):
    doctor_id: str = Field(
        min_length=1, alias="doctorId", description="Doctor id from get_schedule"
    )
    day: str = Field(
        min_length=1, description="Day of the week of the chosen slot, e.g. Monday"
    )
    time: str = Field(min_length=1, description="Start time of the chosen slot, e.g. 09:00")
    patient_name: str = Field(
        min_length=1, alias="patientName", description="Full name of the patient"
    )
