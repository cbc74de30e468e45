"""Patient create and search tools.

API endpoints used:
- POST /Patient             — Create a patient record
- GET  /Patient?given=...   — Search patients by demographics
"""

from __future__ import annotations

import logging
from typing import Any

from frontdesk.context import SessionContext
from frontdesk.fhir_client import FHIRClient, FHIRResponse
from frontdesk.protocol import CreateRecordArgs, Operation, SearchRecordArgs
from frontdesk.tools.base import ToolHandler

logger = logging.getLogger(__name__)

# New records get a placeholder SSN; the real one is collected at the desk.
PLACEHOLDER_SSN = "000-00-0000"
SSN_SYSTEM = "urn:oid:2.16.840.1.113883.4.1"

# Agent argument -> FHIR Patient search parameter
_SEARCH_PARAMS = (
    ("given_name", "given"),
    ("family_name", "family"),
    ("birth_date", "birthdate"),
    ("gender", "gender"),
    ("telecom", "telecom"),
)


def build_patient_document(args: CreateRecordArgs) -> dict[str, Any]:
    """Build a FHIR Patient resource from the agent's arguments."""
    document: dict[str, Any] = {
        "resourceType": "Patient",
        "identifier": [
            {"use": "usual", "system": SSN_SYSTEM, "value": PLACEHOLDER_SSN},
        ],
        "active": True,
        "name": [
            {"use": "usual", "family": args.family_name, "given": [args.given_name]},
        ],
        "telecom": [
            {"system": "phone", "value": args.telecom, "use": "home"},
        ],
        "gender": args.gender,
        "address": [],
        "maritalStatus": {"text": ""},
        "generalPractitioner": [],
        "extension": [],
    }
    if args.birth_date:
        document["birthDate"] = args.birth_date
    return document


def build_search_params(args: SearchRecordArgs) -> dict[str, str]:
    """Map only the arguments that were given to search parameters.

    Absent and empty values are left out rather than sent as "".
    """
    params: dict[str, str] = {}
    for field, param in _SEARCH_PARAMS:
        value = getattr(args, field)
        if value:
            params[param] = value
    return params


def first_patient_id(bundle: Any) -> str | None:
    """Return the id of the first Patient entry in a search Bundle.

    Search bundles can also carry OperationOutcome entries (warnings about
    the query), so entries of other resource types are skipped, as are
    entries that are not JSON objects.
    """
    if not isinstance(bundle, dict):
        return None
    for entry in bundle.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        resource = entry.get("resource")
        if not isinstance(resource, dict):
            continue
        if resource.get("resourceType") == "Patient" and resource.get("id"):
            return str(resource["id"])
    return None


class CreateRecordHandler(ToolHandler):
    operation = Operation.CREATE_RECORD
    description = "Creates a patient record in the clinic's EHR."
    args_model = CreateRecordArgs

    def __init__(self, fhir: FHIRClient) -> None:
        self._fhir = fhir

    async def run(self, args: CreateRecordArgs, session: SessionContext) -> FHIRResponse:
        return await self._fhir.create("Patient", build_patient_document(args))


class SearchRecordHandler(ToolHandler):
    """Searches patients and remembers the first match for the session.

    The remembered id is what later patient-scoped calls fall back on when
    the agent leaves out patientId. An empty result leaves it untouched.
    """

    operation = Operation.SEARCH_RECORD
    description = "Searches for patients in the clinic's EHR based on demographics."
    args_model = SearchRecordArgs
    updates_context = True

    def __init__(self, fhir: FHIRClient) -> None:
        self._fhir = fhir

    async def run(self, args: SearchRecordArgs, session: SessionContext) -> FHIRResponse:
        response = await self._fhir.search("Patient", build_search_params(args))
        if response.ok:
            patient_id = first_patient_id(response.data)
            if patient_id:
                session.remember(patient_id)
            else:
                logger.info("Patient search matched no records")
        return response
