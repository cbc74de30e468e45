"""Clinical data tools — reports, goals, medications, labs, procedures.

API endpoints used:
- GET /DiagnosticReport?patient={id}
- GET /Goal?patient={id}
- GET /MedicationRequest?patient={id}
- GET /MedicationStatement?patient={id}
- GET /Observation?patient={id}&category=laboratory
- GET /Procedure?patient={id}
- GET /Medication/{id}

The patient-scoped searches accept an optional patientId. When it is left
out, the patient remembered from the session's last search is used; when
there is none either, the call fails without touching the network.
"""

from __future__ import annotations

from typing import ClassVar

from frontdesk.context import SessionContext
from frontdesk.fhir_client import FHIRClient, FHIRResponse
from frontdesk.protocol import Operation, PatientScopedArgs, ReadMedicationArgs
from frontdesk.tools.base import ToolHandler

OBSERVATION_CATEGORY = "laboratory"


class PatientResourceSearch(ToolHandler):
    """Search one resource type filtered by patient.

    Subclasses only name the operation and resource type, plus any fixed
    filters the resource needs.
    """

    args_model = PatientScopedArgs
    resource_type: ClassVar[str]
    extra_params: ClassVar[dict[str, str]] = {}

    def __init__(self, fhir: FHIRClient) -> None:
        self._fhir = fhir

    async def run(self, args: PatientScopedArgs, session: SessionContext) -> FHIRResponse:
        patient_id = session.resolve(args.patient_id)
        params = {"patient": patient_id, **self.extra_params}
        return await self._fhir.search(self.resource_type, params)


class DiagnosticReportSearch(PatientResourceSearch):
    operation = Operation.SEARCH_DIAGNOSTIC_REPORT
    resource_type = "DiagnosticReport"
    description = "Lists a patient's diagnostic reports (lab panels, imaging results)."


class GoalSearch(PatientResourceSearch):
    operation = Operation.SEARCH_GOAL
    resource_type = "Goal"
    description = "Lists a patient's care goals."


class MedicationRequestSearch(PatientResourceSearch):
    operation = Operation.SEARCH_MEDICATION_REQUEST
    resource_type = "MedicationRequest"
    description = "Lists a patient's medication orders (prescriptions)."


class MedicationStatementSearch(PatientResourceSearch):
    operation = Operation.SEARCH_MEDICATION_STATEMENT
    resource_type = "MedicationStatement"
    description = "Lists medications the patient reports taking."


class ObservationSearch(PatientResourceSearch):
    operation = Operation.SEARCH_OBSERVATION
    resource_type = "Observation"
    extra_params = {"category": OBSERVATION_CATEGORY}
    description = "Lists a patient's laboratory results."


class ProcedureSearch(PatientResourceSearch):
    operation = Operation.SEARCH_PROCEDURE
    resource_type = "Procedure"
    description = "Lists procedures performed on a patient."


class ReadMedicationHandler(ToolHandler):
    """Reads a Medication by its own id.

    The id names a medication, not a patient, so the session's remembered
    patient is never substituted for it.
    """

    operation = Operation.READ_MEDICATION
    description = "Gets the details of a medication by its FHIR Medication id."
    args_model = ReadMedicationArgs

    def __init__(self, fhir: FHIRClient) -> None:
        self._fhir = fhir

    async def run(self, args: ReadMedicationArgs, session: SessionContext) -> FHIRResponse:
        return await self._fhir.read("Medication", args.medication_id)


PATIENT_SEARCHES: tuple[type[PatientResourceSearch], ...] = (
    DiagnosticReportSearch,
    GoalSearch,
    MedicationRequestSearch,
    MedicationStatementSearch,
    ObservationSearch,
    ProcedureSearch,
)
