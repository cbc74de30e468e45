"""Tool handlers the agent can invoke.

Each handler serves one operation. They are organized by domain:
- patient.py:    Create and search patient records
- clinical.py:   Patient-scoped clinical searches, medication lookup
- scheduling.py: Clinic availability and booking (no API calls)
"""

from __future__ import annotations

from frontdesk.fhir_client import FHIRClient
from frontdesk.tools.base import ToolHandler
from frontdesk.tools.clinical import PATIENT_SEARCHES, ReadMedicationHandler
from frontdesk.tools.patient import CreateRecordHandler, SearchRecordHandler
from frontdesk.tools.scheduling import BookAppointmentHandler, GetScheduleHandler


def build_handlers(fhir: FHIRClient) -> list[ToolHandler]:
    """Create one handler for every operation."""
    handlers: list[ToolHandler] = [
        CreateRecordHandler(fhir),
        SearchRecordHandler(fhir),
        *(search(fhir) for search in PATIENT_SEARCHES),
        ReadMedicationHandler(fhir),
        GetScheduleHandler(),
        BookAppointmentHandler(),
    ]
    return handlers


__all__ = ["ToolHandler", "build_handlers"]
