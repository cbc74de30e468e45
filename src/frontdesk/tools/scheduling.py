"""Scheduling tools — clinic availability and appointment booking.

These tools never call the FHIR API. Availability comes from the fixed
clinic roster below, and a booking produces a confirmation whose id is
derived from its inputs, so the same booking always yields the same
confirmation.
"""

from __future__ import annotations

import hashlib
from typing import Any

from frontdesk.context import SessionContext
from frontdesk.errors import ValidationError
from frontdesk.protocol import BookAppointmentArgs, GetScheduleArgs, Operation
from frontdesk.tools.base import ToolHandler

CLINIC_SCHEDULE: tuple[dict[str, Any], ...] = (
    {
        "doctorId": "D001",
        "name": "Dr. Sarah Chen",
        "specialty": "Family Medicine",
        "availability": [
            {"day": "Monday", "times": ["09:00", "10:30", "14:00"]},
            {"day": "Wednesday", "times": ["09:00", "11:00"]},
            {"day": "Friday", "times": ["13:00", "15:30"]},
        ],
    },
    {
        "doctorId": "D002",
        "name": "Dr. Miguel Alvarez",
        "specialty": "Internal Medicine",
        "availability": [
            {"day": "Tuesday", "times": ["08:30", "10:00", "13:30"]},
            {"day": "Thursday", "times": ["09:30", "16:00"]},
        ],
    },
    {
        "doctorId": "D003",
        "name": "Dr. Priya Natarajan",
        "specialty": "Pediatrics",
        "availability": [
            {"day": "Monday", "times": ["11:00", "15:00"]},
            {"day": "Thursday", "times": ["08:00", "10:30", "14:30"]},
        ],
    },
    {
        "doctorId": "D004",
        "name": "Dr. James O'Connor",
        "specialty": "Cardiology",
        "availability": [
            {"day": "Wednesday", "times": ["13:00", "14:30"]},
            {"day": "Friday", "times": ["09:00", "10:30"]},
        ],
    },
)


def find_doctors(name_filter: str | None) -> list[dict[str, Any]]:
    """Return roster entries whose name contains name_filter (any case)."""
    if not name_filter:
        return [dict(doctor) for doctor in CLINIC_SCHEDULE]
    needle = name_filter.casefold()
    return [dict(d) for d in CLINIC_SCHEDULE if needle in d["name"].casefold()]


def confirmation_id(args: BookAppointmentArgs) -> str:
    key = "|".join((args.doctor_id, args.day.casefold(), args.time, args.patient_name))
    return "APT-" + hashlib.sha256(key.encode()).hexdigest()[:8].upper()


class GetScheduleHandler(ToolHandler):
    operation = Operation.GET_SCHEDULE
    description = (
        "Lists the clinic's doctors and their open appointment slots, "
        "optionally filtered by doctor name."
    )
    args_model = GetScheduleArgs

    async def run(self, args: GetScheduleArgs, session: SessionContext) -> list[dict[str, Any]]:
        return find_doctors(args.doctor_name)


class BookAppointmentHandler(ToolHandler):
    """Confirms a slot from the roster.

    The slot must be one the roster offers; anything else is rejected so
    the agent can offer the patient a real alternative.
    """

    operation = Operation.BOOK_APPOINTMENT
    description = "Books an appointment slot returned by get_schedule for a patient."
    args_model = BookAppointmentArgs

    async def run(self, args: BookAppointmentArgs, session: SessionContext) -> dict[str, Any]:
        doctor = next((d for d in CLINIC_SCHEDULE if d["doctorId"] == args.doctor_id), None)
        if doctor is None:
            raise ValidationError(f"Unknown doctor id: {args.doctor_id}")

        slot = next(
            (
                s
                for s in doctor["availability"]
                if s["day"].casefold() == args.day.casefold() and args.time in s["times"]
            ),
            None,
        )
        if slot is None:
            raise ValidationError(
                f"{doctor['name']} has no open slot on {args.day} at {args.time}"
            )

        return {
            "confirmationId": confirmation_id(args),
            "status": "confirmed",
            "doctorId": doctor["doctorId"],
            "doctorName": doctor["name"],
            "day": slot["day"],
            "time": args.time,
            "patientName": args.patient_name,
        }
