# ce_core/appointments/rules.py
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, time
from typing import Any, Optional

from ce_core.appointments.constants import (
    APPOINTMENT_TYPES,
    CREATE_VISIT_DETAILS,
    AppointmentOperation as Op,
    AppointmentStatus as S,
)
from ce_core.common.decisions import Command, Decision, ErrorCode


@dataclass(frozen=True)
class AppointmentState:
    """
    The slice of an appointment the lifecycle rules reason about.
    Services build it from the model and copy the accepted state back.
    """
    status: str
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    cancellation_reason: Optional[str] = None
    clinical_summary: Optional[str] = None
    rescheduled_date: Optional[date] = None
    rescheduled_time: Optional[time] = None
    reschedule_reason: Optional[str] = None
    notes: Optional[str] = None


# operation -> (allowed source statuses, target status)
TRANSITIONS: dict[str, tuple[frozenset, str]] = {
    Op.CHECK_IN: (S.INITIAL, S.CHECKED_IN),
    Op.MARK_NO_SHOW: (S.INITIAL, S.NO_SHOW),
    Op.CANCEL: (S.INITIAL | {S.CHECKED_IN}, S.CANCELLED),
    Op.RESCHEDULE: (S.INITIAL, S.RESCHEDULED),
    Op.START_VISIT: (frozenset({S.CHECKED_IN}), S.IN_PROGRESS),
    Op.COMPLETE: (frozenset({S.IN_PROGRESS}), S.COMPLETED),
}

VISIT_DETAIL_TEXT_FIELDS = ("chief_complaint", "assessment", "diagnosis", "treatment_plan", "next_appointment_reason")
VISIT_DETAIL_FLAGS = ("lab_tests_ordered", "drugs_prescribed", "counseling_provided", "referral_made")


def _blank(value) -> bool:
    return not str(value or "").strip()


def allowed_operations(status: str) -> list[str]:
    """Operations the lifecycle accepts from `status` (empty for terminal states)."""
    return [op for op, (sources, _target) in TRANSITIONS.items() if status in sources]


def _guard(state: AppointmentState, operation: str) -> Optional[Decision]:
    if state.status in S.TERMINAL:
        return Decision.reject(
            ErrorCode.TERMINAL_STATE,
            f"Appointment is {state.status}; no further operations apply.",
            status=state.status,
            operation=operation,
        )

    sources, _target = TRANSITIONS[operation]
    if state.status not in sources:
        return Decision.reject(
            ErrorCode.INVALID_TRANSITION,
            f"Cannot {operation} an appointment that is {state.status}.",
            status=state.status,
            operation=operation,
        )
    return None


def _target(operation: str) -> str:
    return TRANSITIONS[operation][1]


# ---------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------
def schedule(
    *,
    patient_id,
    appointment_type: str,
    appointment_date: Optional[date],
    appointment_time: Optional[time] = None,
    status: str = S.SCHEDULED,
    notes: Optional[str] = None,
) -> Decision:
    errors: list[dict] = []
    if not patient_id:
        errors.append({"field": "patient_id", "reason": "required"})
    if appointment_type not in APPOINTMENT_TYPES:
        errors.append({"field": "appointment_type", "reason": f"must be one of {', '.join(APPOINTMENT_TYPES)}"})
    if appointment_date is None:
        errors.append({"field": "appointment_date", "reason": "required"})
    if status not in S.INITIAL:
        errors.append({"field": "status", "reason": "new appointments start Scheduled or Confirmed"})

    if errors:
        return Decision.reject(ErrorCode.VALIDATION_ERROR, "Invalid appointment.", errors=errors)

    return Decision.accept(
        AppointmentState(
            status=status,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            notes=notes,
        )
    )


# ---------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------
def check_in(state: AppointmentState, *, notes: Optional[str] = None) -> Decision:
    rejected = _guard(state, Op.CHECK_IN)
    if rejected:
        return rejected
    new_notes = notes if not _blank(notes) else state.notes
    return Decision.accept(replace(state, status=_target(Op.CHECK_IN), notes=new_notes))


def mark_no_show(state: AppointmentState) -> Decision:
    rejected = _guard(state, Op.MARK_NO_SHOW)
    if rejected:
        return rejected
    return Decision.accept(replace(state, status=_target(Op.MARK_NO_SHOW)))


def start_visit(state: AppointmentState) -> Decision:
    rejected = _guard(state, Op.START_VISIT)
    if rejected:
        return rejected
    return Decision.accept(replace(state, status=_target(Op.START_VISIT)))


def cancel(state: AppointmentState, *, reason: Optional[str]) -> Decision:
    rejected = _guard(state, Op.CANCEL)
    if rejected:
        return rejected
    if _blank(reason):
        return Decision.reject(
            ErrorCode.VALIDATION_ERROR,
            "Cancellation reason is required.",
            errors=[{"field": "cancellation_reason", "reason": "required"}],
        )
    return Decision.accept(
        replace(state, status=_target(Op.CANCEL), cancellation_reason=str(reason).strip())
    )


def reschedule(
    state: AppointmentState,
    *,
    new_date: Optional[date],
    reason: Optional[str],
    new_time: Optional[time] = None,
) -> Decision:
    rejected = _guard(state, Op.RESCHEDULE)
    if rejected:
        return rejected

    errors: list[dict] = []
    if new_date is None:
        errors.append({"field": "new_appointment_date", "reason": "required"})
    if _blank(reason):
        errors.append({"field": "reason", "reason": "required"})
    if errors:
        return Decision.reject(ErrorCode.VALIDATION_ERROR, "Reschedule needs a new date and a reason.", errors=errors)

    return Decision.accept(
        replace(
            state,
            status=_target(Op.RESCHEDULE),
            rescheduled_date=new_date,
            rescheduled_time=new_time,
            reschedule_reason=str(reason).strip(),
        )
    )


def _visit_details_payload(visit_details: Optional[dict]) -> dict[str, Any]:
    raw = dict(visit_details or {})
    payload: dict[str, Any] = {}
    for name in VISIT_DETAIL_TEXT_FIELDS:
        value = raw.get(name)
        payload[name] = None if _blank(value) else str(value).strip()
    for name in VISIT_DETAIL_FLAGS:
        payload[name] = bool(raw.get(name, False))
    payload["next_appointment_date"] = raw.get("next_appointment_date")
    return payload


def complete(state: AppointmentState, *, clinical_summary: Optional[str], visit_details: Optional[dict] = None) -> Decision:
    """
    In Progress -> Completed. The only transition that produces a dependent
    record: exactly one VisitDetails, emitted as a command.
    """
    rejected = _guard(state, Op.COMPLETE)
    if rejected:
        return rejected
    if _blank(clinical_summary):
        return Decision.reject(
            ErrorCode.VALIDATION_ERROR,
            "Clinical summary is required to complete a visit.",
            errors=[{"field": "clinical_summary", "reason": "required"}],
        )

    return Decision.accept(
        replace(state, status=_target(Op.COMPLETE), clinical_summary=str(clinical_summary).strip()),
        commands=[Command(CREATE_VISIT_DETAILS, _visit_details_payload(visit_details))],
    )


_DISPATCH = {
    Op.CHECK_IN: check_in,
    Op.START_VISIT: start_visit,
    Op.COMPLETE: complete,
    Op.CANCEL: cancel,
    Op.RESCHEDULE: reschedule,
    Op.MARK_NO_SHOW: mark_no_show,
}


def apply(state: AppointmentState, operation: str, **inputs) -> Decision:
    """Run `operation` by name; unknown names are an InvalidTransition."""
    fn = _DISPATCH.get(operation)
    if fn is None:
        return Decision.reject(
            ErrorCode.INVALID_TRANSITION,
            f"Unknown appointment operation: {operation}.",
            status=state.status,
            operation=operation,
        )
    return fn(state, **inputs)


# ---------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------
_SERVICE_LABELS = {
    "PREP": "PrEP",
    "PEP": "PEP",
    "ART": "ART",
    "HTS": "HTS",
    "PHARMACY": "Pharmacy",
    "PRESCRIPTION": "Pharmacy",
    "LAB": "Laboratory",
    "LABORATORY": "Laboratory",
    "MENTAL HEALTH": "Psychology",
    "PSYCHOLOGY": "Psychology",
}


def service_label(*, service_type: Optional[str], source_type: Optional[str], reason: Optional[str]) -> str:
    for value in (service_type, source_type):
        if value:
            return _SERVICE_LABELS.get(value.strip().upper(), value)
    if reason and "refill" in reason.lower():
        return "Pharmacy"
    return "-"
