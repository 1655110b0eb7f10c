# ce_core/appointments/tests/test_lifecycle_rules.py
import itertools
from datetime import date

import pytest

from ce_core.appointments import rules
from ce_core.appointments.constants import CREATE_VISIT_DETAILS, AppointmentOperation as Op, AppointmentStatus as S
from ce_core.common.decisions import ErrorCode


def _state(status, **kw):
    return rules.AppointmentState(status=status, appointment_date=date(2025, 1, 14), **kw)


def _inputs_for(op):
    return {
        Op.CANCEL: {"reason": "Patient travelling"},
        Op.RESCHEDULE: {"new_date": date(2025, 1, 21), "reason": "Clinic closed"},
        Op.COMPLETE: {"clinical_summary": "Stable on regimen"},
    }.get(op, {})


@pytest.mark.parametrize("status", sorted(S.TERMINAL))
@pytest.mark.parametrize("op", Op.ALL)
def test_terminal_states_reject_every_operation(status, op):
    d = rules.apply(_state(status), op, **_inputs_for(op))
    assert not d.ok
    assert d.error.code == ErrorCode.TERMINAL_STATE
    assert d.error.details == {"status": status, "operation": op}
    assert d.commands == ()


LEGAL = {
    (S.SCHEDULED, Op.CHECK_IN): S.CHECKED_IN,
    (S.CONFIRMED, Op.CHECK_IN): S.CHECKED_IN,
    (S.SCHEDULED, Op.MARK_NO_SHOW): S.NO_SHOW,
    (S.CONFIRMED, Op.MARK_NO_SHOW): S.NO_SHOW,
    (S.SCHEDULED, Op.CANCEL): S.CANCELLED,
    (S.CONFIRMED, Op.CANCEL): S.CANCELLED,
    (S.CHECKED_IN, Op.CANCEL): S.CANCELLED,
    (S.SCHEDULED, Op.RESCHEDULE): S.RESCHEDULED,
    (S.CONFIRMED, Op.RESCHEDULE): S.RESCHEDULED,
    (S.CHECKED_IN, Op.START_VISIT): S.IN_PROGRESS,
    (S.IN_PROGRESS, Op.COMPLETE): S.COMPLETED,
}

INVALID = [
    (status, op)
    for status, op in itertools.product(S.ALL, Op.ALL)
    if status not in S.TERMINAL and (status, op) not in LEGAL
]


@pytest.mark.parametrize("status,op", sorted(LEGAL))
def test_allowed_transitions(status, op):
    d = rules.apply(_state(status), op, **_inputs_for(op))
    assert d.ok, d.error
    assert d.state.status == LEGAL[(status, op)]


@pytest.mark.parametrize("status,op", INVALID)
def test_invalid_transitions_from_non_terminal_states(status, op):
    before = _state(status)
    d = rules.apply(before, op, **_inputs_for(op))
    assert not d.ok
    assert d.error.code == ErrorCode.INVALID_TRANSITION
    assert d.error.details == {"status": status, "operation": op}
    assert d.state is None
    assert d.commands == ()
    assert before.status == status


def test_transition_matrix_is_complete():
    assert len(LEGAL) + len(INVALID) + len(S.TERMINAL) * len(Op.ALL) == len(S.ALL) * len(Op.ALL)
    assert len(INVALID) == 13


def test_unknown_operation_is_invalid_transition():
    d = rules.apply(_state(S.SCHEDULED), "teleport")
    assert d.error.code == ErrorCode.INVALID_TRANSITION


def test_allowed_operations_lists_only_legal_moves():
    assert set(rules.allowed_operations(S.SCHEDULED)) == {Op.CHECK_IN, Op.MARK_NO_SHOW, Op.CANCEL, Op.RESCHEDULE}
    assert rules.allowed_operations(S.CHECKED_IN) == [Op.CANCEL, Op.START_VISIT]
    assert rules.allowed_operations(S.IN_PROGRESS) == [Op.COMPLETE]
    for status in S.TERMINAL:
        assert rules.allowed_operations(status) == []


def test_cancel_requires_reason():
    d = rules.cancel(_state(S.SCHEDULED), reason="   ")
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert d.error.details["errors"][0]["field"] == "cancellation_reason"

    ok = rules.cancel(_state(S.SCHEDULED), reason="  Unwell  ")
    assert ok.state.cancellation_reason == "Unwell"


def test_reschedule_requires_date_and_reason():
    d = rules.reschedule(_state(S.CONFIRMED), new_date=None, reason="")
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert {e["field"] for e in d.error.details["errors"]} == {"new_appointment_date", "reason"}


def test_reschedule_records_new_slot_and_keeps_appointment_date():
    d = rules.reschedule(_state(S.SCHEDULED), new_date=date(2025, 2, 1), reason="Holiday")
    assert d.state.status == S.RESCHEDULED
    assert d.state.appointment_date == date(2025, 1, 14)
    assert d.state.rescheduled_date == date(2025, 2, 1)
    assert d.commands == ()


def test_complete_requires_clinical_summary():
    d = rules.complete(_state(S.IN_PROGRESS), clinical_summary="")
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert d.commands == ()


def test_complete_emits_exactly_one_visit_details_command():
    d = rules.complete(
        _state(S.IN_PROGRESS),
        clinical_summary="Adherent, no side effects",
        visit_details={"diagnosis": " HIV stable ", "drugs_prescribed": True, "assessment": "  "},
    )
    assert d.ok
    assert len(d.commands) == 1
    cmd = d.command(CREATE_VISIT_DETAILS)
    assert cmd.payload["diagnosis"] == "HIV stable"
    assert cmd.payload["assessment"] is None
    assert cmd.payload["drugs_prescribed"] is True
    assert cmd.payload["referral_made"] is False


def test_check_in_keeps_existing_notes_when_blank():
    d = rules.check_in(_state(S.SCHEDULED, notes="bring results"), notes="")
    assert d.state.notes == "bring results"


def test_full_visit_walkthrough():
    state = _state(S.SCHEDULED)
    for op in (Op.CHECK_IN, Op.START_VISIT, Op.COMPLETE):
        d = rules.apply(state, op, **_inputs_for(op))
        assert d.ok, d.error
        state = d.state
    assert state.status == S.COMPLETED

    again = rules.apply(state, Op.CHECK_IN)
    assert again.error.code == ErrorCode.TERMINAL_STATE


def test_schedule_validates_inputs():
    d = rules.schedule(patient_id=None, appointment_type="Spa day", appointment_date=None, status=S.COMPLETED)
    fields = {e["field"] for e in d.error.details["errors"]}
    assert fields == {"patient_id", "appointment_type", "appointment_date", "status"}

    ok = rules.schedule(patient_id="p1", appointment_type="Refill", appointment_date=date(2025, 1, 14))
    assert ok.state.status == S.SCHEDULED


@pytest.mark.parametrize(
    "service_type,source_type,reason,label",
    [
        ("PREP", None, None, "PrEP"),
        (None, "art", None, "ART"),
        ("Mental Health", None, None, "Psychology"),
        (None, None, "Monthly refill", "Pharmacy"),
        (None, None, None, "-"),
        ("Dental", None, None, "Dental"),
    ],
)
def test_service_label(service_type, source_type, reason, label):
    assert rules.service_label(service_type=service_type, source_type=source_type, reason=reason) == label
