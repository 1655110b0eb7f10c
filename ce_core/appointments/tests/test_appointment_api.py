# ce_core/appointments/tests/test_appointment_api.py
import re

import pytest

from ce_core.appointments.models import Appointment, VisitDetails
from ce_core.audit.models import AuditEvent
from ce_core.audit.services import AuditService
from ce_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db


def _create(api_client, tenant_id, facility_id, patient, **extra):
    payload = {
        "patient_id": str(patient.id),
        "appointment_type": "Follow-up",
        "appointment_date": "2025-01-14",
        "appointment_time": "09:30",
    }
    payload.update(extra)
    r = api_client.post("/api/v1/appointments/", payload, format="json", **scoped(tenant_id, facility_id))
    assert r.status_code == 201, r.data
    return r.data


def _op(api_client, tenant_id, facility_id, apt_id, op, payload=None, method="post"):
    call = getattr(api_client, method)
    return call(
        f"/api/v1/appointments/{apt_id}/{op}/",
        payload or {},
        format="json",
        **scoped(tenant_id, facility_id),
    )


def test_create_assigns_number_and_initial_status(api_client, tenant_id, facility_id, patient):
    data = _create(api_client, tenant_id, facility_id, patient)
    assert re.fullmatch(r"APT-\d{8}-\d{5}", data["appointment_number"])
    assert data["status"] == "Scheduled"
    assert data["patient_name"] == "Test Patient"
    assert set(data["allowed_operations"]) == {"check-in", "mark-no-show", "cancel", "reschedule"}

    assert AuditEvent.objects.filter(entity_id=data["id"], event_code="appointment.created").count() == 1


def test_create_rejects_terminal_initial_status(api_client, tenant_id, facility_id, patient):
    r = api_client.post(
        "/api/v1/appointments/",
        {
            "patient_id": str(patient.id),
            "appointment_type": "Refill",
            "appointment_date": "2025-01-14",
            "status": "Completed",
        },
        format="json",
        **scoped(tenant_id, facility_id),
    )
    assert r.status_code == 400, r.data
    assert r.data["error"]["code"] == "validation_error"


def test_full_visit_creates_single_visit_details(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)

    r = _op(api_client, tenant_id, facility_id, apt["id"], "check-in", method="put")
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Checked-in"
    assert r.data["checked_in_at"]

    r = _op(api_client, tenant_id, facility_id, apt["id"], "start")
    assert r.status_code == 200, r.data
    assert r.data["status"] == "In Progress"

    r = _op(
        api_client,
        tenant_id,
        facility_id,
        apt["id"],
        "complete",
        {
            "clinical_summary": "Viral load suppressed, continue regimen",
            "visit_details": {"diagnosis": "HIV, stable", "drugs_prescribed": True},
        },
    )
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Completed"
    assert r.data["allowed_operations"] == []

    assert VisitDetails.objects.filter(appointment_id=apt["id"]).count() == 1

    detail = api_client.get(f"/api/v1/appointments/{apt['id']}/", **scoped(tenant_id, facility_id))
    assert detail.status_code == 200, detail.data
    assert detail.data["visit_details"]["diagnosis"] == "HIV, stable"
    assert detail.data["visit_details"]["drugs_prescribed"] is True

    # Completed is terminal: a second completion changes nothing
    again = _op(api_client, tenant_id, facility_id, apt["id"], "complete", {"clinical_summary": "again"})
    assert again.status_code == 409, again.data
    assert again.data["error"]["code"] == "TerminalState"
    assert VisitDetails.objects.filter(appointment_id=apt["id"]).count() == 1


def test_complete_without_summary_is_rejected(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)
    _op(api_client, tenant_id, facility_id, apt["id"], "check-in")
    _op(api_client, tenant_id, facility_id, apt["id"], "start")

    r = _op(api_client, tenant_id, facility_id, apt["id"], "complete", {"clinical_summary": ""})
    assert r.status_code == 400, r.data
    assert r.data["error"]["code"] == "ValidationError"
    assert Appointment.objects.get(id=apt["id"]).status == "In Progress"
    assert not VisitDetails.objects.filter(appointment_id=apt["id"]).exists()


def test_start_before_check_in_is_invalid_transition(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)
    r = _op(api_client, tenant_id, facility_id, apt["id"], "start")
    assert r.status_code == 409, r.data
    assert r.data["error"]["code"] == "InvalidTransition"
    assert r.data["error"]["details"] == {"status": "Scheduled", "operation": "start-visit"}


def test_cancel_requires_reason_then_is_terminal(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)

    r = _op(api_client, tenant_id, facility_id, apt["id"], "cancel", {"cancellation_reason": ""})
    assert r.status_code == 400, r.data

    r = _op(api_client, tenant_id, facility_id, apt["id"], "cancel", {"cancellation_reason": "Patient relocated"})
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Cancelled"
    assert r.data["cancellation_reason"] == "Patient relocated"
    assert r.data["cancelled_at"]

    r = _op(api_client, tenant_id, facility_id, apt["id"], "check-in")
    assert r.status_code == 409, r.data
    assert r.data["error"]["code"] == "TerminalState"


def test_reschedule_closes_the_appointment(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient, status="Confirmed")
    r = _op(
        api_client,
        tenant_id,
        facility_id,
        apt["id"],
        "reschedule",
        {"new_appointment_date": "2025-01-21", "new_appointment_time": "10:00", "reason": "Clinic closed"},
    )
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Rescheduled"
    assert r.data["rescheduled_date"] == "2025-01-21"
    assert r.data["appointment_date"] == "2025-01-14"
    assert Appointment.objects.count() == 1


def test_no_show(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)
    r = _op(api_client, tenant_id, facility_id, apt["id"], "no-show")
    assert r.status_code == 200, r.data
    assert r.data["status"] == "No Show"


def test_transition_is_audited(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)
    _op(api_client, tenant_id, facility_id, apt["id"], "check-in")

    ev = AuditEvent.objects.get(entity_id=apt["id"], event_code="appointment.check-in")
    assert ev.metadata == {"from": "Scheduled", "to": "Checked-in"}


def test_list_filters_by_status_and_patient(api_client, tenant_id, facility_id, patient, other_patient):
    a1 = _create(api_client, tenant_id, facility_id, patient)
    _create(api_client, tenant_id, facility_id, other_patient)
    _op(api_client, tenant_id, facility_id, a1["id"], "check-in")

    r = api_client.get("/api/v1/appointments/", **scoped(tenant_id, facility_id))
    assert r.status_code == 200, r.data
    assert r.data["count"] == 2

    r = api_client.get("/api/v1/appointments/?status=Checked-in", **scoped(tenant_id, facility_id))
    assert r.data["count"] == 1
    assert r.data["results"][0]["id"] == a1["id"]

    r = api_client.get(f"/api/v1/appointments/?patient={other_patient.id}", **scoped(tenant_id, facility_id))
    assert r.data["count"] == 1
    assert r.data["results"][0]["patient_id"] == other_patient.id


def test_unknown_appointment_is_404(api_client, tenant_id, facility_id):
    r = _op(api_client, tenant_id, facility_id, "00000000-0000-0000-0000-00000000dead", "check-in")
    assert r.status_code == 404, r.data
    assert r.data["error"]["code"] == "not_found"


@pytest.mark.parametrize(
    "ops,op,status",
    [
        ([], "complete", "Scheduled"),
        (["check-in"], "reschedule", "Checked-in"),
        (["check-in"], "no-show", "Checked-in"),
        (["check-in", "start"], "check-in", "In Progress"),
    ],
)
def test_invalid_transition_leaves_stored_status(api_client, tenant_id, facility_id, patient, ops, op, status):
    apt = _create(api_client, tenant_id, facility_id, patient)
    for step in ops:
        assert _op(api_client, tenant_id, facility_id, apt["id"], step).status_code == 200

    payload = {
        "complete": {"clinical_summary": "Stable"},
        "reschedule": {"new_appointment_date": "2025-02-01", "reason": "Clinic closed"},
    }.get(op)
    r = _op(api_client, tenant_id, facility_id, apt["id"], op, payload)
    assert r.status_code == 409, r.data
    assert r.data["error"]["code"] == "InvalidTransition"

    stored = Appointment.objects.get(id=apt["id"])
    assert stored.status == status
    assert not VisitDetails.objects.filter(appointment_id=apt["id"]).exists()


@pytest.mark.parametrize("path", ["not-a-uuid/", "not-a-uuid/check-in/"])
def test_malformed_appointment_id_is_404(api_client, tenant_id, facility_id, path):
    call = api_client.get if path == "not-a-uuid/" else api_client.post
    r = call(f"/api/v1/appointments/{path}", **scoped(tenant_id, facility_id))
    assert r.status_code == 404, r.data
    assert r.data["error"]["code"] == "not_found"
    assert r.data["error"]["message"] == "Appointment not found."


def test_scope_headers_required(api_client):
    r = api_client.get("/api/v1/appointments/")
    assert r.status_code == 400, r.data
    assert r.data["error"]["code"] == "validation_error"


def test_audit_trail_follows_the_visit(api_client, tenant_id, facility_id, patient):
    apt = _create(api_client, tenant_id, facility_id, patient)
    _op(api_client, tenant_id, facility_id, apt["id"], "check-in")
    _op(api_client, tenant_id, facility_id, apt["id"], "start")

    trail = AuditService.events_for(Appointment.objects.get(id=apt["id"]))
    assert [e.event_code for e in trail] == ["appointment.created", "appointment.check-in", "appointment.start-visit"]
    assert {e.entity_type for e in trail} == {"Appointment"}
