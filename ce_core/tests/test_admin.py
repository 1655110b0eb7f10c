import pytest
from django.contrib import admin
from django.urls import reverse

from ce_core.appointments.models import Appointment, VisitDetails
from ce_core.audit.models import AuditEvent
from ce_core.audit.services import AuditService
from ce_core.lab.models import LabOrder, LabTest
from ce_core.patients.models import Patient
from ce_core.pharmacy.models import Drug, Prescription
from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement

MODELS = [
    Patient,
    AuditEvent,
    Appointment,
    VisitDetails,
    HtsRecord,
    ArtEnrollment,
    PepEnrollment,
    PrepCommencement,
    LabTest,
    LabOrder,
    Drug,
    Prescription,
]


def _changelist(model):
    return reverse(f"admin:{model._meta.app_label}_{model._meta.model_name}_changelist")


@pytest.mark.django_db
@pytest.mark.parametrize("model", MODELS, ids=lambda m: m.__name__)
def test_changelist_renders(admin_client, patient, model):
    assert admin.site.is_registered(model)
    r = admin_client.get(_changelist(model))
    assert r.status_code == 200


@pytest.mark.django_db
def test_audit_events_are_read_only_in_admin(admin_client, patient):
    event = AuditService.log(event_code="patient.registered", entity=patient, actor_user_id=None)
    model_admin = admin.site._registry[AuditEvent]

    r = admin_client.get(_changelist(AuditEvent))
    assert r.status_code == 200
    assert "patient.registered" in r.content.decode()

    request = r.wsgi_request
    assert not model_admin.has_change_permission(request, event)
    assert not model_admin.has_delete_permission(request, event)
