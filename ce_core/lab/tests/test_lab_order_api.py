# ce_core/lab/tests/test_lab_order_api.py
import re

import pytest

from ce_core.audit.models import AuditEvent
from ce_core.lab.models import LabTest
from ce_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db


@pytest.fixture
def cd4_test(tenant_id, facility_id):
    return LabTest.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        test_code="CD4",
        test_name="CD4 Count",
        test_category="Immunology",
        sample_type="Blood",
    )


def _order(api_client, tenant_id, facility_id, patient, test):
    r = api_client.post(
        "/api/v1/lab/orders/",
        {"patient_id": str(patient.id), "test_id": str(test.id), "priority": "Urgent"},
        format="json",
        **scoped(tenant_id, facility_id),
    )
    assert r.status_code == 201, r.data
    return r.data


def test_create_order(api_client, tenant_id, facility_id, patient, cd4_test):
    data = _order(api_client, tenant_id, facility_id, patient, cd4_test)
    assert re.fullmatch(r"LAB-\d{8}-\d{5}", data["order_number"])
    assert data["status"] == "Ordered"
    assert data["test_code"] == "CD4"
    assert data["allowed_operations"] == ["collect-sample", "cancel"]
    assert AuditEvent.objects.filter(event_code="lab_order.created", entity_id=data["id"]).exists()


def test_full_lifecycle(api_client, tenant_id, facility_id, patient, cd4_test):
    order_id = _order(api_client, tenant_id, facility_id, patient, cd4_test)["id"]
    base = f"/api/v1/lab/orders/{order_id}"
    h = scoped(tenant_id, facility_id)

    r = api_client.post(f"{base}/collect-sample/", {"sample_id": "S-77"}, format="json", **h)
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Sample Collected"
    assert r.data["sample_collected_at"] is not None

    r = api_client.post(
        f"{base}/result/",
        {"result_value": "450", "result_unit": "cells/uL", "result_interpretation": "Normal"},
        format="json",
        **h,
    )
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Completed"
    assert r.data["resulted_at"] is not None

    r = api_client.post(f"{base}/review/", {"reviewed_notes": "ok"}, format="json", **h)
    assert r.data["status"] == "Reviewed"

    r = api_client.put(f"{base}/communicate/", {}, format="json", **h)
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Communicated"
    assert r.data["allowed_operations"] == []

    r = api_client.post(f"{base}/cancel/", {"cancellation_reason": "late"}, format="json", **h)
    assert r.status_code == 409, r.data
    assert r.data["error"]["code"] == "TerminalState"


def test_result_before_collection_is_invalid_transition(api_client, tenant_id, facility_id, patient, cd4_test):
    order_id = _order(api_client, tenant_id, facility_id, patient, cd4_test)["id"]
    r = api_client.post(
        f"/api/v1/lab/orders/{order_id}/result/",
        {"result_interpretation": "Normal"},
        format="json",
        **scoped(tenant_id, facility_id),
    )
    assert r.status_code == 409, r.data
    assert r.data["error"]["code"] == "InvalidTransition"
    assert r.data["error"]["details"] == {"status": "Ordered", "operation": "enter-result"}


def test_cancel_requires_reason(api_client, tenant_id, facility_id, patient, cd4_test):
    order_id = _order(api_client, tenant_id, facility_id, patient, cd4_test)["id"]
    h = scoped(tenant_id, facility_id)

    r = api_client.post(f"/api/v1/lab/orders/{order_id}/cancel/", {}, format="json", **h)
    assert r.status_code == 400, r.data
    assert r.data["error"]["code"] == "ValidationError"

    r = api_client.post(
        f"/api/v1/lab/orders/{order_id}/cancel/", {"cancellation_reason": "Duplicate order"}, format="json", **h
    )
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Cancelled"
    assert r.data["cancellation_reason"] == "Duplicate order"


def test_reject_sample(api_client, tenant_id, facility_id, patient, cd4_test):
    order_id = _order(api_client, tenant_id, facility_id, patient, cd4_test)["id"]
    h = scoped(tenant_id, facility_id)
    api_client.post(f"/api/v1/lab/orders/{order_id}/collect-sample/", {"sample_id": "S-9"}, format="json", **h)

    r = api_client.post(f"/api/v1/lab/orders/{order_id}/reject/", {"reason": "Haemolysed"}, format="json", **h)
    assert r.status_code == 200, r.data
    assert r.data["status"] == "Rejected"

    codes = set(AuditEvent.objects.filter(entity_id=order_id).values_list("event_code", flat=True))
    assert codes == {"lab_order.created", "lab_order.collect-sample", "lab_order.reject-sample"}


def test_unknown_test_is_validation_error(api_client, tenant_id, facility_id, patient):
    r = api_client.post(
        "/api/v1/lab/orders/",
        {"patient_id": str(patient.id), "test_id": "00000000-0000-0000-0000-0000000000ff"},
        format="json",
        **scoped(tenant_id, facility_id),
    )
    assert r.status_code == 400, r.data
    assert r.data["error"]["details"]["errors"] == [{"field": "test_id", "reason": "unknown lab test"}]


def test_list_filters_by_status(api_client, tenant_id, facility_id, patient, cd4_test):
    first = _order(api_client, tenant_id, facility_id, patient, cd4_test)
    _order(api_client, tenant_id, facility_id, patient, cd4_test)
    h = scoped(tenant_id, facility_id)
    api_client.post(f"/api/v1/lab/orders/{first['id']}/collect-sample/", {"sample_id": "S-1"}, format="json", **h)

    r = api_client.get("/api/v1/lab/orders/", {"status": "Sample Collected"}, **h)
    assert r.status_code == 200, r.data
    assert [row["id"] for row in r.data["results"]] == [first["id"]]


def test_catalog_active_only(api_client, tenant_id, facility_id, cd4_test):
    LabTest.objects.create(tenant_id=tenant_id, facility_id=facility_id, test_code="OLD", test_name="Old", is_active=False)
    h = scoped(tenant_id, facility_id)

    assert api_client.get("/api/v1/lab/tests/", **h).data["count"] == 2
    r = api_client.get("/api/v1/lab/tests/?active_only=true", **h)
    assert [row["test_code"] for row in r.data["results"]] == ["CD4"]


def test_malformed_patient_filter_is_400(api_client, tenant_id, facility_id):
    r = api_client.get("/api/v1/lab/orders/", {"patient_id": "not-a-uuid"}, **scoped(tenant_id, facility_id))
    assert r.status_code == 400, r.data
    assert r.data["error"]["code"] == "validation_error"
    assert "patient_id" in r.data["error"]["details"]
