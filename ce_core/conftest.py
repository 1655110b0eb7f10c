# ce_core/conftest.py
import uuid

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from ce_core.patients.models import Patient


@pytest.fixture
def tenant_id():
    return uuid.UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def facility_id():
    return uuid.UUID("00000000-0000-0000-0000-000000000101")


@pytest.fixture
def scope_headers(tenant_id, facility_id):
    """
    DRF test client requires the HTTP_ prefix.
    """
    return {
        "HTTP_X_TENANT_ID": str(tenant_id),
        "HTTP_X_FACILITY_ID": str(facility_id),
    }


@pytest.fixture
def user(db):
    User = get_user_model()
    return User.objects.create_user(username="clinician", password="testpass", is_active=True)


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def patient(db, tenant_id, facility_id):
    return Patient.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        full_name="Test Patient",
        hospital_no="HN-TEST-001",
    )


@pytest.fixture
def other_patient(db, tenant_id, facility_id):
    return Patient.objects.create(
        tenant_id=tenant_id,
        facility_id=facility_id,
        full_name="Second Patient",
        hospital_no="HN-TEST-002",
    )
