import re
from datetime import date
from itertools import chain, repeat

import pytest

from ce_core.common import numbering
from ce_core.common.numbering import create_with_number, generate_number
from ce_core.pharmacy.models import Prescription

pytestmark = pytest.mark.django_db


def test_generate_number_format():
    assert generate_number("ART", on=date(2025, 1, 14), randbelow=lambda n: 42) == "ART-20250114-00042"
    assert re.fullmatch(r"PEP-\d{8}-\d{5}", generate_number("PEP"))


def test_create_with_number_retries_on_collision(monkeypatch, patient, tenant_id, facility_id):
    Prescription.objects.create(
        tenant_id=tenant_id, facility_id=facility_id, patient=patient, prescription_number="RX-20250114-00001"
    )

    numbers = chain(["RX-20250114-00001"], repeat("RX-20250114-00002"))
    monkeypatch.setattr(numbering, "generate_number", lambda prefix, **kw: next(numbers))

    rx = create_with_number(
        Prescription,
        number_field="prescription_number",
        prefix="RX",
        tenant_id=tenant_id,
        facility_id=facility_id,
        patient=patient,
    )
    assert rx.prescription_number == "RX-20250114-00002"


def test_create_with_number_gives_up_after_max_attempts(monkeypatch, patient, tenant_id, facility_id, settings):
    from django.db import IntegrityError

    settings.CE_NUMBER_MAX_ATTEMPTS = 3
    Prescription.objects.create(
        tenant_id=tenant_id, facility_id=facility_id, patient=patient, prescription_number="RX-20250114-00001"
    )
    calls = []

    def _same(prefix, **kw):
        calls.append(prefix)
        return "RX-20250114-00001"

    monkeypatch.setattr(numbering, "generate_number", _same)

    with pytest.raises(IntegrityError):
        create_with_number(
            Prescription,
            number_field="prescription_number",
            prefix="RX",
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
        )
    assert len(calls) == 3
