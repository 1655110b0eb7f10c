# ce_core/lab/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from ce_core.lab.models import LabOrder, LabTest
from ce_core.lab.rules import LabTestSnapshot


class LabSelectors:
    @staticmethod
    def orders(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[LabOrder]:
        return (
            LabOrder.objects.in_scope(tenant_id, facility_id)
            .select_related("patient", "test")
            .order_by("-created_at")
        )

    @staticmethod
    def get_order(*, tenant_id: UUID, facility_id: UUID, order_id: UUID) -> LabOrder:
        return LabOrder.objects.select_related("patient", "test").get(
            id=order_id, tenant_id=tenant_id, facility_id=facility_id
        )

    @staticmethod
    def test_snapshot(
        *, tenant_id: UUID, facility_id: UUID, test_id: Optional[UUID] = None, test_code: Optional[str] = None
    ) -> Optional[LabTestSnapshot]:
        qs = LabTest.objects.in_scope(tenant_id, facility_id)
        if test_id is not None:
            qs = qs.filter(id=test_id)
        elif test_code is not None:
            qs = qs.filter(test_code=test_code)
        else:
            return None

        test = qs.first()
        if test is None:
            return None
        return LabTestSnapshot(id=test.id, test_code=test.test_code, is_active=test.is_active)
