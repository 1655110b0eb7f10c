# ce_core/pharmacy/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from ce_core.pharmacy.models import Drug, Prescription
from ce_core.pharmacy.rules import DrugSnapshot


def drug_snapshot(drug: Drug) -> DrugSnapshot:
    return DrugSnapshot(
        id=drug.id,
        commodity_name=drug.commodity_name,
        quantity=drug.quantity,
        is_active=drug.is_active,
    )


class PharmacySelectors:
    @staticmethod
    def drugs(*, tenant_id: UUID, facility_id: UUID, active_only: bool = False) -> QuerySet[Drug]:
        qs = Drug.objects.in_scope(tenant_id, facility_id)
        if active_only:
            qs = qs.filter(is_active=True)
        return qs.order_by("commodity_name")

    @staticmethod
    def get_drugs(*, tenant_id: UUID, facility_id: UUID, active_only: bool = True) -> dict:
        """
        Catalog snapshot keyed by drug id, taken once per decision call.
        """
        qs = PharmacySelectors.drugs(tenant_id=tenant_id, facility_id=facility_id, active_only=active_only)
        return {d.id: drug_snapshot(d) for d in qs}

    @staticmethod
    def prescriptions(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Prescription]:
        return (
            Prescription.objects.in_scope(tenant_id, facility_id)
            .select_related("patient")
            .prefetch_related("items__drug")
            .order_by("-created_at")
        )

    @staticmethod
    def get_prescription(*, tenant_id: UUID, facility_id: UUID, prescription_id: UUID) -> Prescription:
        return (
            Prescription.objects.select_related("patient")
            .prefetch_related("items__drug")
            .get(id=prescription_id, tenant_id=tenant_id, facility_id=facility_id)
        )
