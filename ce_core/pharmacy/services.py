# ce_core/pharmacy/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from django.db import transaction

from ce_core.audit.services import AuditService
from ce_core.common.api.exceptions import raise_for_decision
from ce_core.common.decisions import Problem
from ce_core.common.numbering import create_with_number
from ce_core.patients.models import Patient
from ce_core.pharmacy import rules
from ce_core.pharmacy.constants import PRESCRIPTION_NUMBER_PREFIX, PrescriptionStatus
from ce_core.pharmacy.models import Prescription, PrescriptionItem
from ce_core.pharmacy.selectors import PharmacySelectors

logger = logging.getLogger(__name__)

CALCULATIONS = {
    "set_duration": rules.set_duration,
    "set_quantity": rules.set_quantity,
    "set_frequency": rules.set_frequency,
}


@dataclass
class PrescriptionResult:
    prescription: Prescription
    warnings: list[Problem] = field(default_factory=list)


def _line(item: dict) -> rules.PrescriptionLine:
    return rules.PrescriptionLine(
        drug_id=item.get("drug_id"),
        dosage=item.get("dosage"),
        frequency=item.get("frequency"),
        duration_days=item.get("duration_days"),
        quantity_prescribed=item.get("quantity_prescribed"),
        instructions=item.get("instructions"),
    )


class PrescriptionService:
    @staticmethod
    def calculate(*, item: dict, operation: str, value) -> rules.PrescriptionLine:
        """
        Apply one recompute step (set_duration / set_quantity / set_frequency)
        to an unsaved item. Nothing is persisted.
        """
        fn = CALCULATIONS[operation]
        decision = raise_for_decision(fn(_line(item), value))
        return decision.state

    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        actor_user_id: int | None,
        items: Iterable[dict],
        diagnosis: Optional[str] = None,
        clinical_notes: Optional[str] = None,
    ) -> PrescriptionResult:
        patient = Patient.objects.get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)
        lines = [_line(i) for i in items]
        drugs = PharmacySelectors.get_drugs(tenant_id=tenant_id, facility_id=facility_id, active_only=True)

        decision = rules.validate_prescription(lines, drugs)
        raise_for_decision(decision)

        rx = create_with_number(
            Prescription,
            number_field="prescription_number",
            prefix=PRESCRIPTION_NUMBER_PREFIX,
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            status=PrescriptionStatus.PENDING,
            diagnosis=(diagnosis or "").strip() or None,
            clinical_notes=(clinical_notes or "").strip() or None,
            prescribed_by_id=actor_user_id,
        )

        PrescriptionItem.objects.bulk_create(
            [
                PrescriptionItem(
                    tenant_id=tenant_id,
                    facility_id=facility_id,
                    prescription=rx,
                    drug_id=line.drug_id,
                    line_no=index + 1,
                    dosage=line.dosage.strip(),
                    frequency=line.frequency,
                    duration_days=line.duration_days,
                    quantity_prescribed=line.quantity_prescribed,
                    instructions=(line.instructions or "").strip() or None,
                )
                for index, line in enumerate(decision.state)
            ]
        )

        warnings = list(decision.warnings)
        if warnings:
            logger.info("Prescription %s created with %d stock warning(s)", rx.prescription_number, len(warnings))

        AuditService.log(
            event_code="prescription.created",
            entity=rx,
            actor_user_id=actor_user_id,
            metadata={"items": len(lines), "stock_warnings": len(warnings)},
        )
        return PrescriptionResult(prescription=rx, warnings=warnings)
