# ce_core/patients/services.py
from __future__ import annotations

from uuid import UUID

from django.db import IntegrityError, transaction

from ce_core.audit.services import AuditService
from ce_core.patients.models import Patient


class PatientService:
    @staticmethod
    @transaction.atomic
    def register(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        full_name: str,
        hospital_no: str,
        phone: str = "",
        gender: str = "",
        date_of_birth=None,
    ) -> Patient:
        try:
            with transaction.atomic(savepoint=True):
                patient = Patient.objects.create(
                    tenant_id=tenant_id,
                    facility_id=facility_id,
                    full_name=full_name.strip(),
                    hospital_no=hospital_no.strip(),
                    phone=phone or "",
                    gender=gender or "",
                    date_of_birth=date_of_birth,
                )
        except IntegrityError:
            # hospital_no uniqueness is enforced by constraint; surface readable error.
            raise ValueError("Hospital number already exists for this tenant/facility.")

        AuditService.log(
            event_code="patient.registered",
            entity=patient,
            actor_user_id=actor_user_id,
            metadata={"hospital_no": patient.hospital_no},
        )
        return patient
