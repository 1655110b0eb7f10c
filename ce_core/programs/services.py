# ce_core/programs/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

from django.db import DatabaseError, transaction
from rest_framework.exceptions import APIException

from ce_core.audit.services import AuditService
from ce_core.common.api.exceptions import raise_for_decision
from ce_core.common.decisions import ErrorCode, Problem
from ce_core.common.numbering import create_with_number
from ce_core.lab.services import LabOrderService
from ce_core.patients.models import Patient
from ce_core.programs import rules
from ce_core.programs.constants import CREATE_VIRAL_LOAD_ORDER, NUMBER_PREFIXES, Program
from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement
from ce_core.programs.selectors import ProgramSelectors, hts_snapshot

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentResult:
    enrollment: Any
    warnings: list[Problem] = field(default_factory=list)


class EnrollmentService:
    """
    Program enrollment writes. Duplicate checks run through the rules before
    the insert; the unique number is generated at insert time.
    """

    @staticmethod
    def _existing(*, tenant_id: UUID, facility_id: UUID, program: str, patient_id) -> list[rules.EnrollmentSnapshot]:
        return ProgramSelectors.enrollment_snapshots(
            tenant_id=tenant_id, facility_id=facility_id, program=program, patient_id=patient_id
        )

    @staticmethod
    def _hts(*, tenant_id: UUID, facility_id: UUID, hts_record_id: Optional[UUID]) -> Optional[HtsRecord]:
        """
        Lock the record's patient, then the record. Duplicate checks are per
        patient, so two HTS records of one person must still queue on one row.
        """
        if not hts_record_id:
            return None
        patient_id = (
            HtsRecord.objects.in_scope(tenant_id, facility_id).values_list("patient_id", flat=True).get(id=hts_record_id)
        )
        Patient.objects.select_for_update().get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)
        return HtsRecord.objects.select_for_update().get(id=hts_record_id, tenant_id=tenant_id, facility_id=facility_id)

    @staticmethod
    def _audit(program: str, obj, *, actor_user_id: int | None, number: str):
        AuditService.log(
            event_code=f"{program.lower()}.enrolled",
            entity=obj,
            actor_user_id=actor_user_id,
            metadata={"patient_id": str(obj.patient_id), "number": number},
        )

    # ---------------------------------------------------------------------
    # ART
    # ---------------------------------------------------------------------
    @staticmethod
    @transaction.atomic
    def enroll_art(
        *, tenant_id: UUID, facility_id: UUID, patient_id: UUID, actor_user_id: int | None, **fields
    ) -> EnrollmentResult:
        # Row lock on the patient serialises concurrent enrollments of the same person
        patient = Patient.objects.select_for_update().get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)

        decision = rules.enroll_art(
            patient_id=patient.id,
            fields=fields,
            existing=EnrollmentService._existing(
                tenant_id=tenant_id, facility_id=facility_id, program=Program.ART, patient_id=patient.id
            ),
        )
        raise_for_decision(decision)

        state = dict(decision.state)
        state.pop("patient_id")
        art = create_with_number(
            ArtEnrollment,
            number_field="art_no",
            prefix=NUMBER_PREFIXES[Program.ART],
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            created_by_id=actor_user_id,
            **state,
        )
        EnrollmentService._audit(Program.ART, art, actor_user_id=actor_user_id, number=art.art_no)

        warnings = list(decision.warnings)
        cmd = decision.command(CREATE_VIRAL_LOAD_ORDER)
        if cmd is not None:
            problem = EnrollmentService._order_baseline_viral_load(
                art, cmd.payload, tenant_id=tenant_id, facility_id=facility_id, actor_user_id=actor_user_id
            )
            if problem is not None:
                warnings.append(problem)

        logger.info("ART enrollment %s created for patient %s", art.art_no, patient.id)
        return EnrollmentResult(enrollment=art, warnings=warnings)

    @staticmethod
    def _order_baseline_viral_load(
        art: ArtEnrollment, payload: dict, *, tenant_id: UUID, facility_id: UUID, actor_user_id: int | None
    ) -> Optional[Problem]:
        """
        Fire-and-report: a failed order never unwinds the enrollment.
        The savepoint keeps the outer transaction usable after a database error.
        """
        try:
            with transaction.atomic(savepoint=True):
                LabOrderService.create_viral_load_order(
                    tenant_id=tenant_id,
                    facility_id=facility_id,
                    patient_id=payload["patient_id"],
                    enrollment_id=art.id,
                    indication=payload["indication"],
                    actor_user_id=actor_user_id,
                )
        except (APIException, DatabaseError) as exc:
            logger.error("Baseline viral load order failed for %s", art.art_no, exc_info=exc)
            return Problem(
                code=ErrorCode.NON_FATAL_SIDE_EFFECT_FAILURE,
                message="Enrollment saved, but the baseline viral load order could not be created.",
                details={"command": CREATE_VIRAL_LOAD_ORDER, "enrollment_id": str(art.id), "reason": str(exc)},
            )
        return None

    # ---------------------------------------------------------------------
    # PEP
    # ---------------------------------------------------------------------
    @staticmethod
    @transaction.atomic
    def enroll_pep(
        *, tenant_id: UUID, facility_id: UUID, hts_record_id: Optional[UUID], actor_user_id: int | None, **fields
    ) -> EnrollmentResult:
        hts = EnrollmentService._hts(tenant_id=tenant_id, facility_id=facility_id, hts_record_id=hts_record_id)
        snapshot = hts_snapshot(hts) if hts else None

        decision = rules.enroll_pep(
            hts=snapshot,
            fields=fields,
            existing=EnrollmentService._existing(
                tenant_id=tenant_id,
                facility_id=facility_id,
                program=Program.PEP,
                patient_id=snapshot.patient_id if snapshot else None,
            ),
        )
        raise_for_decision(decision)

        state = dict(decision.state)
        state.pop("hts_record_id")
        pep = create_with_number(
            PepEnrollment,
            number_field="pep_no",
            prefix=NUMBER_PREFIXES[Program.PEP],
            tenant_id=tenant_id,
            facility_id=facility_id,
            hts_record=hts,
            created_by_id=actor_user_id,
            **state,
        )
        EnrollmentService._audit(Program.PEP, pep, actor_user_id=actor_user_id, number=pep.pep_no)
        return EnrollmentResult(enrollment=pep, warnings=list(decision.warnings))

    # ---------------------------------------------------------------------
    # PrEP
    # ---------------------------------------------------------------------
    @staticmethod
    @transaction.atomic
    def enroll_prep(
        *, tenant_id: UUID, facility_id: UUID, hts_record_id: Optional[UUID], actor_user_id: int | None, **fields
    ) -> EnrollmentResult:
        hts = EnrollmentService._hts(tenant_id=tenant_id, facility_id=facility_id, hts_record_id=hts_record_id)
        snapshot = hts_snapshot(hts) if hts else None

        decision = rules.enroll_prep(
            hts=snapshot,
            fields=fields,
            existing=EnrollmentService._existing(
                tenant_id=tenant_id,
                facility_id=facility_id,
                program=Program.PREP,
                patient_id=snapshot.patient_id if snapshot else None,
            ),
        )
        raise_for_decision(decision)

        state = dict(decision.state)
        state.pop("hts_record_id")
        prep = create_with_number(
            PrepCommencement,
            number_field="prep_no",
            prefix=NUMBER_PREFIXES[Program.PREP],
            tenant_id=tenant_id,
            facility_id=facility_id,
            hts_record=hts,
            created_by_id=actor_user_id,
            **state,
        )
        EnrollmentService._audit(Program.PREP, prep, actor_user_id=actor_user_id, number=prep.prep_no)
        return EnrollmentResult(enrollment=prep, warnings=list(decision.warnings))


class HtsService:
    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        actor_user_id: int | None,
        client_code: str,
        test_date=None,
        final_result: Optional[str] = None,
        is_completed: bool = False,
    ) -> HtsRecord:
        patient = Patient.objects.get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)
        rec = HtsRecord.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            client_code=client_code,
            test_date=test_date,
            final_result=final_result,
            is_completed=is_completed,
        )
        AuditService.log(
            event_code="hts.recorded",
            entity=rec,
            actor_user_id=actor_user_id,
            metadata={"final_result": final_result, "is_completed": is_completed},
        )
        return rec
