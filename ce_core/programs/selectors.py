# ce_core/programs/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from ce_core.programs import rules
from ce_core.programs.constants import Program
from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement

_MODELS = {
    Program.ART: ArtEnrollment,
    Program.PEP: PepEnrollment,
    Program.PREP: PrepCommencement,
}


def hts_snapshot(rec: HtsRecord) -> rules.HtsSnapshot:
    return rules.HtsSnapshot(
        id=rec.id,
        patient_id=rec.patient_id,
        final_result=rec.final_result,
        is_completed=rec.is_completed,
    )


class ProgramSelectors:
    @staticmethod
    def enrollments(*, tenant_id: UUID, facility_id: UUID, program: str) -> QuerySet:
        return (
            _MODELS[program]
            .objects.in_scope(tenant_id, facility_id)
            .select_related("patient")
            .order_by("-created_at")
        )

    @staticmethod
    def get_enrollment(*, tenant_id: UUID, facility_id: UUID, program: str, enrollment_id: UUID):
        return _MODELS[program].objects.select_related("patient").get(
            id=enrollment_id, tenant_id=tenant_id, facility_id=facility_id
        )

    @staticmethod
    def enrollment_snapshots(
        *, tenant_id: UUID, facility_id: UUID, program: str, patient_id: Optional[UUID] = None
    ) -> list[rules.EnrollmentSnapshot]:
        qs = _MODELS[program].objects.in_scope(tenant_id, facility_id)
        if patient_id is not None:
            qs = qs.filter(patient_id=patient_id)

        if program == Program.ART:
            rows = qs.values_list("patient_id", "status")
            return [rules.EnrollmentSnapshot(program=program, patient_id=p, status=s) for p, s in rows]

        rows = qs.values_list("patient_id", "status", "hts_record_id")
        return [
            rules.EnrollmentSnapshot(program=program, patient_id=p, status=s, hts_record_id=h) for p, s, h in rows
        ]

    @staticmethod
    def hts_records(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[HtsRecord]:
        return (
            HtsRecord.objects.in_scope(tenant_id, facility_id)
            .select_related("patient")
            .order_by("-test_date", "-created_at")
        )

    @staticmethod
    def eligible_hts_records(*, tenant_id: UUID, facility_id: UUID, program: str) -> list[HtsRecord]:
        """
        Recomputed on every call from the two current collections.
        """
        records = list(ProgramSelectors.hts_records(tenant_id=tenant_id, facility_id=facility_id))
        enrollments = ProgramSelectors.enrollment_snapshots(tenant_id=tenant_id, facility_id=facility_id, program=program)

        by_id = {r.id: r for r in records}
        eligible = rules.eligible_hts_records(program, [hts_snapshot(r) for r in records], enrollments)
        return [by_id[s.id] for s in eligible]
