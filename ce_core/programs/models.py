# ce_core/programs/models.py
from django.db import models

from ce_core.common.models import ScopedModel
from ce_core.patients.models import Patient
from ce_core.programs.constants import (
    CARE_ENTRY_POINTS,
    EXPOSURE_MODES,
    HIV_TEST_MODES,
    PEP_DURATIONS,
    PREP_TYPES,
    PRIOR_ART_TYPES,
    SUPPORTER_RELATIONSHIPS,
    ArtStatus,
    HivStatus,
    HtsResult,
    PepStatus,
    PrepStatus,
)


def _choices(values):
    return [(v, v) for v in values]


class HtsRecord(ScopedModel):
    """
    HIV Testing Services record. Upstream of PEP and PrEP enrollment.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="hts_records")
    client_code = models.CharField(max_length=64)
    test_date = models.DateField(null=True, blank=True)
    final_result = models.CharField(max_length=16, choices=_choices(HtsResult.ALL), null=True, blank=True)
    is_completed = models.BooleanField(default=False)

    class Meta:
        db_table = "programs_hts_record"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "patient"]),
        ]

    def __str__(self) -> str:
        return f"HTS {self.client_code} ({self.final_result or 'pending'})"


class ArtEnrollment(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="art_enrollments")
    art_no = models.CharField(max_length=32, unique=True)

    date_confirmed_hiv_positive = models.DateField()
    date_enrolled_into_hiv_care = models.DateField()
    mode_of_hiv_test = models.CharField(max_length=16, choices=_choices(HIV_TEST_MODES), null=True, blank=True)
    entry_point = models.CharField(max_length=32, choices=_choices(CARE_ENTRY_POINTS))
    where_test_was_done = models.CharField(max_length=255, null=True, blank=True)
    prior_art = models.CharField(max_length=64, choices=_choices(PRIOR_ART_TYPES), null=True, blank=True)

    relationship_with_next_of_kin = models.CharField(max_length=64, null=True, blank=True)
    name_of_next_of_kin = models.CharField(max_length=255, null=True, blank=True)
    phone_no_of_next_of_kin = models.CharField(max_length=32, null=True, blank=True)

    status = models.CharField(
        max_length=32, choices=_choices(ArtStatus.ALL), default=ArtStatus.IN_PROGRESS, db_index=True
    )
    next_appointment_date = models.DateField(null=True, blank=True)

    created_by_id = models.BigIntegerField(null=True, blank=True)
    updated_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "programs_art_enrollment"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "patient"]),
        ]

    def __str__(self) -> str:
        return f"{self.art_no} ({self.status})"


class PepEnrollment(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="pep_enrollments")
    hts_record = models.ForeignKey(HtsRecord, on_delete=models.PROTECT, related_name="pep_enrollments")
    pep_no = models.CharField(max_length=32, unique=True)

    mode_of_exposure = models.CharField(max_length=32, choices=_choices(EXPOSURE_MODES))
    duration_before_pep = models.CharField(max_length=8, choices=_choices(PEP_DURATIONS))
    # derived from hts_record.final_result at write time
    hiv_status_at_exposure = models.CharField(max_length=16, choices=_choices(HivStatus.ALL))

    pep_supporter = models.CharField(max_length=255, null=True, blank=True)
    supporter_relationship = models.CharField(
        max_length=16, choices=_choices(SUPPORTER_RELATIONSHIPS), null=True, blank=True
    )
    supporter_telephone = models.CharField(max_length=32, null=True, blank=True)

    status = models.CharField(max_length=16, choices=_choices(PepStatus.ALL), default=PepStatus.ACTIVE, db_index=True)

    created_by_id = models.BigIntegerField(null=True, blank=True)
    updated_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "programs_pep_enrollment"

    def __str__(self) -> str:
        return f"{self.pep_no} ({self.duration_before_pep})"


class PrepCommencement(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="prep_commencements")
    hts_record = models.ForeignKey(HtsRecord, on_delete=models.PROTECT, related_name="prep_commencements")
    prep_no = models.CharField(max_length=32, unique=True)

    date_initial_adherence_counseling = models.DateField()
    date_prep_initiated = models.DateField(null=True, blank=True)
    prep_type_at_start = models.CharField(max_length=32, choices=_choices(PREP_TYPES), null=True, blank=True)

    history_of_drug_allergies = models.BooleanField(default=False)
    allergy_details = models.TextField(null=True, blank=True)

    transferred_in = models.BooleanField(default=False)
    previous_enrollment_id = models.CharField(max_length=64, null=True, blank=True)
    transferred_from_facility = models.CharField(max_length=255, null=True, blank=True)

    status = models.CharField(
        max_length=16, choices=_choices(PrepStatus.ALL), default=PrepStatus.ACTIVE, db_index=True
    )

    created_by_id = models.BigIntegerField(null=True, blank=True)
    updated_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "programs_prep_commencement"

    def __str__(self) -> str:
        return f"{self.prep_no} ({self.status})"
