# ce_core/patients/models.py
from django.db import models

from ce_core.common.models import ScopedModel


class Patient(ScopedModel):
    """
    Patient record scoped to tenant+facility.
    Appointments, enrollments, lab orders and prescriptions all hang off Patient.
    """
    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=32, blank=True)

    # facility-local hospital number
    hospital_no = models.CharField(max_length=64)

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "hospital_no"],
                name="uq_patient_scope_hospital_no",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "full_name"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.hospital_no})"
