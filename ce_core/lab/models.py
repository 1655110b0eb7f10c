# ce_core/lab/models.py
from django.db import models

from ce_core.common.models import ScopedModel
from ce_core.lab.constants import PRIORITIES, RESULT_INTERPRETATIONS, SAMPLE_TYPES, TEST_CATEGORIES, LabOrderStatus
from ce_core.patients.models import Patient


def _choices(values):
    return [(v, v) for v in values]


class LabTest(ScopedModel):
    """
    Facility lab test catalog entry.
    """
    test_code = models.CharField(max_length=32)
    test_name = models.CharField(max_length=255)
    test_category = models.CharField(max_length=32, choices=_choices(TEST_CATEGORIES), default="Other")
    sample_type = models.CharField(max_length=16, choices=_choices(SAMPLE_TYPES), default="Blood")
    reference_range_text = models.CharField(max_length=255, null=True, blank=True)
    turnaround_time_hours = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "lab_test"
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "facility_id", "test_code"], name="uq_lab_test_scope_code"),
        ]

    def __str__(self) -> str:
        return f"{self.test_code} - {self.test_name}"


class LabOrder(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="lab_orders")
    test = models.ForeignKey(LabTest, on_delete=models.PROTECT, related_name="orders")
    order_number = models.CharField(max_length=32, unique=True)

    priority = models.CharField(max_length=16, choices=_choices(PRIORITIES), default="Routine")
    status = models.CharField(
        max_length=32, choices=_choices(LabOrderStatus.ALL), default=LabOrderStatus.ORDERED, db_index=True
    )

    clinical_indication = models.TextField(null=True, blank=True)
    clinical_notes = models.TextField(null=True, blank=True)

    # Originating service (e.g. ART enrollment for baseline viral load)
    service_type = models.CharField(max_length=32, null=True, blank=True)
    service_record_id = models.CharField(max_length=64, null=True, blank=True)

    sample_id = models.CharField(max_length=64, null=True, blank=True)
    sample_collected_at = models.DateTimeField(null=True, blank=True)

    result_value = models.TextField(null=True, blank=True)
    result_unit = models.CharField(max_length=32, null=True, blank=True)
    result_interpretation = models.CharField(
        max_length=32, choices=_choices(RESULT_INTERPRETATIONS), null=True, blank=True
    )
    result_notes = models.TextField(null=True, blank=True)
    resulted_at = models.DateTimeField(null=True, blank=True)

    reviewed_notes = models.TextField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    communicated_notes = models.TextField(null=True, blank=True)
    communicated_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    ordered_by_id = models.BigIntegerField(null=True, blank=True)
    updated_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "lab_order"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "status"]),
            models.Index(fields=["tenant_id", "facility_id", "patient"]),
        ]

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"
