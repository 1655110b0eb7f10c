# ce_core/pharmacy/models.py
from django.db import models

from ce_core.common.models import ScopedModel
from ce_core.patients.models import Patient
from ce_core.pharmacy.constants import FREQUENCIES, PrescriptionStatus


class Drug(ScopedModel):
    """
    Drug catalog entry. Read-mostly: prescription rules consume DrugSnapshots
    built from these rows, never the rows themselves.
    """
    commodity_name = models.CharField(max_length=255)
    commodity_id = models.CharField(max_length=64)
    pack_type = models.CharField(max_length=64, blank=True)
    pack_type_id = models.CharField(max_length=64, blank=True)
    commodity_type = models.CharField(max_length=64, blank=True)

    quantity = models.IntegerField(null=True, blank=True)
    batch_no = models.CharField(max_length=64, null=True, blank=True)
    expiry_month = models.PositiveSmallIntegerField(null=True, blank=True)
    expiry_year = models.PositiveSmallIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "pharmacy_drug"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "commodity_id"], name="uq_drug_scope_commodity_id"
            ),
        ]

    def __str__(self) -> str:
        return self.commodity_name


class Prescription(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="prescriptions")
    prescription_number = models.CharField(max_length=32, unique=True)
    status = models.CharField(
        max_length=32,
        choices=[(s, s) for s in PrescriptionStatus.ALL],
        default=PrescriptionStatus.PENDING,
        db_index=True,
    )
    diagnosis = models.TextField(null=True, blank=True)
    clinical_notes = models.TextField(null=True, blank=True)

    prescribed_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "pharmacy_prescription"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "patient"]),
        ]

    def __str__(self) -> str:
        return f"{self.prescription_number} ({self.status})"


class PrescriptionItem(ScopedModel):
    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name="items")
    drug = models.ForeignKey(Drug, on_delete=models.PROTECT, related_name="prescription_items")
    line_no = models.PositiveIntegerField()

    dosage = models.CharField(max_length=128)
    frequency = models.CharField(max_length=32, choices=[(f, f) for f in FREQUENCIES])
    duration_days = models.PositiveIntegerField()
    quantity_prescribed = models.PositiveIntegerField()
    instructions = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "pharmacy_prescription_item"
        ordering = ["line_no"]
        constraints = [
            models.UniqueConstraint(fields=["prescription", "line_no"], name="uq_prescription_item_line"),
        ]
