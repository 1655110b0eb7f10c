# ce_core/appointments/models.py
from django.db import models

from ce_core.appointments.constants import APPOINTMENT_TYPES, AppointmentStatus
from ce_core.common.models import ScopedModel
from ce_core.patients.models import Patient


class AppointmentStatusChoices(models.TextChoices):
    SCHEDULED = AppointmentStatus.SCHEDULED, "Scheduled"
    CONFIRMED = AppointmentStatus.CONFIRMED, "Confirmed"
    CHECKED_IN = AppointmentStatus.CHECKED_IN, "Checked-in"
    IN_PROGRESS = AppointmentStatus.IN_PROGRESS, "In Progress"
    COMPLETED = AppointmentStatus.COMPLETED, "Completed"
    CANCELLED = AppointmentStatus.CANCELLED, "Cancelled"
    NO_SHOW = AppointmentStatus.NO_SHOW, "No Show"
    RESCHEDULED = AppointmentStatus.RESCHEDULED, "Rescheduled"


class Appointment(ScopedModel):
    """
    A scheduled patient visit. Status only moves through AppointmentService,
    which consults appointments.rules before every write.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="appointments")
    appointment_number = models.CharField(max_length=32, unique=True)

    appointment_type = models.CharField(max_length=32, choices=[(t, t) for t in APPOINTMENT_TYPES])
    status = models.CharField(
        max_length=32,
        choices=AppointmentStatusChoices.choices,
        default=AppointmentStatusChoices.SCHEDULED,
        db_index=True,
    )
    appointment_date = models.DateField(db_index=True)
    appointment_time = models.TimeField(null=True, blank=True)

    # Source / service context (auto-generated follow-ups, refills...)
    auto_generated = models.BooleanField(default=False)
    source_type = models.CharField(max_length=64, blank=True, null=True)
    source_id = models.CharField(max_length=64, blank=True, null=True)
    service_type = models.CharField(max_length=64, blank=True, null=True)
    service_record_id = models.CharField(max_length=64, blank=True, null=True)

    reason = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    clinical_summary = models.TextField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)

    rescheduled_date = models.DateField(null=True, blank=True)
    rescheduled_time = models.TimeField(null=True, blank=True)
    reschedule_reason = models.TextField(blank=True, null=True)

    checked_in_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by_id = models.BigIntegerField(null=True, blank=True)
    updated_by_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "appointments_appointment"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "status"]),
            models.Index(fields=["tenant_id", "facility_id", "appointment_date"]),
            models.Index(fields=["tenant_id", "facility_id", "patient"]),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_number} ({self.status})"


class VisitDetails(ScopedModel):
    """
    Clinical record of a completed visit. Exactly one per completed appointment.
    """
    appointment = models.OneToOneField(Appointment, on_delete=models.PROTECT, related_name="visit_details")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="visit_details")

    chief_complaint = models.TextField(blank=True, null=True)
    assessment = models.TextField(blank=True, null=True)
    diagnosis = models.TextField(blank=True, null=True)
    treatment_plan = models.TextField(blank=True, null=True)

    lab_tests_ordered = models.BooleanField(default=False)
    drugs_prescribed = models.BooleanField(default=False)
    counseling_provided = models.BooleanField(default=False)
    referral_made = models.BooleanField(default=False)

    next_appointment_date = models.DateField(null=True, blank=True)
    next_appointment_reason = models.TextField(blank=True, null=True)

    clinician_id = models.BigIntegerField(null=True, blank=True)

    class Meta:
        db_table = "appointments_visit_details"
