# ce_core/appointments/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ce_core.appointments.constants import APPOINTMENT_TYPES, AppointmentStatus
from ce_core.appointments.models import Appointment, VisitDetails
from ce_core.appointments.rules import allowed_operations, service_label


class AppointmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    appointment_type = serializers.ChoiceField(choices=APPOINTMENT_TYPES)
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField(required=False, allow_null=True)
    status = serializers.ChoiceField(
        choices=sorted(AppointmentStatus.INITIAL), required=False, default=AppointmentStatus.SCHEDULED
    )

    auto_generated = serializers.BooleanField(required=False, default=False)
    source_type = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    source_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    service_type = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    service_record_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)

    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CheckInSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CancelSerializer(serializers.Serializer):
    # Blank is allowed here so the lifecycle rules report the missing reason
    cancellation_reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class RescheduleSerializer(serializers.Serializer):
    new_appointment_date = serializers.DateField(required=False, allow_null=True)
    new_appointment_time = serializers.TimeField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class VisitDetailsInputSerializer(serializers.Serializer):
    chief_complaint = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    assessment = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    diagnosis = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    treatment_plan = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    lab_tests_ordered = serializers.BooleanField(required=False, default=False)
    drugs_prescribed = serializers.BooleanField(required=False, default=False)
    counseling_provided = serializers.BooleanField(required=False, default=False)
    referral_made = serializers.BooleanField(required=False, default=False)
    next_appointment_date = serializers.DateField(required=False, allow_null=True)
    next_appointment_reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CompleteSerializer(serializers.Serializer):
    clinical_summary = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    visit_details = VisitDetailsInputSerializer(required=False, allow_null=True)


class VisitDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = VisitDetails
        fields = [
            "id",
            "appointment_id",
            "patient_id",
            "chief_complaint",
            "assessment",
            "diagnosis",
            "treatment_plan",
            "lab_tests_ordered",
            "drugs_prescribed",
            "counseling_provided",
            "referral_made",
            "next_appointment_date",
            "next_appointment_reason",
            "clinician_id",
            "created_at",
        ]
        read_only_fields = fields


class AppointmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    service_label = serializers.SerializerMethodField()
    allowed_operations = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "appointment_number",
            "appointment_type",
            "status",
            "appointment_date",
            "appointment_time",
            "auto_generated",
            "source_type",
            "service_type",
            "service_record_id",
            "service_label",
            "reason",
            "notes",
            "clinical_summary",
            "cancellation_reason",
            "rescheduled_date",
            "rescheduled_time",
            "reschedule_reason",
            "checked_in_at",
            "started_at",
            "completed_at",
            "cancelled_at",
            "allowed_operations",
            "created_at",
        ]
        read_only_fields = fields

    def get_service_label(self, obj) -> str:
        return service_label(service_type=obj.service_type, source_type=obj.source_type, reason=obj.reason)

    def get_allowed_operations(self, obj) -> list[str]:
        return allowed_operations(obj.status)
