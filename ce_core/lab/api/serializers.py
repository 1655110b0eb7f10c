# ce_core/lab/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ce_core.lab.constants import PRIORITIES
from ce_core.lab.models import LabOrder, LabTest
from ce_core.lab.rules import allowed_operations


class LabTestSerializer(serializers.ModelSerializer):
    class Meta:
        model = LabTest
        fields = [
            "id",
            "test_code",
            "test_name",
            "test_category",
            "sample_type",
            "reference_range_text",
            "turnaround_time_hours",
            "is_active",
        ]
        read_only_fields = fields


class LabOrderCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    test_id = serializers.UUIDField()
    priority = serializers.ChoiceField(choices=PRIORITIES, required=False, default="Routine")
    clinical_indication = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    clinical_notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    service_type = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=32)
    service_record_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)


class CollectSampleSerializer(serializers.Serializer):
    sample_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64, default=None)


class EnterResultSerializer(serializers.Serializer):
    result_value = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    result_unit = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=32)
    # validated by the lab order rules so the envelope names the field
    result_interpretation = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)
    result_notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class ReviewSerializer(serializers.Serializer):
    reviewed_notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CommunicateSerializer(serializers.Serializer):
    communicated_notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    cancellation_reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class RejectSampleSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)


class LabOrderSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    test_code = serializers.CharField(source="test.test_code", read_only=True)
    test_name = serializers.CharField(source="test.test_name", read_only=True)
    allowed_operations = serializers.SerializerMethodField()

    class Meta:
        model = LabOrder
        fields = [
            "id",
            "order_number",
            "patient_id",
            "patient_name",
            "test_id",
            "test_code",
            "test_name",
            "priority",
            "status",
            "clinical_indication",
            "clinical_notes",
            "service_type",
            "service_record_id",
            "sample_id",
            "sample_collected_at",
            "result_value",
            "result_unit",
            "result_interpretation",
            "result_notes",
            "resulted_at",
            "reviewed_notes",
            "reviewed_at",
            "communicated_notes",
            "communicated_at",
            "cancellation_reason",
            "cancelled_at",
            "allowed_operations",
            "created_at",
        ]
        read_only_fields = fields

    def get_allowed_operations(self, obj) -> list[str]:
        return allowed_operations(obj.status)
