# ce_core/pharmacy/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ce_core.pharmacy.models import Drug, Prescription, PrescriptionItem
from ce_core.pharmacy.services import CALCULATIONS


class DrugSerializer(serializers.ModelSerializer):
    class Meta:
        model = Drug
        fields = [
            "id",
            "commodity_name",
            "commodity_id",
            "pack_type",
            "pack_type_id",
            "commodity_type",
            "quantity",
            "batch_no",
            "expiry_month",
            "expiry_year",
            "is_active",
        ]
        read_only_fields = fields


class PrescriptionItemInputSerializer(serializers.Serializer):
    # Item rules (drug resolved, dosage, frequency, counts >= 1) are checked
    # together at submission so every bad item is reported at once.
    drug_id = serializers.UUIDField(required=False, allow_null=True)
    dosage = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    frequency = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    duration_days = serializers.IntegerField(required=False, allow_null=True)
    quantity_prescribed = serializers.IntegerField(required=False, allow_null=True)
    instructions = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    diagnosis = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    clinical_notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    items = PrescriptionItemInputSerializer(many=True, required=False, default=list)


class CalculateSerializer(serializers.Serializer):
    item = PrescriptionItemInputSerializer()
    operation = serializers.ChoiceField(choices=sorted(CALCULATIONS))
    value = serializers.JSONField()

    def validate(self, attrs):
        value = attrs["value"]
        if attrs["operation"] == "set_frequency":
            if not isinstance(value, str):
                raise serializers.ValidationError({"value": "frequency must be a string"})
        elif isinstance(value, bool) or not isinstance(value, int):
            raise serializers.ValidationError({"value": "must be a whole number"})
        return attrs


class PrescriptionLineSerializer(serializers.Serializer):
    drug_id = serializers.UUIDField(allow_null=True)
    dosage = serializers.CharField(allow_null=True)
    frequency = serializers.CharField(allow_null=True)
    duration_days = serializers.IntegerField(allow_null=True)
    quantity_prescribed = serializers.IntegerField(allow_null=True)
    instructions = serializers.CharField(allow_null=True)


class PrescriptionItemSerializer(serializers.ModelSerializer):
    drug_name = serializers.CharField(source="drug.commodity_name", read_only=True)

    class Meta:
        model = PrescriptionItem
        fields = [
            "id",
            "line_no",
            "drug_id",
            "drug_name",
            "dosage",
            "frequency",
            "duration_days",
            "quantity_prescribed",
            "instructions",
        ]
        read_only_fields = fields


class PrescriptionSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    items = PrescriptionItemSerializer(many=True, read_only=True)

    class Meta:
        model = Prescription
        fields = [
            "id",
            "prescription_number",
            "patient_id",
            "patient_name",
            "status",
            "diagnosis",
            "clinical_notes",
            "items",
            "created_at",
        ]
        read_only_fields = fields
