# ce_core/patients/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ce_core.patients.models import Patient


class PatientCreateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    hospital_no = serializers.CharField(max_length=64)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    gender = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    date_of_birth = serializers.DateField(required=False, allow_null=True)


class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = [
            "id",
            "full_name",
            "hospital_no",
            "phone",
            "gender",
            "date_of_birth",
            "created_at",
        ]
        read_only_fields = fields
