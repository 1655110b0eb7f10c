# ce_core/programs/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ce_core.programs.constants import HtsResult
from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement
from ce_core.programs.rules import pep_urgency

# Enumerated enrollment fields are plain CharFields here: the enrollment
# rules validate them and report every offending field in one ValidationError.


class HtsRecordCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    client_code = serializers.CharField(max_length=64)
    test_date = serializers.DateField(required=False, allow_null=True)
    final_result = serializers.ChoiceField(choices=HtsResult.ALL, required=False, allow_null=True)
    is_completed = serializers.BooleanField(required=False, default=False)


class HtsRecordSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    patient_hospital_no = serializers.CharField(source="patient.hospital_no", read_only=True)

    class Meta:
        model = HtsRecord
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "patient_hospital_no",
            "client_code",
            "test_date",
            "final_result",
            "is_completed",
            "created_at",
        ]
        read_only_fields = fields


class ArtEnrollmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    date_confirmed_hiv_positive = serializers.DateField(required=False, allow_null=True)
    date_enrolled_into_hiv_care = serializers.DateField(required=False, allow_null=True)
    mode_of_hiv_test = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    entry_point = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    where_test_was_done = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    prior_art = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    relationship_with_next_of_kin = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    name_of_next_of_kin = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    phone_no_of_next_of_kin = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class ArtEnrollmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    patient_hospital_no = serializers.CharField(source="patient.hospital_no", read_only=True)

    class Meta:
        model = ArtEnrollment
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "patient_hospital_no",
            "art_no",
            "date_confirmed_hiv_positive",
            "date_enrolled_into_hiv_care",
            "mode_of_hiv_test",
            "entry_point",
            "where_test_was_done",
            "prior_art",
            "relationship_with_next_of_kin",
            "name_of_next_of_kin",
            "phone_no_of_next_of_kin",
            "status",
            "next_appointment_date",
            "created_at",
        ]
        read_only_fields = fields


class PepEnrollmentCreateSerializer(serializers.Serializer):
    hts_record_id = serializers.UUIDField(required=False, allow_null=True)
    mode_of_exposure = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    duration_before_pep = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    # accepted for compatibility; the stored value is derived from the HTS record
    hiv_status_at_exposure = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    pep_supporter = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    supporter_relationship = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    supporter_telephone = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PepEnrollmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    urgency = serializers.SerializerMethodField()

    class Meta:
        model = PepEnrollment
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "hts_record_id",
            "pep_no",
            "mode_of_exposure",
            "duration_before_pep",
            "urgency",
            "hiv_status_at_exposure",
            "pep_supporter",
            "supporter_relationship",
            "supporter_telephone",
            "status",
            "created_at",
        ]
        read_only_fields = fields

    def get_urgency(self, obj) -> str | None:
        return pep_urgency(obj.duration_before_pep)


class PrepCommencementCreateSerializer(serializers.Serializer):
    hts_record_id = serializers.UUIDField(required=False, allow_null=True)
    date_initial_adherence_counseling = serializers.DateField(required=False, allow_null=True)
    date_prep_initiated = serializers.DateField(required=False, allow_null=True)
    prep_type_at_start = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    history_of_drug_allergies = serializers.BooleanField(required=False, default=False)
    allergy_details = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    transferred_in = serializers.BooleanField(required=False, default=False)
    previous_enrollment_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    transferred_from_facility = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PrepCommencementSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = PrepCommencement
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "hts_record_id",
            "prep_no",
            "date_initial_adherence_counseling",
            "date_prep_initiated",
            "prep_type_at_start",
            "history_of_drug_allergies",
            "allergy_details",
            "transferred_in",
            "previous_enrollment_id",
            "transferred_from_facility",
            "status",
            "created_at",
        ]
        read_only_fields = fields
