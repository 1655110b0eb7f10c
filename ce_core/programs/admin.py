# ce_core/programs/admin.py
from __future__ import annotations

from django.contrib import admin

from ce_core.programs.models import ArtEnrollment, HtsRecord, PepEnrollment, PrepCommencement


@admin.register(HtsRecord)
class HtsRecordAdmin(admin.ModelAdmin):
    list_display = ("client_code", "patient", "test_date", "final_result", "is_completed", "tenant_id", "facility_id")
    list_filter = ("tenant_id", "facility_id", "final_result", "is_completed")
    search_fields = ("client_code", "patient__full_name", "patient__hospital_no")
    raw_id_fields = ("patient",)
    ordering = ("-test_date", "-created_at")


@admin.register(ArtEnrollment)
class ArtEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("art_no", "patient", "status", "date_enrolled_into_hiv_care", "entry_point", "created_at")
    list_filter = ("tenant_id", "facility_id", "status", "entry_point")
    search_fields = ("art_no", "patient__full_name", "patient__hospital_no")
    raw_id_fields = ("patient",)
    ordering = ("-created_at",)


@admin.register(PepEnrollment)
class PepEnrollmentAdmin(admin.ModelAdmin):
    list_display = ("pep_no", "patient", "status", "duration_before_pep", "hiv_status_at_exposure", "created_at")
    list_filter = ("tenant_id", "facility_id", "status", "duration_before_pep", "mode_of_exposure")
    search_fields = ("pep_no", "patient__full_name", "hts_record__client_code")
    raw_id_fields = ("patient", "hts_record")
    ordering = ("-created_at",)


@admin.register(PrepCommencement)
class PrepCommencementAdmin(admin.ModelAdmin):
    list_display = ("prep_no", "patient", "status", "prep_type_at_start", "date_prep_initiated", "created_at")
    list_filter = ("tenant_id", "facility_id", "status", "prep_type_at_start")
    search_fields = ("prep_no", "patient__full_name", "hts_record__client_code")
    raw_id_fields = ("patient", "hts_record")
    ordering = ("-created_at",)
