# ce_core/lab/admin.py
from __future__ import annotations

from django.contrib import admin

from ce_core.lab.models import LabOrder, LabTest


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ("test_code", "test_name", "test_category", "sample_type", "is_active", "tenant_id", "facility_id")
    list_filter = ("tenant_id", "facility_id", "test_category", "is_active")
    search_fields = ("test_code", "test_name")
    ordering = ("test_name",)


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "patient",
        "test",
        "priority",
        "status",
        "service_type",
        "result_interpretation",
        "created_at",
    )
    list_filter = ("tenant_id", "facility_id", "status", "priority", "service_type")
    search_fields = ("order_number", "sample_id", "patient__full_name", "test__test_code")
    raw_id_fields = ("patient", "test")
    readonly_fields = (
        "sample_collected_at",
        "resulted_at",
        "reviewed_at",
        "communicated_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)
