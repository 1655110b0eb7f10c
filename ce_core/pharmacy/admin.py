# ce_core/pharmacy/admin.py
from __future__ import annotations

from django.contrib import admin

from ce_core.pharmacy.models import Drug, Prescription, PrescriptionItem


@admin.register(Drug)
class DrugAdmin(admin.ModelAdmin):
    list_display = ("commodity_name", "commodity_id", "pack_type", "quantity", "batch_no", "is_active")
    list_filter = ("tenant_id", "facility_id", "commodity_type", "is_active")
    search_fields = ("commodity_name", "commodity_id", "batch_no")
    ordering = ("commodity_name",)


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0
    raw_id_fields = ("drug",)


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ("prescription_number", "patient", "status", "prescribed_by_id", "created_at")
    list_filter = ("tenant_id", "facility_id", "status")
    search_fields = ("prescription_number", "patient__full_name", "patient__hospital_no")
    raw_id_fields = ("patient",)
    inlines = [PrescriptionItemInline]
    ordering = ("-created_at",)
