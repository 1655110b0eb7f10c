# ce_core/appointments/admin.py
from __future__ import annotations

from django.contrib import admin

from ce_core.appointments.models import Appointment, VisitDetails


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        "appointment_number",
        "patient",
        "appointment_type",
        "status",
        "appointment_date",
        "appointment_time",
        "tenant_id",
        "facility_id",
    )
    list_filter = ("tenant_id", "facility_id", "status", "appointment_type", "appointment_date")
    search_fields = ("appointment_number", "patient__full_name", "patient__hospital_no")
    raw_id_fields = ("patient",)
    readonly_fields = ("checked_in_at", "started_at", "completed_at", "cancelled_at", "created_at", "updated_at")
    ordering = ("-appointment_date", "-created_at")


@admin.register(VisitDetails)
class VisitDetailsAdmin(admin.ModelAdmin):
    list_display = ("appointment", "patient", "diagnosis", "next_appointment_date", "created_at")
    list_filter = ("tenant_id", "facility_id", "referral_made")
    search_fields = ("appointment__appointment_number", "patient__full_name")
    raw_id_fields = ("appointment", "patient")
    ordering = ("-created_at",)
