# ce_core/appointments/selectors.py
from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from ce_core.appointments.models import Appointment, VisitDetails


class AppointmentSelectors:
    @staticmethod
    def list_appointments(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: Optional[UUID] = None,
        status: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> QuerySet[Appointment]:
        qs = Appointment.objects.in_scope(tenant_id, facility_id).select_related("patient")
        if patient_id:
            qs = qs.filter(patient_id=patient_id)
        if status:
            qs = qs.filter(status=status)
        if on_date:
            qs = qs.filter(appointment_date=on_date)
        return qs.order_by("appointment_date", "appointment_time", "created_at")

    @staticmethod
    def get_appointment(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID) -> Appointment:
        return Appointment.objects.select_related("patient").get(
            id=appointment_id,
            tenant_id=tenant_id,
            facility_id=facility_id,
        )

    @staticmethod
    def visit_details_for(*, appointment_id: UUID) -> Optional[VisitDetails]:
        return VisitDetails.objects.filter(appointment_id=appointment_id).first()
