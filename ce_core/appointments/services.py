# ce_core/appointments/services.py
from __future__ import annotations

import logging
from dataclasses import fields
from datetime import date, time
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from ce_core.appointments import rules
from ce_core.appointments.constants import (
    APPOINTMENT_NUMBER_PREFIX,
    CREATE_VISIT_DETAILS,
    AppointmentOperation,
    AppointmentStatus,
)
from ce_core.appointments.models import Appointment, VisitDetails
from ce_core.audit.services import AuditService
from ce_core.common.api.exceptions import raise_for_decision
from ce_core.common.decisions import Decision
from ce_core.common.numbering import create_with_number
from ce_core.patients.models import Patient

logger = logging.getLogger(__name__)

# status reached -> timestamp column stamped on that transition
_STATUS_TIMESTAMPS = {
    AppointmentStatus.CHECKED_IN: "checked_in_at",
    AppointmentStatus.IN_PROGRESS: "started_at",
    AppointmentStatus.COMPLETED: "completed_at",
    AppointmentStatus.CANCELLED: "cancelled_at",
}

_STATE_FIELDS = tuple(f.name for f in fields(rules.AppointmentState))


class AppointmentService:
    """
    Write-model operations for appointments.

    Every transition:
      load (row-locked) -> rules.<op>() -> raise on rejection -> copy state
      -> execute commands -> audit.
    """

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _state_of(apt: Appointment) -> rules.AppointmentState:
        return rules.AppointmentState(**{name: getattr(apt, name) for name in _STATE_FIELDS})

    @staticmethod
    def _locked(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID) -> Appointment:
        return Appointment.objects.select_for_update().get(
            id=appointment_id,
            tenant_id=tenant_id,
            facility_id=facility_id,
        )

    @staticmethod
    def _create_visit_details(apt: Appointment, payload: dict, *, clinician_id: int | None) -> VisitDetails:
        return VisitDetails.objects.create(
            tenant_id=apt.tenant_id,
            facility_id=apt.facility_id,
            appointment=apt,
            patient_id=apt.patient_id,
            clinician_id=clinician_id,
            **payload,
        )

    @staticmethod
    def _transition(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        actor_user_id: int | None,
        operation: str,
        **inputs,
    ) -> Appointment:
        apt = AppointmentService._locked(tenant_id=tenant_id, facility_id=facility_id, appointment_id=appointment_id)
        previous = apt.status

        decision: Decision = rules.apply(AppointmentService._state_of(apt), operation, **inputs)
        raise_for_decision(decision)

        state: rules.AppointmentState = decision.state
        update_fields = ["updated_by_id", "updated_at"]
        for name in _STATE_FIELDS:
            if getattr(apt, name) != getattr(state, name):
                setattr(apt, name, getattr(state, name))
                update_fields.append(name)

        stamp = _STATUS_TIMESTAMPS.get(state.status)
        if stamp:
            setattr(apt, stamp, timezone.now())
            update_fields.append(stamp)

        apt.updated_by_id = actor_user_id
        apt.save(update_fields=update_fields)

        for cmd in decision.commands:
            if cmd.name == CREATE_VISIT_DETAILS:
                AppointmentService._create_visit_details(apt, cmd.payload, clinician_id=actor_user_id)

        AuditService.transition(
            event_code=f"appointment.{operation}", entity=apt, previous=previous, actor_user_id=actor_user_id
        )
        logger.info("Appointment %s: %s -> %s", apt.appointment_number, previous, apt.status)
        return apt

    # ---------------------------------------------------------------------
    # Scheduling
    # ---------------------------------------------------------------------
    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        actor_user_id: int | None,
        appointment_type: str,
        appointment_date: date,
        appointment_time: Optional[time] = None,
        status: str = AppointmentStatus.SCHEDULED,
        reason: str | None = None,
        notes: str | None = None,
        auto_generated: bool = False,
        source_type: str | None = None,
        source_id: str | None = None,
        service_type: str | None = None,
        service_record_id: str | None = None,
    ) -> Appointment:
        patient = Patient.objects.get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)

        decision = rules.schedule(
            patient_id=patient.id,
            appointment_type=appointment_type,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            status=status,
            notes=notes,
        )
        raise_for_decision(decision)
        state: rules.AppointmentState = decision.state

        apt = create_with_number(
            Appointment,
            number_field="appointment_number",
            prefix=APPOINTMENT_NUMBER_PREFIX,
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            appointment_type=appointment_type,
            status=state.status,
            appointment_date=state.appointment_date,
            appointment_time=state.appointment_time,
            notes=state.notes,
            reason=reason,
            auto_generated=auto_generated,
            source_type=source_type,
            source_id=source_id,
            service_type=service_type,
            service_record_id=service_record_id,
            created_by_id=actor_user_id,
        )

        AuditService.log(
            event_code="appointment.created",
            entity=apt,
            actor_user_id=actor_user_id,
            metadata={"patient_id": str(patient.id), "status": apt.status},
        )
        return apt

    # ---------------------------------------------------------------------
    # Lifecycle transitions
    # ---------------------------------------------------------------------
    @staticmethod
    @transaction.atomic
    def check_in(
        *, tenant_id: UUID, facility_id: UUID, appointment_id: UUID, actor_user_id: int | None, notes: str | None = None
    ) -> Appointment:
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.CHECK_IN,
            notes=notes,
        )

    @staticmethod
    @transaction.atomic
    def start_visit(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID, actor_user_id: int | None) -> Appointment:
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.START_VISIT,
        )

    @staticmethod
    @transaction.atomic
    def mark_no_show(*, tenant_id: UUID, facility_id: UUID, appointment_id: UUID, actor_user_id: int | None) -> Appointment:
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.MARK_NO_SHOW,
        )

    @staticmethod
    @transaction.atomic
    def cancel(
        *, tenant_id: UUID, facility_id: UUID, appointment_id: UUID, actor_user_id: int | None, reason: str | None
    ) -> Appointment:
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.CANCEL,
            reason=reason,
        )

    @staticmethod
    @transaction.atomic
    def reschedule(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        actor_user_id: int | None,
        new_date: date | None,
        reason: str | None,
        new_time: time | None = None,
    ) -> Appointment:
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.RESCHEDULE,
            new_date=new_date,
            new_time=new_time,
            reason=reason,
        )

    @staticmethod
    @transaction.atomic
    def complete(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        appointment_id: UUID,
        actor_user_id: int | None,
        clinical_summary: str | None,
        visit_details: dict | None = None,
    ) -> Appointment:
        """
        In Progress -> Completed, creating the single VisitDetails record.
        """
        return AppointmentService._transition(
            tenant_id=tenant_id,
            facility_id=facility_id,
            appointment_id=appointment_id,
            actor_user_id=actor_user_id,
            operation=AppointmentOperation.COMPLETE,
            clinical_summary=clinical_summary,
            visit_details=visit_details,
        )
