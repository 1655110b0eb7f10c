# ce_core/lab/services.py
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ce_core.audit.services import AuditService
from ce_core.common.api.exceptions import raise_for_decision
from ce_core.common.numbering import create_with_number
from ce_core.lab import rules
from ce_core.lab.constants import LAB_ORDER_NUMBER_PREFIX, LabOperation, LabOrderStatus
from ce_core.lab.models import LabOrder
from ce_core.lab.selectors import LabSelectors
from ce_core.patients.models import Patient

logger = logging.getLogger(__name__)

_STATUS_TIMESTAMPS = {
    LabOrderStatus.SAMPLE_COLLECTED: "sample_collected_at",
    LabOrderStatus.COMPLETED: "resulted_at",
    LabOrderStatus.REVIEWED: "reviewed_at",
    LabOrderStatus.COMMUNICATED: "communicated_at",
    LabOrderStatus.CANCELLED: "cancelled_at",
}

_STATE_FIELDS = tuple(f.name for f in fields(rules.LabOrderState))

VIRAL_LOAD_SERVICE_TYPE = "ART"


class LabOrderService:
    @staticmethod
    def _state_of(order: LabOrder) -> rules.LabOrderState:
        return rules.LabOrderState(**{name: getattr(order, name) for name in _STATE_FIELDS})

    @staticmethod
    @transaction.atomic
    def order_test(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        test_id: Optional[UUID],
        actor_user_id: int | None,
        priority: str = "Routine",
        clinical_indication: Optional[str] = None,
        clinical_notes: Optional[str] = None,
        service_type: Optional[str] = None,
        service_record_id: Optional[str] = None,
        test_code: Optional[str] = None,
    ) -> LabOrder:
        patient = Patient.objects.get(id=patient_id, tenant_id=tenant_id, facility_id=facility_id)
        test = LabSelectors.test_snapshot(
            tenant_id=tenant_id, facility_id=facility_id, test_id=test_id, test_code=test_code
        )

        decision = rules.order_test(
            patient_id=patient.id, test=test, priority=priority, clinical_indication=clinical_indication
        )
        raise_for_decision(decision)
        state: rules.LabOrderState = decision.state

        order = create_with_number(
            LabOrder,
            number_field="order_number",
            prefix=LAB_ORDER_NUMBER_PREFIX,
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            test_id=test.id,
            priority=state.priority,
            status=state.status,
            clinical_indication=state.clinical_indication,
            clinical_notes=clinical_notes,
            service_type=service_type,
            service_record_id=service_record_id,
            ordered_by_id=actor_user_id,
        )

        AuditService.log(
            event_code="lab_order.created",
            entity=order,
            actor_user_id=actor_user_id,
            metadata={"test_code": test.test_code, "priority": order.priority},
        )
        return order

    @staticmethod
    def create_viral_load_order(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        patient_id: UUID,
        enrollment_id: UUID,
        indication: str,
        actor_user_id: int | None,
    ) -> LabOrder:
        """
        Baseline viral load for a new ART enrollment. Uses the catalog test
        configured by CE_VIRAL_LOAD_TEST_CODE; a missing test is a rejection.
        """
        return LabOrderService.order_test(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient_id=patient_id,
            test_id=None,
            test_code=getattr(settings, "CE_VIRAL_LOAD_TEST_CODE", "HIV_VL"),
            actor_user_id=actor_user_id,
            priority="Routine",
            clinical_indication=indication,
            service_type=VIRAL_LOAD_SERVICE_TYPE,
            service_record_id=str(enrollment_id),
        )

    @staticmethod
    @transaction.atomic
    def transition(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        order_id: UUID,
        actor_user_id: int | None,
        operation: str,
        **inputs,
    ) -> LabOrder:
        order = LabOrder.objects.select_for_update().get(id=order_id, tenant_id=tenant_id, facility_id=facility_id)
        previous = order.status

        decision = rules.apply(LabOrderService._state_of(order), operation, **inputs)
        raise_for_decision(decision)

        state: rules.LabOrderState = decision.state
        update_fields = ["updated_by_id", "updated_at"]
        for name in _STATE_FIELDS:
            if getattr(order, name) != getattr(state, name):
                setattr(order, name, getattr(state, name))
                update_fields.append(name)

        stamp = _STATUS_TIMESTAMPS.get(state.status)
        if stamp:
            setattr(order, stamp, timezone.now())
            update_fields.append(stamp)

        order.updated_by_id = actor_user_id
        order.save(update_fields=update_fields)

        AuditService.transition(
            event_code=f"lab_order.{operation}", entity=order, previous=previous, actor_user_id=actor_user_id
        )
        logger.info("Lab order %s: %s -> %s", order.order_number, previous, order.status)
        return order

    @staticmethod
    def collect_sample(*, sample_id: Optional[str], **scope) -> LabOrder:
        return LabOrderService.transition(operation=LabOperation.COLLECT_SAMPLE, sample_id=sample_id, **scope)

    @staticmethod
    def enter_result(
        *,
        result_interpretation: Optional[str],
        result_value: Optional[str] = None,
        result_unit: Optional[str] = None,
        result_notes: Optional[str] = None,
        **scope,
    ) -> LabOrder:
        return LabOrderService.transition(
            operation=LabOperation.ENTER_RESULT,
            result_interpretation=result_interpretation,
            result_value=result_value,
            result_unit=result_unit,
            result_notes=result_notes,
            **scope,
        )

    @staticmethod
    def review(*, reviewed_notes: Optional[str] = None, **scope) -> LabOrder:
        return LabOrderService.transition(operation=LabOperation.REVIEW, reviewed_notes=reviewed_notes, **scope)

    @staticmethod
    def communicate(*, communicated_notes: Optional[str] = None, **scope) -> LabOrder:
        return LabOrderService.transition(
            operation=LabOperation.COMMUNICATE, communicated_notes=communicated_notes, **scope
        )

    @staticmethod
    def cancel(*, reason: Optional[str], **scope) -> LabOrder:
        return LabOrderService.transition(operation=LabOperation.CANCEL, reason=reason, **scope)

    @staticmethod
    def reject_sample(*, reason: Optional[str], **scope) -> LabOrder:
        return LabOrderService.transition(operation=LabOperation.REJECT_SAMPLE, reason=reason, **scope)
