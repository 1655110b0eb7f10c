# ce_core/audit/services.py
from __future__ import annotations

from typing import Any, Dict, Optional

from django.db.models import QuerySet

from ce_core.audit.models import AuditEvent
from ce_core.common.models import ScopedModel


class AuditService:
    """
    Append-only trail of workflow writes.

    Services log inside their own transaction, so a write that rolls back
    leaves no audit row behind. Scope and entity identity come from the
    record itself.
    """

    @staticmethod
    def log(
        *,
        event_code: str,
        entity: ScopedModel,
        actor_user_id: int | None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        return AuditEvent.objects.create(
            tenant_id=entity.tenant_id,
            facility_id=entity.facility_id,
            event_code=event_code,
            entity_type=type(entity).__name__,
            entity_id=entity.pk,
            actor_user_id=actor_user_id,
            metadata=metadata or {},
        )

    @staticmethod
    def transition(*, event_code: str, entity: ScopedModel, previous: str, actor_user_id: int | None) -> AuditEvent:
        """Status move of a lifecycle record (appointment, lab order)."""
        return AuditService.log(
            event_code=event_code,
            entity=entity,
            actor_user_id=actor_user_id,
            metadata={"from": previous, "to": entity.status},
        )

    @staticmethod
    def events_for(entity: ScopedModel) -> QuerySet[AuditEvent]:
        return AuditEvent.objects.filter(
            tenant_id=entity.tenant_id,
            facility_id=entity.facility_id,
            entity_type=type(entity).__name__,
            entity_id=entity.pk,
        ).order_by("occurred_at")
