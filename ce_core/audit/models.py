# ce_core/audit/models.py
from django.core.exceptions import ValidationError
from django.db import models

from ce_core.common.models import ScopedModel


class AuditEvent(ScopedModel):
    """
    Immutable audit record.
    Every workflow write (transition, enrollment, order) lands here.
    """
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "appointment.completed"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "Appointment"
    entity_id = models.UUIDField(db_index=True)

    actor_user_id = models.BigIntegerField(null=True, blank=True)

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["tenant_id", "facility_id", "event_code"]),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("AuditEvent is immutable and cannot be modified once created.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("AuditEvent is immutable and cannot be deleted.")
