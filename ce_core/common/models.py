# ce_core/common/models.py
from __future__ import annotations

import uuid
from uuid import UUID

from django.db import models


class ScopedQuerySet(models.QuerySet):
    def in_scope(self, tenant_id: UUID, facility_id: UUID) -> "ScopedQuerySet":
        return self.filter(tenant_id=tenant_id, facility_id=facility_id)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ScopedModel(TimeStampedModel):
    """
    Base for every clinic record: UUID key plus the tenant/facility pair.
    Requests resolve scope from headers (common.scope); reads narrow with
    `Model.objects.in_scope(tenant_id, facility_id)`.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)
    facility_id = models.UUIDField(db_index=True)

    objects = ScopedQuerySet.as_manager()

    class Meta:
        abstract = True
