# ce_core/common/scope.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from rest_framework.exceptions import NotFound, ValidationError

MISSING_SCOPE_MSG = "Missing scope headers. Provide X-Tenant-Id and X-Facility-Id."
INVALID_SCOPE_MSG = "Invalid scope headers. X-Tenant-Id and X-Facility-Id must be UUIDs."


@dataclass(frozen=True)
class Scope:
    tenant_id: UUID
    facility_id: UUID


# Preferred header names (what we standardize on)
HDR_TENANT = "X-Tenant-Id"
HDR_FACILITY = "X-Facility-Id"


def _parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _get_header(request, name: str) -> Optional[str]:
    """
    request.headers is case-insensitive; fallback to META for pytest/client.
    """
    headers = getattr(request, "headers", None)
    if headers is not None:
        v = headers.get(name)
        if v:
            return v

    meta_key = "HTTP_" + name.upper().replace("-", "_")
    return request.META.get(meta_key)


def require_scope(request) -> Scope:
    """
    Resolve (tenant_id, facility_id) from the request or raise a 400.
    Attaches the resolved scope to the request for downstream use.
    """
    existing = getattr(request, "scope", None)
    if isinstance(existing, Scope):
        return existing

    tenant_raw = _get_header(request, HDR_TENANT)
    facility_raw = _get_header(request, HDR_FACILITY)

    if not tenant_raw or not facility_raw:
        raise ValidationError({"detail": MISSING_SCOPE_MSG})

    tenant_id = _parse_uuid(tenant_raw)
    facility_id = _parse_uuid(facility_raw)
    if not tenant_id or not facility_id:
        raise ValidationError({"detail": INVALID_SCOPE_MSG})

    scope = Scope(tenant_id=tenant_id, facility_id=facility_id)
    request.scope = scope
    return scope


def require_pk(pk, *, not_found: str) -> UUID:
    """URL ids are UUIDs; anything else cannot name a row, so it is a 404."""
    parsed = _parse_uuid(pk)
    if parsed is None:
        raise NotFound(not_found)
    return parsed
