# ce_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ce_core.common.decisions import Decision, ErrorCode, Problem

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope for every API error.
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


class DecisionRejected(APIException):
    """
    A rule rejected the operation. Carries the problem so the envelope
    reports "InvalidTransition", "TerminalState", ... with untouched details.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Operation rejected."
    default_code = "rejected"

    def __init__(self, problem: Problem, *, status_code: int | None = None):
        self.problem = problem
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail=problem.message, code=problem.code)


# Problems that block with 409; everything else from a rule is a 400.
_CONFLICT_CODES = {
    ErrorCode.INVALID_TRANSITION,
    ErrorCode.TERMINAL_STATE,
    ErrorCode.DUPLICATE_ENROLLMENT,
    ErrorCode.NOT_READY,
}


def raise_for_problem(problem: Problem) -> None:
    if problem.code in _CONFLICT_CODES:
        raise DecisionRejected(problem)
    raise DecisionRejected(problem, status_code=status.HTTP_400_BAD_REQUEST)


def raise_for_decision(decision: Decision) -> Decision:
    """
    Service-side bridge: rules return structured rejections; the write layer
    turns them into API exceptions before touching storage.
    """
    if not decision.ok:
        logger.info("Decision rejected: %s %s", decision.error.code, decision.error.message)
        raise_for_problem(decision.error)
    return decision


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, DecisionRejected):
        return exc.problem.code
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def _plain(value):
    # ErrorDetail is a str subclass; unwrap nested structures into plain str/list/dict
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, str):
        return str(value)
    return value


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception("Unhandled API error", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    if isinstance(exc, DecisionRejected):
        # Rule problems keep their structured details as-is (ints, lists of item errors)
        message = exc.problem.message
        details = dict(exc.problem.details) or None
    else:
        data = _plain(response.data)

        # 1) {"detail": "..."} only -> message=detail, details=None
        # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
        # 3) Otherwise -> message="Request failed.", details=data
        message = "Request failed."
        details = data
        if isinstance(data, dict) and "detail" in data:
            detail = data.get("detail")
            if isinstance(detail, list) and len(detail) == 1:
                detail = detail[0]
            message = str(detail)
            rest = {k: v for k, v in data.items() if k != "detail"}
            details = rest or None

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
