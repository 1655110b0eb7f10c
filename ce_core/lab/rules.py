# ce_core/lab/rules.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from ce_core.common.decisions import Decision, ErrorCode
from ce_core.lab.constants import PRIORITIES, RESULT_INTERPRETATIONS, LabOperation as Op, LabOrderStatus as S


@dataclass(frozen=True)
class LabTestSnapshot:
    id: Any
    test_code: str
    is_active: bool = True


@dataclass(frozen=True)
class LabOrderState:
    status: str
    priority: str = "Routine"
    clinical_indication: Optional[str] = None
    sample_id: Optional[str] = None
    result_value: Optional[str] = None
    result_unit: Optional[str] = None
    result_interpretation: Optional[str] = None
    result_notes: Optional[str] = None
    reviewed_notes: Optional[str] = None
    communicated_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None


# operation -> (allowed source statuses, target status)
TRANSITIONS: dict[str, tuple[frozenset, str]] = {
    Op.COLLECT_SAMPLE: (frozenset({S.ORDERED}), S.SAMPLE_COLLECTED),
    Op.ENTER_RESULT: (frozenset({S.SAMPLE_COLLECTED}), S.COMPLETED),
    Op.REVIEW: (frozenset({S.COMPLETED}), S.REVIEWED),
    Op.COMMUNICATE: (frozenset({S.REVIEWED}), S.COMMUNICATED),
    Op.CANCEL: (frozenset({S.ORDERED, S.SAMPLE_COLLECTED}), S.CANCELLED),
    Op.REJECT_SAMPLE: (frozenset({S.SAMPLE_COLLECTED}), S.REJECTED),
}


def _blank(value) -> bool:
    return not str(value or "").strip()


def _clean(value) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def allowed_operations(status: str) -> list[str]:
    return [op for op, (sources, _target) in TRANSITIONS.items() if status in sources]


def _guard(state: LabOrderState, operation: str) -> Optional[Decision]:
    sources, _target = TRANSITIONS[operation]
    if state.status in sources:
        return None
    code = ErrorCode.TERMINAL_STATE if state.status in S.TERMINAL else ErrorCode.INVALID_TRANSITION
    return Decision.reject(
        code,
        f"Cannot {operation} a lab order that is {state.status}.",
        status=state.status,
        operation=operation,
    )


def _required(field: str, message: str) -> Decision:
    return Decision.reject(ErrorCode.VALIDATION_ERROR, message, errors=[{"field": field, "reason": "required"}])


def order_test(
    *, patient_id, test: Optional[LabTestSnapshot], priority: str = "Routine", clinical_indication: Optional[str] = None
) -> Decision:
    errors: list[dict] = []
    if not patient_id:
        errors.append({"field": "patient_id", "reason": "required"})
    if test is None:
        errors.append({"field": "test_id", "reason": "unknown lab test"})
    elif not test.is_active:
        errors.append({"field": "test_id", "reason": f"lab test {test.test_code} is inactive"})
    if priority not in PRIORITIES:
        errors.append({"field": "priority", "reason": f"must be one of {', '.join(PRIORITIES)}"})
    if errors:
        return Decision.reject(ErrorCode.VALIDATION_ERROR, "Invalid lab order.", errors=errors)

    return Decision.accept(
        LabOrderState(status=S.ORDERED, priority=priority, clinical_indication=_clean(clinical_indication))
    )


def collect_sample(state: LabOrderState, *, sample_id: Optional[str]) -> Decision:
    rejected = _guard(state, Op.COLLECT_SAMPLE)
    if rejected:
        return rejected
    if _blank(sample_id):
        return _required("sample_id", "A sample id is required.")
    return Decision.accept(replace(state, status=S.SAMPLE_COLLECTED, sample_id=str(sample_id).strip()))


def enter_result(
    state: LabOrderState,
    *,
    result_interpretation: Optional[str],
    result_value: Optional[str] = None,
    result_unit: Optional[str] = None,
    result_notes: Optional[str] = None,
) -> Decision:
    rejected = _guard(state, Op.ENTER_RESULT)
    if rejected:
        return rejected
    if result_interpretation not in RESULT_INTERPRETATIONS:
        return Decision.reject(
            ErrorCode.VALIDATION_ERROR,
            "A valid result interpretation is required.",
            errors=[{"field": "result_interpretation", "reason": f"must be one of {', '.join(RESULT_INTERPRETATIONS)}"}],
        )
    return Decision.accept(
        replace(
            state,
            status=S.COMPLETED,
            result_value=_clean(result_value),
            result_unit=_clean(result_unit),
            result_interpretation=result_interpretation,
            result_notes=_clean(result_notes),
        )
    )


def review(state: LabOrderState, *, reviewed_notes: Optional[str] = None) -> Decision:
    rejected = _guard(state, Op.REVIEW)
    if rejected:
        return rejected
    return Decision.accept(replace(state, status=S.REVIEWED, reviewed_notes=_clean(reviewed_notes)))


def communicate(state: LabOrderState, *, communicated_notes: Optional[str] = None) -> Decision:
    rejected = _guard(state, Op.COMMUNICATE)
    if rejected:
        return rejected
    return Decision.accept(replace(state, status=S.COMMUNICATED, communicated_notes=_clean(communicated_notes)))


def cancel(state: LabOrderState, *, reason: Optional[str]) -> Decision:
    rejected = _guard(state, Op.CANCEL)
    if rejected:
        return rejected
    if _blank(reason):
        return _required("cancellation_reason", "Cancellation reason is required.")
    return Decision.accept(replace(state, status=S.CANCELLED, cancellation_reason=str(reason).strip()))


def reject_sample(state: LabOrderState, *, reason: Optional[str]) -> Decision:
    rejected = _guard(state, Op.REJECT_SAMPLE)
    if rejected:
        return rejected
    if _blank(reason):
        return _required("reason", "A rejection reason is required.")
    return Decision.accept(replace(state, status=S.REJECTED, result_notes=str(reason).strip()))


_DISPATCH = {
    Op.COLLECT_SAMPLE: collect_sample,
    Op.ENTER_RESULT: enter_result,
    Op.REVIEW: review,
    Op.COMMUNICATE: communicate,
    Op.CANCEL: cancel,
    Op.REJECT_SAMPLE: reject_sample,
}


def apply(state: LabOrderState, operation: str, **inputs) -> Decision:
    fn = _DISPATCH.get(operation)
    if fn is None:
        return Decision.reject(
            ErrorCode.INVALID_TRANSITION,
            f"Unknown lab order operation: {operation}.",
            status=state.status,
            operation=operation,
        )
    return fn(state, **inputs)
