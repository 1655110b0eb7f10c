# ce_core/lab/tests/test_lab_order_rules.py
import pytest

from ce_core.common.decisions import ErrorCode
from ce_core.lab import rules
from ce_core.lab.constants import LabOperation as Op, LabOrderStatus as S

HIV_VL = rules.LabTestSnapshot(id=1, test_code="HIV_VL")


def _inputs_for(op):
    return {
        Op.COLLECT_SAMPLE: {"sample_id": "S-001"},
        Op.ENTER_RESULT: {"result_interpretation": "Normal"},
        Op.CANCEL: {"reason": "Ordered in error"},
        Op.REJECT_SAMPLE: {"reason": "Haemolysed"},
    }.get(op, {})


def test_order_test_starts_ordered():
    d = rules.order_test(patient_id=1, test=HIV_VL, clinical_indication="  Baseline  ")
    assert d.ok
    assert d.state.status == S.ORDERED
    assert d.state.priority == "Routine"
    assert d.state.clinical_indication == "Baseline"


def test_order_test_reports_every_bad_field():
    d = rules.order_test(patient_id=None, test=None, priority="Whenever")
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert [e["field"] for e in d.error.details["errors"]] == ["patient_id", "test_id", "priority"]


def test_inactive_test_cannot_be_ordered():
    d = rules.order_test(patient_id=1, test=rules.LabTestSnapshot(id=2, test_code="OLD", is_active=False))
    assert d.error.details["errors"] == [{"field": "test_id", "reason": "lab test OLD is inactive"}]


def test_happy_path_walkthrough():
    state = rules.order_test(patient_id=1, test=HIV_VL).state
    for op, target in (
        (Op.COLLECT_SAMPLE, S.SAMPLE_COLLECTED),
        (Op.ENTER_RESULT, S.COMPLETED),
        (Op.REVIEW, S.REVIEWED),
        (Op.COMMUNICATE, S.COMMUNICATED),
    ):
        d = rules.apply(state, op, **_inputs_for(op))
        assert d.ok, d.error
        state = d.state
        assert state.status == target

    assert state.sample_id == "S-001"
    assert state.result_interpretation == "Normal"
    assert rules.allowed_operations(state.status) == []


@pytest.mark.parametrize("status", sorted(S.TERMINAL))
@pytest.mark.parametrize(
    "op", [Op.COLLECT_SAMPLE, Op.ENTER_RESULT, Op.REVIEW, Op.COMMUNICATE, Op.CANCEL, Op.REJECT_SAMPLE]
)
def test_terminal_orders_reject_every_operation(status, op):
    d = rules.apply(rules.LabOrderState(status=status), op, **_inputs_for(op))
    assert d.error.code == ErrorCode.TERMINAL_STATE
    assert d.error.details == {"status": status, "operation": op}


@pytest.mark.parametrize(
    "status,op",
    [
        (S.ORDERED, Op.ENTER_RESULT),
        (S.ORDERED, Op.REJECT_SAMPLE),
        (S.SAMPLE_COLLECTED, Op.REVIEW),
        (S.COMPLETED, Op.CANCEL),
        (S.REVIEWED, Op.COLLECT_SAMPLE),
    ],
)
def test_out_of_order_operations_are_invalid(status, op):
    d = rules.apply(rules.LabOrderState(status=status), op, **_inputs_for(op))
    assert d.error.code == ErrorCode.INVALID_TRANSITION


def test_result_needs_known_interpretation():
    d = rules.enter_result(rules.LabOrderState(status=S.SAMPLE_COLLECTED), result_interpretation="Fine")
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert d.error.details["errors"][0]["field"] == "result_interpretation"


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_cancel_requires_reason(reason):
    d = rules.cancel(rules.LabOrderState(status=S.ORDERED), reason=reason)
    assert d.error.details["errors"] == [{"field": "cancellation_reason", "reason": "required"}]


def test_reject_sample_keeps_reason_in_notes():
    d = rules.reject_sample(rules.LabOrderState(status=S.SAMPLE_COLLECTED), reason=" Clotted ")
    assert d.state.status == S.REJECTED
    assert d.state.result_notes == "Clotted"


def test_unknown_operation_is_invalid_transition():
    d = rules.apply(rules.LabOrderState(status=S.ORDERED), "repeat")
    assert d.error.code == ErrorCode.INVALID_TRANSITION


def test_allowed_operations():
    assert rules.allowed_operations(S.ORDERED) == [Op.COLLECT_SAMPLE, Op.CANCEL]
    assert rules.allowed_operations(S.SAMPLE_COLLECTED) == [Op.ENTER_RESULT, Op.CANCEL, Op.REJECT_SAMPLE]
