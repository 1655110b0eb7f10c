# ce_core/pharmacy/tests/test_prescription_rules.py
import pytest

from ce_core.common.decisions import ErrorCode
from ce_core.pharmacy import rules
from ce_core.pharmacy.constants import FREQUENCIES

TDF = rules.DrugSnapshot(id="tdf", commodity_name="TDF/3TC/DTG", quantity=10)
CTX = rules.DrugSnapshot(id="ctx", commodity_name="Cotrimoxazole", quantity=None)
DRUGS = {d.id: d for d in (TDF, CTX)}


def _line(**kw):
    base = {"drug_id": "tdf", "dosage": "1 tab", "frequency": "Twice Daily", "duration_days": 5, "quantity_prescribed": 10}
    base.update(kw)
    return rules.PrescriptionLine(**base)


def test_duration_drives_quantity():
    d = rules.set_duration(rules.PrescriptionLine(frequency="Twice Daily"), 14)
    assert d.state.duration_days == 14
    assert d.state.quantity_prescribed == 28


def test_quantity_drives_duration():
    d = rules.set_quantity(rules.PrescriptionLine(frequency="Twice Daily"), 20)
    assert d.state.quantity_prescribed == 20
    assert d.state.duration_days == 10


def test_recompute_is_stable_for_whole_multipliers():
    line = rules.set_duration(rules.PrescriptionLine(frequency="Three Times Daily"), 7).state
    again = rules.set_quantity(line, line.quantity_prescribed).state
    assert again == line


@pytest.mark.parametrize(
    "frequency,days,expected_qty",
    [
        ("Weekly", 10, 2),
        ("Weekly", 14, 2),
        ("Every other day", 5, 3),
        ("As Needed", 6, 6),
        ("Every 4 Hours", 3, 18),
    ],
)
def test_fractional_multipliers_round_up(frequency, days, expected_qty):
    d = rules.set_duration(rules.PrescriptionLine(frequency=frequency), days)
    assert d.state.quantity_prescribed == expected_qty


def test_weekly_quantity_to_duration():
    assert rules.set_quantity(rules.PrescriptionLine(frequency="Weekly"), 2).state.duration_days == 14


def test_frequency_change_keeps_duration():
    line = rules.set_duration(rules.PrescriptionLine(frequency="Once Daily"), 30).state
    d = rules.set_frequency(line, "Twice Daily")
    assert d.state.frequency == "Twice Daily"
    assert d.state.duration_days == 30
    assert d.state.quantity_prescribed == 60


def test_frequency_change_without_duration_only_sets_frequency():
    d = rules.set_frequency(rules.PrescriptionLine(quantity_prescribed=5), "Weekly")
    assert d.state == rules.PrescriptionLine(quantity_prescribed=5, frequency="Weekly")


@pytest.mark.parametrize("fn", [rules.set_duration, rules.set_quantity])
def test_recompute_needs_known_frequency(fn):
    d = fn(rules.PrescriptionLine(frequency="Hourly"), 3)
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert d.error.details["errors"][0]["field"] == "frequency"


def test_frequency_table_is_closed():
    assert FREQUENCIES == (
        "Once Daily",
        "Twice Daily",
        "Three Times Daily",
        "Four Times Daily",
        "Every 12 Hours",
        "Every 8 Hours",
        "Every 6 Hours",
        "Every 4 Hours",
        "Every other day",
        "Weekly",
        "As Needed",
    )
    d = rules.set_frequency(rules.PrescriptionLine(duration_days=30), "Monthly")
    assert d.error.code == ErrorCode.VALIDATION_ERROR


def test_negative_values_rejected():
    assert rules.set_duration(rules.PrescriptionLine(frequency="Once Daily"), -1).error.details["errors"][0][
        "field"
    ] == "duration_days"


def test_stock_warning_when_quantity_exceeds_stock():
    warnings = rules.check_stock([_line(quantity_prescribed=5), _line(quantity_prescribed=12)], DRUGS)
    assert len(warnings) == 1
    assert warnings[0].code == ErrorCode.INSUFFICIENT_STOCK
    assert warnings[0].details == {"index": 1, "drug_id": "tdf", "requested": 12, "available": 10}


def test_unknown_stock_counts_as_zero():
    warnings = rules.check_stock([_line(drug_id="ctx", quantity_prescribed=1)], DRUGS)
    assert warnings[0].details["available"] == 0


def test_exact_stock_is_not_a_shortfall():
    assert rules.check_stock([_line(quantity_prescribed=10)], DRUGS) == []


def test_validate_reports_every_bad_item():
    d = rules.validate_prescription(
        [
            _line(),
            _line(drug_id="missing", dosage=" "),
            _line(frequency="Hourly", quantity_prescribed=0, duration_days=None),
        ],
        DRUGS,
    )
    assert d.error.code == ErrorCode.VALIDATION_ERROR
    assert [(e["index"], e["field"]) for e in d.error.details["errors"]] == [
        (1, "drug_id"),
        (1, "dosage"),
        (2, "frequency"),
        (2, "quantity_prescribed"),
        (2, "duration_days"),
    ]


def test_validate_rejects_empty_prescription():
    d = rules.validate_prescription([], DRUGS)
    assert d.error.details["errors"][0]["field"] == "items"


def test_stock_shortfall_does_not_block_submission():
    d = rules.validate_prescription([_line(quantity_prescribed=40, duration_days=20)], DRUGS)
    assert d.ok
    assert [w.code for w in d.warnings] == [ErrorCode.INSUFFICIENT_STOCK]
