# ce_core/pharmacy/rules.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Any, Mapping, Optional, Sequence

from ce_core.common.decisions import Decision, ErrorCode, Problem
from ce_core.pharmacy.constants import FREQUENCIES, FREQUENCY_MULTIPLIERS


@dataclass(frozen=True)
class DrugSnapshot:
    """Read-only view of a catalog drug, supplied per decision call."""
    id: Any
    commodity_name: str
    quantity: Optional[int]
    is_active: bool = True


@dataclass(frozen=True)
class PrescriptionLine:
    drug_id: Any = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration_days: Optional[int] = None
    quantity_prescribed: Optional[int] = None
    instructions: Optional[str] = None


def multiplier(frequency: Optional[str]) -> Optional[Fraction]:
    return FREQUENCY_MULTIPLIERS.get(frequency)


def _unknown_frequency(frequency) -> Decision:
    return Decision.reject(
        ErrorCode.VALIDATION_ERROR,
        f"Unknown frequency: {frequency}.",
        errors=[{"field": "frequency", "reason": f"must be one of {', '.join(FREQUENCIES)}"}],
    )


def _negative(field: str) -> Decision:
    return Decision.reject(
        ErrorCode.VALIDATION_ERROR,
        f"{field} cannot be negative.",
        errors=[{"field": field, "reason": "must be zero or more"}],
    )


def quantity_for(days: int, frequency: str) -> int:
    return math.ceil(days * FREQUENCY_MULTIPLIERS[frequency])


def duration_for(quantity: int, frequency: str) -> int:
    return math.ceil(quantity / FREQUENCY_MULTIPLIERS[frequency])


# ---------------------------------------------------------------------
# Bidirectional recompute
# ---------------------------------------------------------------------
def set_duration(line: PrescriptionLine, days: int) -> Decision:
    """quantity := ceil(days * multiplier(frequency))"""
    if multiplier(line.frequency) is None:
        return _unknown_frequency(line.frequency)
    if days < 0:
        return _negative("duration_days")
    return Decision.accept(replace(line, duration_days=days, quantity_prescribed=quantity_for(days, line.frequency)))


def set_quantity(line: PrescriptionLine, quantity: int) -> Decision:
    """duration := ceil(quantity / multiplier(frequency))"""
    if multiplier(line.frequency) is None:
        return _unknown_frequency(line.frequency)
    if quantity < 0:
        return _negative("quantity_prescribed")
    return Decision.accept(
        replace(line, quantity_prescribed=quantity, duration_days=duration_for(quantity, line.frequency))
    )


def set_frequency(line: PrescriptionLine, frequency: str) -> Decision:
    """
    Duration is the operator's primary intent: keep it and recompute the
    quantity under the new multiplier. Without a duration only the frequency changes.
    """
    if multiplier(frequency) is None:
        return _unknown_frequency(frequency)
    if line.duration_days is None:
        return Decision.accept(replace(line, frequency=frequency))
    return Decision.accept(
        replace(line, frequency=frequency, quantity_prescribed=quantity_for(line.duration_days, frequency))
    )


# ---------------------------------------------------------------------
# Stock and submission checks
# ---------------------------------------------------------------------
def check_stock(lines: Sequence[PrescriptionLine], drugs: Mapping[Any, DrugSnapshot]) -> list[Problem]:
    """
    One InsufficientStock warning per item whose quantity exceeds on-hand stock.
    Unknown stock (None) counts as zero.
    """
    warnings: list[Problem] = []
    for index, line in enumerate(lines):
        drug = drugs.get(line.drug_id)
        if drug is None or line.quantity_prescribed is None:
            continue
        available = drug.quantity or 0
        if line.quantity_prescribed > available:
            warnings.append(
                Problem(
                    code=ErrorCode.INSUFFICIENT_STOCK,
                    message=f"Only {available} of {drug.commodity_name} in stock.",
                    details={
                        "index": index,
                        "drug_id": str(drug.id),
                        "requested": line.quantity_prescribed,
                        "available": available,
                    },
                )
            )
    return warnings


def item_errors(index: int, line: PrescriptionLine, drugs: Mapping[Any, DrugSnapshot]) -> list[dict]:
    errors: list[dict] = []
    if line.drug_id is None or line.drug_id not in drugs:
        errors.append({"index": index, "field": "drug_id", "reason": "select a drug from the catalog"})
    if not str(line.dosage or "").strip():
        errors.append({"index": index, "field": "dosage", "reason": "required"})
    if line.frequency not in FREQUENCY_MULTIPLIERS:
        errors.append({"index": index, "field": "frequency", "reason": "unknown frequency"})
    if line.quantity_prescribed is None or line.quantity_prescribed < 1:
        errors.append({"index": index, "field": "quantity_prescribed", "reason": "must be at least 1"})
    if line.duration_days is None or line.duration_days < 1:
        errors.append({"index": index, "field": "duration_days", "reason": "must be at least 1"})
    return errors


def validate_prescription(lines: Sequence[PrescriptionLine], drugs: Mapping[Any, DrugSnapshot]) -> Decision:
    """
    Submission-time validation across all items. Every offending item and
    field is reported in a single ValidationError; stock shortfalls come back
    as per-item warnings on an accepted decision.
    """
    if not lines:
        return Decision.reject(
            ErrorCode.VALIDATION_ERROR,
            "A prescription needs at least one item.",
            errors=[{"index": None, "field": "items", "reason": "at least one item is required"}],
        )

    errors: list[dict] = []
    for index, line in enumerate(lines):
        errors.extend(item_errors(index, line, drugs))
    if errors:
        return Decision.reject(ErrorCode.VALIDATION_ERROR, "Invalid prescription items.", errors=errors)

    return Decision.accept(tuple(lines), warnings=check_stock(lines, drugs))
