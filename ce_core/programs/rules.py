# ce_core/programs/rules.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from ce_core.common.decisions import Command, Decision, ErrorCode, Problem
from ce_core.programs.constants import (
    BASELINE_VIRAL_LOAD_INDICATION,
    CARE_ENTRY_POINTS,
    CREATE_VIRAL_LOAD_ORDER,
    EXPOSURE_MODES,
    HIV_TEST_MODES,
    PEP_DURATIONS,
    PEP_URGENCY,
    PREP_TYPES,
    PRIOR_ART_TYPES,
    SUPPORTER_RELATIONSHIPS,
    ArtStatus,
    HivStatus,
    HtsResult,
    PepStatus,
    Program,
    PrepStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class HtsSnapshot:
    """The parts of an HTS record the enrollment policy reads."""
    id: Any
    patient_id: Any
    final_result: Optional[str]
    is_completed: bool


@dataclass(frozen=True)
class EnrollmentSnapshot:
    """An existing enrollment of a patient, as far as duplicate checks care."""
    program: str
    patient_id: Any
    status: str
    hts_record_id: Any = None


_CLOSED_STATUSES = {
    Program.ART: ArtStatus.CLOSED,
    Program.PEP: PepStatus.CLOSED,
    Program.PREP: PrepStatus.CLOSED,
}


def is_active(program: str, status: str) -> bool:
    return status not in _CLOSED_STATUSES[program]


# ---------------------------------------------------------------------
# Shared checks
# ---------------------------------------------------------------------
def _blank(value) -> bool:
    return not str(value or "").strip()


def _clean(value) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def _require(fields: dict, names: Sequence[str], errors: list[dict]) -> None:
    for name in names:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and _blank(value)):
            errors.append({"field": name, "reason": "required"})


def _one_of(fields: dict, name: str, allowed: Sequence[str], errors: list[dict], *, required: bool = False) -> None:
    value = fields.get(name)
    if value in (None, ""):
        if required and not any(e["field"] == name for e in errors):
            errors.append({"field": name, "reason": "required"})
        return
    if value not in allowed:
        errors.append({"field": name, "reason": f"must be one of {', '.join(allowed)}"})


def check_duplicate(program: str, *, patient_id, existing: Iterable[EnrollmentSnapshot]) -> Optional[Decision]:
    """
    Reject when the patient already holds an active record in `program`.
    Runs before any write; `existing` is whatever the caller loaded for the patient.
    """
    for rec in existing:
        if rec.program == program and rec.patient_id == patient_id and is_active(program, rec.status):
            return Decision.reject(
                ErrorCode.DUPLICATE_ENROLLMENT,
                f"Patient already has an active {program} enrollment.",
                program=program,
                patient_id=str(patient_id),
                status=rec.status,
            )
    return None


def _invalid(message: str, errors: list[dict]) -> Decision:
    return Decision.reject(ErrorCode.VALIDATION_ERROR, message, errors=errors)


# ---------------------------------------------------------------------
# ART (routine, any patient)
# ---------------------------------------------------------------------
ART_REQUIRED = ("date_confirmed_hiv_positive", "date_enrolled_into_hiv_care", "entry_point")
ART_TEXT_FIELDS = (
    "where_test_was_done",
    "relationship_with_next_of_kin",
    "name_of_next_of_kin",
    "phone_no_of_next_of_kin",
)


def enroll_art(*, patient_id, fields: dict, existing: Iterable[EnrollmentSnapshot] = ()) -> Decision:
    """
    Accepts a new ART enrollment (status in_progress) and emits the baseline
    viral-load order command. The caller adds enrollment_id to the command
    payload once the row exists.
    """
    duplicate = check_duplicate(Program.ART, patient_id=patient_id, existing=existing)
    if duplicate:
        return duplicate

    errors: list[dict] = []
    _require(fields, ART_REQUIRED, errors)
    _one_of(fields, "entry_point", CARE_ENTRY_POINTS, errors)
    _one_of(fields, "mode_of_hiv_test", HIV_TEST_MODES, errors)
    _one_of(fields, "prior_art", PRIOR_ART_TYPES, errors)

    confirmed: Optional[date] = fields.get("date_confirmed_hiv_positive")
    enrolled: Optional[date] = fields.get("date_enrolled_into_hiv_care")
    if confirmed and enrolled and enrolled < confirmed:
        errors.append({"field": "date_enrolled_into_hiv_care", "reason": "cannot precede date_confirmed_hiv_positive"})

    if errors:
        return _invalid("Invalid ART enrollment.", errors)

    state = {
        "patient_id": patient_id,
        "date_confirmed_hiv_positive": confirmed,
        "date_enrolled_into_hiv_care": enrolled,
        "entry_point": fields["entry_point"],
        "mode_of_hiv_test": fields.get("mode_of_hiv_test") or None,
        "prior_art": fields.get("prior_art") or None,
        "status": ArtStatus.IN_PROGRESS,
    }
    for name in ART_TEXT_FIELDS:
        state[name] = _clean(fields.get(name))

    return Decision.accept(
        state,
        commands=[
            Command(
                CREATE_VIRAL_LOAD_ORDER,
                {"patient_id": patient_id, "indication": BASELINE_VIRAL_LOAD_INDICATION},
            )
        ],
    )


# ---------------------------------------------------------------------
# PEP (time-sensitive, linked HTS record)
# ---------------------------------------------------------------------
def derive_hiv_status(hts: HtsSnapshot) -> str:
    return HivStatus.POSITIVE if hts.final_result == HtsResult.REACTIVE else HivStatus.NEGATIVE


def pep_urgency(duration_before_pep: str) -> Optional[str]:
    return PEP_URGENCY.get(duration_before_pep)


def urgency_rank(duration_before_pep: Optional[str]) -> int:
    """0 for <24hrs (Critical) up to 3 for >72hrs; unknown durations sort last."""
    try:
        return PEP_DURATIONS.index(duration_before_pep)
    except ValueError:
        return len(PEP_DURATIONS)


def sort_by_urgency(items: Iterable[T], *, duration: Callable[[T], Optional[str]]) -> list[T]:
    return sorted(items, key=lambda item: urgency_rank(duration(item)))


def enroll_pep(*, hts: Optional[HtsSnapshot], fields: dict, existing: Iterable[EnrollmentSnapshot] = ()) -> Decision:
    """
    hiv_status_at_exposure is always derived from the linked HTS record.
    A disagreeing client value is overridden and reported as a warning.
    """
    if hts is None:
        return _invalid("PEP enrollment requires an HTS record.", [{"field": "hts_record_id", "reason": "required"}])

    duplicate = check_duplicate(Program.PEP, patient_id=hts.patient_id, existing=existing)
    if duplicate:
        return duplicate

    errors: list[dict] = []
    _one_of(fields, "mode_of_exposure", EXPOSURE_MODES, errors, required=True)
    _one_of(fields, "duration_before_pep", PEP_DURATIONS, errors, required=True)
    _one_of(fields, "supporter_relationship", SUPPORTER_RELATIONSHIPS, errors)
    if errors:
        return _invalid("Invalid PEP enrollment.", errors)

    derived = derive_hiv_status(hts)
    warnings: list[Problem] = []
    supplied = fields.get("hiv_status_at_exposure")
    if supplied and supplied != derived:
        logger.warning(
            "PEP hiv_status_at_exposure %r overridden with %r from HTS record %s", supplied, derived, hts.id
        )
        warnings.append(
            Problem(
                code=ErrorCode.DERIVED_DATA_MISMATCH,
                message="hiv_status_at_exposure was recomputed from the linked HTS record.",
                details={"field": "hiv_status_at_exposure", "supplied": supplied, "derived": derived},
            )
        )

    state = {
        "patient_id": hts.patient_id,
        "hts_record_id": hts.id,
        "mode_of_exposure": fields["mode_of_exposure"],
        "duration_before_pep": fields["duration_before_pep"],
        "hiv_status_at_exposure": derived,
        "pep_supporter": _clean(fields.get("pep_supporter")),
        "supporter_relationship": fields.get("supporter_relationship") or None,
        "supporter_telephone": _clean(fields.get("supporter_telephone")),
        "status": PepStatus.ACTIVE,
    }
    return Decision.accept(state, warnings=warnings)


# ---------------------------------------------------------------------
# PrEP (routine, completed HTS record)
# ---------------------------------------------------------------------
def enroll_prep(*, hts: Optional[HtsSnapshot], fields: dict, existing: Iterable[EnrollmentSnapshot] = ()) -> Decision:
    if hts is None:
        return _invalid("PrEP commencement requires an HTS record.", [{"field": "hts_record_id", "reason": "required"}])

    duplicate = check_duplicate(Program.PREP, patient_id=hts.patient_id, existing=existing)
    if duplicate:
        return duplicate

    errors: list[dict] = []
    if not hts.is_completed:
        errors.append({"field": "hts_record_id", "reason": "HTS record is not completed"})
    elif hts.final_result == HtsResult.REACTIVE:
        errors.append({"field": "hts_record_id", "reason": "PrEP is not offered after a Reactive result"})

    _require(fields, ("date_initial_adherence_counseling",), errors)
    _one_of(fields, "prep_type_at_start", PREP_TYPES, errors)

    allergies = bool(fields.get("history_of_drug_allergies"))
    if allergies and _blank(fields.get("allergy_details")):
        errors.append({"field": "allergy_details", "reason": "required when history_of_drug_allergies is set"})

    transferred = bool(fields.get("transferred_in"))
    if transferred and _blank(fields.get("transferred_from_facility")):
        errors.append({"field": "transferred_from_facility", "reason": "required when transferred_in is set"})

    if errors:
        return _invalid("Invalid PrEP commencement.", errors)

    state = {
        "patient_id": hts.patient_id,
        "hts_record_id": hts.id,
        "date_initial_adherence_counseling": fields["date_initial_adherence_counseling"],
        "date_prep_initiated": fields.get("date_prep_initiated"),
        "prep_type_at_start": fields.get("prep_type_at_start") or None,
        "history_of_drug_allergies": allergies,
        "allergy_details": _clean(fields.get("allergy_details")) if allergies else None,
        "transferred_in": transferred,
        "previous_enrollment_id": _clean(fields.get("previous_enrollment_id")) if transferred else None,
        "transferred_from_facility": _clean(fields.get("transferred_from_facility")) if transferred else None,
        "status": PrepStatus.ACTIVE,
    }
    return Decision.accept(state)


# ---------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------
def qualifies(program: str, hts: HtsSnapshot) -> bool:
    """PEP takes any HTS record; PrEP needs a completed, non-reactive one."""
    if program == Program.PREP:
        return hts.is_completed and hts.final_result != HtsResult.REACTIVE
    return True


def consumed_record_ids(program: str, enrollments: Iterable[EnrollmentSnapshot]) -> set:
    return {
        e.hts_record_id
        for e in enrollments
        if e.program == program and e.hts_record_id is not None and is_active(program, e.status)
    }


def eligible_hts_records(
    program: str, records: Iterable[HtsSnapshot], enrollments: Iterable[EnrollmentSnapshot]
) -> list[HtsSnapshot]:
    """
    Qualifying HTS records minus those already linked to an active enrollment
    of the same program. Input order is preserved.
    """
    consumed = consumed_record_ids(program, enrollments)
    return [r for r in records if qualifies(program, r) and r.id not in consumed]
