# ce_core/programs/constants.py


class Program:
    ART = "ART"
    PEP = "PEP"
    PREP = "PrEP"

    ALL = (ART, PEP, PREP)


# Display number prefixes: {PREFIX}-{YYYYMMDD}-{NNNNN}
NUMBER_PREFIXES = {
    Program.ART: "ART",
    Program.PEP: "PEP",
    Program.PREP: "PREP",
}


class HtsResult:
    NON_REACTIVE = "Non-reactive"
    REACTIVE = "Reactive"
    NOT_DONE = "Not done"

    ALL = (NON_REACTIVE, REACTIVE, NOT_DONE)


class HivStatus:
    NEGATIVE = "Negative"
    POSITIVE = "Positive"

    ALL = (NEGATIVE, POSITIVE)


# ---------------------------------------------------------------------
# ART
# ---------------------------------------------------------------------
class ArtStatus:
    IN_PROGRESS = "in_progress"  # enrolled, waiting for first dispensing
    ACTIVE = "Active"
    ON_EAC = "On EAC"
    TRANSFERRED_OUT = "Transferred Out"
    DECEASED = "Deceased"
    LTFU = "LTFU"

    ALL = (IN_PROGRESS, ACTIVE, ON_EAC, TRANSFERRED_OUT, DECEASED, LTFU)
    CLOSED = frozenset({TRANSFERRED_OUT, DECEASED, LTFU})


CARE_ENTRY_POINTS = (
    "ANC/PMTCT",
    "Index testing",
    "Inpatient",
    "OPD",
    "Others",
    "Outreach",
    "STI clinic",
    "TB-DOT",
    "Transferred in",
    "VCT",
)

HIV_TEST_MODES = ("HIV-AB", "PCR")

PRIOR_ART_TYPES = (
    "PEP",
    "PMTCT only",
    "Transfer in with records",
    "Transfer in without records",
)

CREATE_VIRAL_LOAD_ORDER = "create-viral-load-order"
BASELINE_VIRAL_LOAD_INDICATION = "Baseline viral load at ART enrollment"


# ---------------------------------------------------------------------
# PEP
# ---------------------------------------------------------------------
class PepStatus:
    ACTIVE = "Active"
    COMPLETED = "Completed"
    DISCONTINUED = "Discontinued"

    ALL = (ACTIVE, COMPLETED, DISCONTINUED)
    CLOSED = frozenset({COMPLETED, DISCONTINUED})


EXPOSURE_MODES = ("Non-occupational", "Occupational")

SUPPORTER_RELATIONSHIPS = ("Caregiver", "Child", "Father", "Mother", "Sibling", "Other", "Guardian")


class PepUrgency:
    CRITICAL = "Critical"
    URGENT = "Urgent"
    TIME_SENSITIVE = "Time-Sensitive"
    STANDARD = "Standard"


# duration_before_pep -> urgency tier, in rank order (0 = most urgent)
PEP_URGENCY = {
    "<24hrs": PepUrgency.CRITICAL,
    "<48hrs": PepUrgency.URGENT,
    "<72hrs": PepUrgency.TIME_SENSITIVE,
    ">72hrs": PepUrgency.STANDARD,
}

PEP_DURATIONS = tuple(PEP_URGENCY)


# ---------------------------------------------------------------------
# PrEP
# ---------------------------------------------------------------------
class PrepStatus:
    ACTIVE = "Active"
    DISCONTINUED = "Discontinued"

    ALL = (ACTIVE, DISCONTINUED)
    CLOSED = frozenset({DISCONTINUED})


PREP_TYPES = ("ED PrEP", "Injectable / CAB-LA", "ORAL", "RING")
