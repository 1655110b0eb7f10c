# ce_core/lab/constants.py


class LabOrderStatus:
    ORDERED = "Ordered"
    SAMPLE_COLLECTED = "Sample Collected"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    REVIEWED = "Reviewed"
    COMMUNICATED = "Communicated"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"

    ALL = (ORDERED, SAMPLE_COLLECTED, IN_PROGRESS, COMPLETED, REVIEWED, COMMUNICATED, CANCELLED, REJECTED)
    TERMINAL = frozenset({COMMUNICATED, CANCELLED, REJECTED})


class LabOperation:
    COLLECT_SAMPLE = "collect-sample"
    ENTER_RESULT = "enter-result"
    REVIEW = "review"
    COMMUNICATE = "communicate"
    CANCEL = "cancel"
    REJECT_SAMPLE = "reject-sample"


PRIORITIES = ("Routine", "Urgent", "STAT")

RESULT_INTERPRETATIONS = (
    "Normal",
    "Abnormal",
    "Critical",
    "Indeterminate",
    "Inconclusive",
    "Not Applicable",
    "Pending",
)

TEST_CATEGORIES = (
    "Hematology",
    "Chemistry",
    "Immunology",
    "Microbiology",
    "Molecular",
    "Serology",
    "Urinalysis",
    "Other",
)

SAMPLE_TYPES = ("Blood", "Serum", "Plasma", "Urine", "Stool", "Sputum", "CSF", "Swab", "Tissue", "Other")

LAB_ORDER_NUMBER_PREFIX = "LAB"
