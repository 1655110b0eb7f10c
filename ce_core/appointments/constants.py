# ce_core/appointments/constants.py


class AppointmentStatus:
    """
    Status strings shared by rules (pure) and models (TextChoices).
    Keep aligned with appointments.models.AppointmentStatusChoices.
    """
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    CHECKED_IN = "Checked-in"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"
    RESCHEDULED = "Rescheduled"

    ALL = (SCHEDULED, CONFIRMED, CHECKED_IN, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW, RESCHEDULED)
    INITIAL = frozenset({SCHEDULED, CONFIRMED})
    TERMINAL = frozenset({COMPLETED, CANCELLED, NO_SHOW, RESCHEDULED})


class AppointmentOperation:
    CHECK_IN = "check-in"
    START_VISIT = "start-visit"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    MARK_NO_SHOW = "mark-no-show"

    ALL = (CHECK_IN, START_VISIT, COMPLETE, CANCEL, RESCHEDULE, MARK_NO_SHOW)


APPOINTMENT_TYPES = (
    "Refill",
    "Follow-up",
    "Lab Review",
    "Clinical Review",
    "Counseling",
    "New Patient",
    "Emergency",
    "Other",
)

APPOINTMENT_NUMBER_PREFIX = "APT"

CREATE_VISIT_DETAILS = "create-visit-details"
