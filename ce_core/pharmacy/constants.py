# ce_core/pharmacy/constants.py
from fractions import Fraction

# Tablets per day for each frequency. Fractions keep Weekly (1/7) exact
# through the ceil() in quantity/duration recompute.
FREQUENCY_MULTIPLIERS = {
    "Once Daily": Fraction(1),
    "Twice Daily": Fraction(2),
    "Three Times Daily": Fraction(3),
    "Four Times Daily": Fraction(4),
    "Every 12 Hours": Fraction(2),
    "Every 8 Hours": Fraction(3),
    "Every 6 Hours": Fraction(4),
    "Every 4 Hours": Fraction(6),
    "Every other day": Fraction(1, 2),
    "Weekly": Fraction(1, 7),
    "As Needed": Fraction(1),
}

FREQUENCIES = tuple(FREQUENCY_MULTIPLIERS)


class PrescriptionStatus:
    PENDING = "Pending"
    DISPENSED = "Dispensed"
    PARTIALLY_DISPENSED = "Partially Dispensed"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"

    ALL = (PENDING, DISPENSED, PARTIALLY_DISPENSED, CANCELLED, EXPIRED)


PRESCRIPTION_NUMBER_PREFIX = "RX"
