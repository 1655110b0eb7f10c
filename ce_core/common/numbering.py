# ce_core/common/numbering.py
from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import Callable, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


def generate_number(prefix: str, *, on: Optional[date] = None, randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """
    Display number in the form PREFIX-YYYYMMDD-NNNNN (e.g. ART-20250114-04211).
    Must be called immediately before the write, never pre-generated for a form.
    """
    day = on or timezone.localdate()
    return f"{prefix}-{day:%Y%m%d}-{randbelow(100000):05d}"


def create_with_number(model_cls, *, number_field: str, prefix: str, max_attempts: Optional[int] = None, **fields):
    """
    Insert `model_cls(**fields)` with a freshly generated number in `number_field`.

    The unique constraint on the number is the collision detector: each attempt
    runs in a savepoint so an IntegrityError doesn't poison the outer transaction.
    """
    attempts = max_attempts or getattr(settings, "CE_NUMBER_MAX_ATTEMPTS", 5)
    last_exc: Optional[IntegrityError] = None

    for attempt in range(1, attempts + 1):
        number = generate_number(prefix)
        try:
            with transaction.atomic(savepoint=True):
                return model_cls.objects.create(**{number_field: number}, **fields)
        except IntegrityError as exc:
            if model_cls.objects.filter(**{number_field: number}).exists():
                logger.warning("Number collision on %s=%s (attempt %s)", number_field, number, attempt)
                last_exc = exc
                continue
            raise

    raise last_exc
