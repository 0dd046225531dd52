from __future__ import annotations

from datetime import tzinfo
from typing import Any, Mapping

from .errors import FormatError, LocalValidationError
from .models import DRAFT_FIELDS, LABORATORIES, DateRangeFilter, ReservationDraft
from .time_format import to_canonical

MISSING_DATES_MESSAGE = "Please select both start and end dates"

_FIELD_LABELS = {
    "email": "email",
    "name": "full name",
    "studentId": "student ID",
    "laboratory": "laboratory",
    "reservationTime": "reservation time",
}


def validate_date_range(date_range: DateRangeFilter) -> None:
    """Raise LocalValidationError unless both dates are filled in.

    Ordering is not checked; the service decides what start > end means.
    """
    has_start = bool((date_range.start_date or "").strip())
    has_end = bool((date_range.end_date or "").strip())
    if has_start and has_end:
        return

    if not has_start and not has_end:
        missing = "both"
    elif not has_start:
        missing = "start"
    else:
        missing = "end"
    raise LocalValidationError(MISSING_DATES_MESSAGE, missing_dates=missing)


def validate_draft_fields(fields: Mapping[str, Any], tz: str | tzinfo = "UTC") -> ReservationDraft:
    values = {name: str(fields.get(name) or "").strip() for name in DRAFT_FIELDS}

    missing = [name for name in DRAFT_FIELDS if not values[name]]
    if missing:
        labels = ", ".join(_FIELD_LABELS[name] for name in missing)
        raise LocalValidationError(f"Please fill in all required fields: {labels}.", missing_fields=missing)

    invalid: list[str] = []
    messages: list[str] = []
    if values["laboratory"] not in LABORATORIES:
        invalid.append("laboratory")
        messages.append("Please select a valid laboratory.")
    try:
        to_canonical(values["reservationTime"], tz)
    except FormatError:
        invalid.append("reservationTime")
        messages.append("Reservation time must be a valid date and time.")
    if invalid:
        raise LocalValidationError(" ".join(messages), invalid_fields=invalid)

    return ReservationDraft(
        email=values["email"],
        name=values["name"],
        student_id=values["studentId"],
        laboratory=values["laboratory"],
        reservation_time=values["reservationTime"],
    )
