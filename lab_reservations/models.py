from __future__ import annotations

from dataclasses import dataclass
from typing import Any

LABORATORIES = ("Lab 1", "Lab 2", "Lab 3", "Lab 4")
DRAFT_FIELDS = ("email", "name", "studentId", "laboratory", "reservationTime")

TAB_CURRENT = "current"
TAB_PAST = "past"
TAB_NEW = "new"
TABS = (TAB_CURRENT, TAB_PAST, TAB_NEW)


@dataclass(frozen=True)
class ReservationDraft:
    email: str
    name: str
    student_id: str
    laboratory: str
    reservation_time: str

    def to_dict(self) -> dict[str, str]:
        return {
            "email": self.email,
            "name": self.name,
            "studentId": self.student_id,
            "laboratory": self.laboratory,
            "reservationTime": self.reservation_time,
        }


@dataclass(frozen=True)
class Reservation:
    id: str
    email: str
    name: str
    student_id: str
    laboratory: str
    reservation_time: str

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "studentId": self.student_id,
            "laboratory": self.laboratory,
            "reservationTime": self.reservation_time,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        return Reservation(
            id=str(data["id"]),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or ""),
            student_id=str(data.get("studentId") or ""),
            laboratory=str(data.get("laboratory") or ""),
            reservation_time=str(data.get("reservationTime") or ""),
        )


@dataclass(frozen=True)
class DateRangeFilter:
    start_date: str
    end_date: str

    def to_params(self) -> dict[str, str]:
        return {"startDate": self.start_date, "endDate": self.end_date}
