from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import tzinfo
from typing import Any, Mapping, Protocol, Sequence

from .errors import FormatError, LocalValidationError, NetworkError, ReservationClientError, ValidationError
from .models import DRAFT_FIELDS, TAB_CURRENT, TAB_NEW, TAB_PAST, TABS, DateRangeFilter, Reservation, ReservationDraft
from .time_format import to_canonical, today_iso
from .validators import validate_date_range, validate_draft_fields

LOAD_ACTIVE_FAILED = "Failed to load reservations. Please try again later."
LOAD_PAST_FAILED = "Failed to load past reservations. Please try again later."
CREATE_FAILED = "Failed to create reservation. Please try again."
CREATE_SUCCEEDED = "Reservation created successfully!"

LIST_SLOTS = (TAB_CURRENT, TAB_PAST)

logger = logging.getLogger(__name__)


class ReservationService(Protocol):
    async def fetch_active(self) -> Sequence[Reservation]: ...

    async def fetch_past(self, start_date: str, end_date: str) -> Sequence[Reservation]: ...

    async def create_reservation(self, draft: ReservationDraft) -> Reservation: ...


@dataclass
class ViewState:
    date_range: DateRangeFilter
    active_tab: str = TAB_CURRENT
    reservations: tuple[Reservation, ...] = ()
    loading: bool = False
    error: str | None = None
    form_fields: dict[str, str] = field(default_factory=dict)
    notice: str | None = None

    @staticmethod
    def initial(tz: str | tzinfo = "UTC") -> "ViewState":
        today = today_iso(tz)
        return ViewState(date_range=DateRangeFilter(today, today))

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeTab": self.active_tab,
            "reservations": [reservation.to_dict() for reservation in self.reservations],
            "loading": self.loading,
            "error": self.error,
            "dateRange": self.date_range.to_params(),
            "formFields": dict(self.form_fields),
            "notice": self.notice,
        }


class ViewController:
    """Owns one session's ViewState and drives the service client.

    Every request belongs to an operation slot (one per tab) and gets a
    fresh token. Current and past loads share the reservation list, so a
    list response is applied only while its token is the latest list token;
    switching tabs invalidates it. ``loading`` mirrors whether the active
    tab's slot has a request in flight.
    """

    def __init__(
        self,
        client: ReservationService,
        tz: str | tzinfo = "UTC",
        state: ViewState | None = None,
    ) -> None:
        self.client = client
        self.tz = tz
        self.state = state or ViewState.initial(tz)
        self._counter = 0
        self._pending: dict[str, int] = {}
        self._list_token: int | None = None

    def _begin(self, slot: str) -> int:
        self._counter += 1
        token = self._counter
        self._pending[slot] = token
        if slot in LIST_SLOTS:
            self._list_token = token
        self.state.error = None
        self._sync_loading()
        return token

    def _is_latest(self, slot: str, token: int) -> bool:
        latest = self._list_token if slot in LIST_SLOTS else self._pending.get(slot)
        if latest == token:
            return True
        logger.debug("Dropping stale %s response (token %s, latest %s)", slot, token, latest)
        return False

    def _settle(self, slot: str, token: int) -> None:
        if self._pending.get(slot) == token:
            del self._pending[slot]
        self._sync_loading()

    def _sync_loading(self) -> None:
        self.state.loading = self.state.active_tab in self._pending

    async def start(self) -> None:
        await self.load_active()

    async def select_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab!r}")
        self.state.active_tab = tab
        self.state.error = None
        # List requests started from the previous tab must not land on this one
        self._list_token = None
        for slot in LIST_SLOTS:
            self._pending.pop(slot, None)
        self._sync_loading()
        if tab == TAB_CURRENT:
            await self.load_active()
        elif tab == TAB_PAST:
            await self.load_past()

    def set_date_range(self, start_date: str | None = None, end_date: str | None = None) -> DateRangeFilter:
        current = self.state.date_range
        self.state.date_range = replace(
            current,
            start_date=current.start_date if start_date is None else start_date.strip(),
            end_date=current.end_date if end_date is None else end_date.strip(),
        )
        return self.state.date_range

    async def load_active(self) -> None:
        token = self._begin(TAB_CURRENT)
        try:
            reservations = await self.client.fetch_active()
        except ReservationClientError as error:
            if self._is_latest(TAB_CURRENT, token):
                logger.warning("Error fetching reservations: %s", error)
                self.state.error = LOAD_ACTIVE_FAILED
            self._settle(TAB_CURRENT, token)
            return

        if self._is_latest(TAB_CURRENT, token):
            self.state.reservations = tuple(reservations)
        self._settle(TAB_CURRENT, token)

    async def load_past(self) -> None:
        date_range = self.state.date_range
        try:
            validate_date_range(date_range)
        except LocalValidationError as error:
            self.state.error = error.message
            return

        token = self._begin(TAB_PAST)
        try:
            reservations = await self.client.fetch_past(date_range.start_date, date_range.end_date)
        except ReservationClientError as error:
            if self._is_latest(TAB_PAST, token):
                logger.warning("Error fetching past reservations: %s", error)
                self.state.error = LOAD_PAST_FAILED
            self._settle(TAB_PAST, token)
            return

        if self._is_latest(TAB_PAST, token):
            self.state.reservations = tuple(reservations)
        self._settle(TAB_PAST, token)

    async def submit_reservation(self, form_fields: Mapping[str, Any]) -> Reservation | None:
        """Validate, normalize and create a reservation.

        Returns the created reservation, or None when the submission was
        rejected locally, by the service, or superseded by a newer one.
        """
        self.state.form_fields = {name: str(form_fields.get(name) or "") for name in DRAFT_FIELDS}
        try:
            draft = validate_draft_fields(form_fields, self.tz)
            draft = replace(draft, reservation_time=to_canonical(draft.reservation_time, self.tz))
        except LocalValidationError as error:
            self.state.error = error.message
            return None
        except FormatError as error:
            self.state.error = str(error)
            return None

        token = self._begin(TAB_NEW)
        try:
            created = await self.client.create_reservation(draft)
        except ValidationError as error:
            if self._is_latest(TAB_NEW, token):
                logger.warning("Reservation rejected by service: %s", error.message)
                self.state.error = error.message
            self._settle(TAB_NEW, token)
            return None
        except NetworkError as error:
            if self._is_latest(TAB_NEW, token):
                logger.warning("Error creating reservation: %s", error)
                self.state.error = CREATE_FAILED
            self._settle(TAB_NEW, token)
            return None

        if not self._is_latest(TAB_NEW, token):
            return None

        logger.info("Created reservation %s for %s at %s", created.id, created.laboratory, created.reservation_time)
        self.state.form_fields = {}
        # The new slot stays in flight until the refreshed list is in
        await self.load_active()
        self.state.notice = CREATE_SUCCEEDED
        self._settle(TAB_NEW, token)
        return created

    def pop_notice(self) -> str | None:
        notice, self.state.notice = self.state.notice, None
        return notice
