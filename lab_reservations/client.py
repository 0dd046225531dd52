from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import NetworkError, ValidationError
from .models import DateRangeFilter, Reservation, ReservationDraft

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 10.0

logger = logging.getLogger(__name__)


class ReservationServiceClient:
    """Async wrapper around the reservation service REST endpoints.

    Every call is a single request with no retry and no caching. A fresh
    ``httpx.AsyncClient`` is opened per call so the client can be shared
    across event loops.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float | None = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_active(self) -> list[Reservation]:
        response = await self._send("GET", "/reservations/active")
        return _parse_reservation_list(response)

    async def fetch_past(self, start_date: str, end_date: str) -> list[Reservation]:
        params = DateRangeFilter(start_date, end_date).to_params()
        response = await self._send("GET", "/reservations/past", params=params)
        return _parse_reservation_list(response)

    async def create_reservation(self, draft: ReservationDraft) -> Reservation:
        response = await self._send("POST", "/reservations", json=draft.to_dict(), structured_rejection=True)
        payload = _json_body(response)
        if not isinstance(payload, dict):
            raise NetworkError("Unexpected response for created reservation.", response.status_code)
        return _parse_reservation(payload, response.status_code)

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        structured_rejection: bool = False,
    ) -> httpx.Response:
        logger.debug("%s %s%s params=%s", method, self.base_url, path, params)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as http:
                response = await http.request(method, path, params=params, json=json)
        except httpx.HTTPError as error:
            raise NetworkError(f"Request to {path} failed: {error}") from error

        if response.is_success:
            return response

        if structured_rejection and 400 <= response.status_code < 500:
            message = _rejection_message(response)
            if message:
                raise ValidationError(message, response.status_code)
        raise NetworkError(
            f"{method} {path} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as error:
        raise NetworkError("Response body is not valid JSON.", response.status_code) from error


def _rejection_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return None


def _parse_reservation(row: dict[str, Any], status_code: int) -> Reservation:
    try:
        return Reservation.from_dict(row)
    except KeyError as error:
        raise NetworkError(f"Reservation is missing field {error}.", status_code) from error


def _parse_reservation_list(response: httpx.Response) -> list[Reservation]:
    payload = _json_body(response)
    if not isinstance(payload, list):
        raise NetworkError("Expected a list of reservations.", response.status_code)

    reservations: list[Reservation] = []
    for index, row in enumerate(payload):
        if not isinstance(row, dict):
            raise NetworkError(f"Reservation #{index} is not an object.", response.status_code)
        reservations.append(_parse_reservation(row, response.status_code))
    return reservations
