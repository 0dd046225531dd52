from __future__ import annotations

from dataclasses import replace
from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP

from lab_reservations import (
    LABORATORIES,
    ReservationClientError,
    ReservationServiceClient,
    load_config,
    to_canonical,
    validate_date_range,
    validate_draft_fields,
)
from lab_reservations.models import DateRangeFilter

mcp = FastMCP(
    "Lab Reservation MCP Server",
    instructions="Browse and create laboratory access reservations through the reservation service.",
    json_response=True,
)

_client: ReservationServiceClient | None = None
_timezone = "UTC"


def configure(client: ReservationServiceClient | None = None, timezone: str | None = None) -> None:
    """Set the service client and input timezone; unset values come from load_config()."""
    global _client, _timezone
    if client is None or timezone is None:
        config = load_config()
        client = client or ReservationServiceClient(config.api_url, timeout=config.request_timeout)
        timezone = timezone or config.timezone
    _client = client
    _timezone = timezone


def _service() -> ReservationServiceClient:
    if _client is None:
        configure()
    return _client


def _failure(error: ReservationClientError) -> dict[str, Any]:
    message = getattr(error, "message", None) or str(error)
    return {"ok": False, "message": message}


@mcp.resource("reservation://laboratories")
async def list_laboratories() -> list[str]:
    """List the laboratories that can be reserved."""
    return list(LABORATORIES)


@mcp.tool()
async def list_active_reservations() -> dict[str, Any]:
    """Return reservations whose time has not yet elapsed."""
    try:
        reservations = await _service().fetch_active()
    except ReservationClientError as error:
        return _failure(error)
    return {"ok": True, "reservations": [reservation.to_dict() for reservation in reservations]}


@mcp.tool()
async def list_past_reservations(
    start_date: Annotated[str, "First day of the range, YYYY-MM-DD"],
    end_date: Annotated[str, "Last day of the range, YYYY-MM-DD"],
) -> dict[str, Any]:
    """Return reservations inside a historical date range."""
    try:
        validate_date_range(DateRangeFilter(start_date, end_date))
        reservations = await _service().fetch_past(start_date, end_date)
    except ReservationClientError as error:
        return _failure(error)
    return {"ok": True, "reservations": [reservation.to_dict() for reservation in reservations]}


@mcp.tool()
async def create_reservation(
    email: str,
    name: str,
    student_id: str,
    laboratory: Annotated[str, "One of Lab 1, Lab 2, Lab 3, Lab 4"],
    reservation_time: Annotated[str, "Local time on the hour, YYYY-MM-DD HH:00"],
) -> dict[str, Any]:
    """Create a reservation for one laboratory slot."""
    fields = {
        "email": email,
        "name": name,
        "studentId": student_id,
        "laboratory": laboratory,
        "reservationTime": reservation_time,
    }
    try:
        service = _service()
        draft = validate_draft_fields(fields, _timezone)
        draft = replace(draft, reservation_time=to_canonical(draft.reservation_time, _timezone))
        created = await service.create_reservation(draft)
    except ReservationClientError as error:
        return _failure(error)
    return {"ok": True, "reservation": created.to_dict()}


def main() -> None:
    configure()
    mcp.run()


if __name__ == "__main__":
    main()
