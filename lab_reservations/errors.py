from __future__ import annotations

from typing import Iterable


class ReservationClientError(Exception):
    """Base class for every error the controller turns into a banner message."""


class NetworkError(ReservationClientError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ReservationClientError):
    """The service rejected a create request with a structured message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FormatError(ReservationClientError, ValueError):
    pass


class LocalValidationError(ReservationClientError, ValueError):
    """Input rejected before any request was made."""

    def __init__(
        self,
        message: str,
        missing_fields: Iterable[str] = (),
        invalid_fields: Iterable[str] = (),
        missing_dates: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.missing_fields = frozenset(missing_fields)
        self.invalid_fields = frozenset(invalid_fields)
        self.missing_dates = missing_dates
