"""Error kinds raised by the Fitbit client and token storage.

Every failed call is classified as either ``ErrorKind.AUTH`` (the user has to
run the authorization flow again) or ``ErrorKind.API`` (the provider answered
with some other non-2xx). ``ApiResult`` carries the same classification as a
value for callers that prefer branching over ``try``/``except``.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    AUTH = "auth"
    API = "api"


class FitbitError(Exception):
    """Base class for classified Fitbit failures."""

    kind: ErrorKind = ErrorKind.API

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FitbitAuthError(FitbitError):
    """No usable credential; recoverable only by re-authorizing."""

    kind = ErrorKind.AUTH


class FitbitApiError(FitbitError):
    """Non-2xx answer from a resource or token endpoint."""

    kind = ErrorKind.API

    def __init__(self, message: str, status_code: int, errors: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors


class TokenStorageError(Exception):
    """The credential record could not be written or removed."""


class InvalidAuthorizationState(ValueError):
    """Pending authorization missing, tampered with, expired or mismatched."""


def parse_error_body(response: Any) -> Any:
    """Best-effort decode of an error response body."""
    try:
        return response.json()
    except ValueError:
        return {"raw": getattr(response, "text", "")}


@dataclass
class ApiResult(Generic[T]):
    """Outcome of a call: either ``value`` or a classified ``error``."""

    value: Optional[T] = None
    error: Optional[FitbitError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
