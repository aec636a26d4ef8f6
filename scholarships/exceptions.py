"""
GradVillage Domain Exceptions

Exception hierarchy raised by the scholarship services (registration payment,
donations, verification, welcome boxes). Views let them propagate; the API
exception handler in `backend.exceptions` turns them into the
`{"success": false, ...}` envelope with the matching HTTP status.

Author: GradVillage Development Team
Version: 1.0.0
"""

from typing import Any, Dict, Optional


class ScholarshipError(Exception):
    """
    Base exception for all scholarship domain errors.

    Attributes:
        message (str): Human-readable error message, shown to the client as-is
        status_code (int): HTTP status code of the error response
        code (Optional[str]): Machine readable error code
        details (Dict[str, Any]): Extra keys merged into the error response
    """

    status_code = 400
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "message": self.message,
        }
        if self.code:
            payload["code"] = self.code
        payload.update(self.details)
        return payload


class ValidationFailed(ScholarshipError):
    """Missing or invalid request data."""

    status_code = 400


class InvalidCredentials(ScholarshipError):
    status_code = 401


class AccountInactive(ScholarshipError):
    """The account exists but is suspended or deactivated."""

    status_code = 403


class NotFound(ScholarshipError):
    status_code = 404


class Conflict(ScholarshipError):
    """The requested transition is not allowed for the current state."""

    status_code = 400


class PaymentDeclined(ScholarshipError):
    """
    The payment did not succeed (declined card, failed intent, 3-D Secure
    required). Carries the gateway code so clients can react to it.
    """

    status_code = 400


class RecordingFailed(ScholarshipError):
    """
    The charge went through but the local bookkeeping could not be written.
    The payment intent id is returned so the request can be retried with the
    same idempotency key or reconciled by support.
    """

    status_code = 500
    default_code = "RECORDING_FAILED"
