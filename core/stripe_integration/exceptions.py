"""
Stripe Gateway Exceptions
=========================

Exception classes raised by `core.stripe_integration.gateway`. Every Stripe
SDK error is wrapped so that callers never have to import `stripe` to handle
a failed payment, and so the original error code survives up to the HTTP
response.

Hierarchy
---------
- PaymentGatewayError            → any gateway failure
  - CardDeclinedError            → the card was refused (card_declined, ...)
  - GatewayConfigurationError    → missing secret key / webhook secret
  - WebhookVerificationError     → bad payload or signature on a webhook

Author: GradVillage Development Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any


class PaymentGatewayError(Exception):
    """
    Base exception class for all payment gateway errors.

    Attributes:
        message (str): Human-readable error message
        code (Optional[str]): Gateway error code (e.g. "card_declined")
        status_code (Optional[int]): HTTP status of the gateway response
        user_message (Optional[str]): Message that is safe to show to the payer
        details (Dict[str, Any]): Additional error details
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.user_message = user_message
        self.details = details or {}
        super().__init__(self.message)

    @classmethod
    def from_stripe_error(cls, error: Exception) -> "PaymentGatewayError":
        """
        Build a gateway exception from a `stripe.StripeError`.

        Card errors become `CardDeclinedError`, everything else keeps the
        base class. The Stripe request id is kept in `details` for support.
        """
        code = getattr(error, "code", None)
        user_message = getattr(error, "user_message", None)
        message = user_message or str(error) or error.__class__.__name__
        target = CardDeclinedError if error.__class__.__name__ == "CardError" else cls
        details = {}
        request_id = getattr(error, "request_id", None)
        if request_id:
            details["request_id"] = request_id
        decline_code = getattr(error, "decline_code", None)
        if decline_code:
            details["decline_code"] = decline_code
        return target(
            message,
            code=code,
            status_code=getattr(error, "http_status", None),
            user_message=user_message,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.
        """
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class CardDeclinedError(PaymentGatewayError):
    """The issuer refused the card."""


class GatewayConfigurationError(PaymentGatewayError):
    """
    Raised when the gateway cannot be built, e.g. STRIPE_SECRET_KEY is unset.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="gateway_not_configured")


class WebhookVerificationError(PaymentGatewayError):
    """
    Raised when an incoming webhook cannot be parsed or its
    `Stripe-Signature` header does not match the endpoint secret.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid_webhook", status_code=400)
