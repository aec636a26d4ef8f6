"""
Stripe Payment Gateway Adapter
==============================

Thin adapter around the official `stripe` SDK. It is the only module in the
project that talks to Stripe.

Design
------
- No module-level `stripe.api_key`. Every call passes the key of the gateway
  instance (`api_key=...` request option), so several gateways with
  different keys can live in one process and tests can inject a fake.
- `get_payment_gateway()` builds an instance from Django settings. Services
  receive the gateway (or a provider callable) through their constructor.
- SDK objects are converted to plain dicts before they leave the adapter.
- SDK errors are wrapped in `PaymentGatewayError` (see exceptions.py).

Operations
----------
- create_payment_intent(amount_cents, currency, ...) → intent dict
  (confirmed immediately when a payment method is supplied)
- confirm_payment(intent_id, payment_method_id=None) → intent dict
- retrieve_payment_intent(intent_id) → intent dict
- handle_webhook(payload, signature) → {"received": True}

Author: GradVillage Development Team
Date: 2025-09-03
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from . import signals
from .exceptions import (
    GatewayConfigurationError,
    PaymentGatewayError,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

NONPROFIT_METADATA = {
    "nonprofit_id": "gradvillage-501c3",
    "platform": "gradvillage-app",
}
STATEMENT_DESCRIPTOR_SUFFIX = "DONATION"


# ---------- helpers ----------


def _as_dict(stripe_object: Any) -> Dict[str, Any]:
    """
    Convert a StripeObject (or anything dict-like) into a plain dict.
    """
    if stripe_object is None:
        return {}
    for attr in ("to_dict_recursive", "to_dict"):
        method = getattr(stripe_object, attr, None)
        if callable(method):
            return method()
    return dict(stripe_object)


def _extract_data_object(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return the `data.object` payload of a Stripe event, or `{}`.

    Standard Stripe event shape: {"type": "...", "data": {"object": {...}}}
    """
    data = event.get("data")
    if isinstance(data, dict) and isinstance(data.get("object"), dict):
        return data["object"]
    return {}


def _stringify_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # Stripe only accepts string metadata values
    merged = dict(metadata or {})
    merged.update(NONPROFIT_METADATA)
    return {str(key): "" if value is None else str(value) for key, value in merged.items()}


# ---------- gateway ----------


class StripeGateway:
    """
    Payment gateway backed by Stripe PaymentIntents.

    Args:
        api_key: Stripe secret key (sk_test_... / sk_live_...)
        webhook_secret: Signing secret of the webhook endpoint
        api_version: Stripe API version pinned for every request
        return_url: Where Stripe redirects after 3-D Secure authentication
    """

    def __init__(
        self,
        api_key: str,
        webhook_secret: str = "",
        api_version: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> None:
        if not api_key:
            raise GatewayConfigurationError(
                "STRIPE_SECRET_KEY environment variable is not set"
            )
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.return_url = return_url

    @property
    def is_test_mode(self) -> bool:
        return self.api_key.startswith("sk_test_")

    def _request_options(self, **extra: Any) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        options.update({key: value for key, value in extra.items() if value})
        return options

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        payment_method_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        stripe_account: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a PaymentIntent for `amount_cents` in `currency`.

        With a payment method the intent is confirmed in the same call, so the
        returned status is final (`succeeded`, `requires_action`, ...).
        Without one the caller gets `requires_payment_method` and the
        client secret to finish the payment on the frontend.
        """
        params: Dict[str, Any] = {
            "amount": int(amount_cents),
            "currency": (currency or settings.DEFAULT_CURRENCY).lower(),
            "metadata": _stringify_metadata(metadata),
            "statement_descriptor_suffix": STATEMENT_DESCRIPTOR_SUFFIX,
            "payment_method_types": ["card"],
        }
        if customer_id:
            params["customer"] = customer_id
        if payment_method_id:
            params["payment_method"] = payment_method_id
            params["confirm"] = True
            if self.return_url:
                params["return_url"] = self.return_url

        logger.info(
            "Creating payment intent: amount=%s %s confirm=%s",
            params["amount"],
            params["currency"],
            bool(payment_method_id),
        )
        try:
            intent = stripe.PaymentIntent.create(
                **params,
                **self._request_options(
                    stripe_account=stripe_account, idempotency_key=idempotency_key
                ),
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe rejected payment intent: %s", exc)
            raise PaymentGatewayError.from_stripe_error(exc) from exc

        result = _as_dict(intent)
        logger.info("Payment intent %s status=%s", result.get("id"), result.get("status"))
        return result

    def confirm_payment(
        self, intent_id: str, payment_method_id: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if payment_method_id:
            params["payment_method"] = payment_method_id
        try:
            intent = stripe.PaymentIntent.confirm(
                intent_id, **params, **self._request_options()
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe payment confirmation failed for %s: %s", intent_id, exc)
            raise PaymentGatewayError.from_stripe_error(exc) from exc
        return _as_dict(intent)

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, **self._request_options())
        except stripe.StripeError as exc:
            raise PaymentGatewayError.from_stripe_error(exc) from exc
        return _as_dict(intent)

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, bool]:
        """
        Verify a webhook delivery and dispatch it by event type.

        Raises:
            GatewayConfigurationError: STRIPE_WEBHOOK_SECRET is not configured
            WebhookVerificationError: payload or signature invalid
        """
        if not self.webhook_secret:
            raise GatewayConfigurationError("STRIPE_WEBHOOK_SECRET is not set")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as exc:
            raise WebhookVerificationError("Invalid webhook payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError("Invalid webhook signature") from exc

        event = _as_dict(event)
        self.dispatch_event(event)
        return {"received": True}

    def dispatch_event(self, event: Dict[str, Any]) -> None:
        """
        Route a verified event to its handler. Unknown types are ignored.
        """
        event_type = event.get("type")
        obj = _extract_data_object(event)
        logger.info("[webhook] %s (event_id=%s)", event_type, event.get("id"))

        if event_type == "payment_intent.succeeded":
            _handle_payment_intent_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            _handle_payment_intent_failed(obj)
        else:
            logger.debug("Unhandled event type: %s", event_type)


# ---------- concrete handlers ----------


def _handle_payment_intent_succeeded(payment_intent: Dict[str, Any]) -> None:
    logger.info(
        "payment_intent.succeeded pi=%s amount=%s",
        payment_intent.get("id"),
        payment_intent.get("amount_received") or payment_intent.get("amount"),
    )
    _notify(signals.payment_intent_succeeded, payment_intent)


def _handle_payment_intent_failed(payment_intent: Dict[str, Any]) -> None:
    last_error = payment_intent.get("last_payment_error") or {}
    logger.warning(
        "payment_intent.payment_failed pi=%s reason=%s",
        payment_intent.get("id"),
        last_error.get("message"),
    )
    _notify(signals.payment_intent_failed, payment_intent)


def _notify(signal, payment_intent: Dict[str, Any]) -> None:
    # Receivers must never break webhook delivery, Stripe would retry it.
    for receiver, response in signal.send_robust(
        sender=StripeGateway, payment_intent=payment_intent
    ):
        if isinstance(response, Exception):
            logger.error(
                "Webhook receiver %s failed: %s",
                getattr(receiver, "__name__", receiver),
                response,
                exc_info=response,
            )


def get_payment_gateway() -> StripeGateway:
    """
    Build the gateway configured in settings.

    Raises:
        GatewayConfigurationError: STRIPE_SECRET_KEY is empty
    """
    return StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        api_version=settings.STRIPE_API_VERSION,
        return_url=f"{settings.FRONTEND_URL}/donation/complete",
    )
