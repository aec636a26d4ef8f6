"""
Stripe Integration Views (core.stripe_integration)
==================================================

REST endpoints that belong to the payment provider itself rather than to a
product domain.

Endpoints
---------

1. GetStripeConfigView
   - URL: /api/payments/stripe/config/
   - Method: GET
   - Auth: None
   - Purpose:
       Returns the correct publishable key so the frontend can
       initialize Stripe.js safely.

2. StripeWebhookView
   - URL: /api/payments/stripe/webhook/ (also /api/donations/stripe/webhook)
   - Method: POST
   - Auth: None (verified by the Stripe-Signature header)
   - Purpose:
       Verifies the delivery with the endpoint secret and dispatches
       payment_intent.succeeded / payment_intent.payment_failed.

Security
--------
- Card data is handled exclusively by Stripe; backend only stores metadata.
- Webhook payloads are only trusted after signature verification.

Author: GradVillage Development Team
Date: 2025-08-21
"""

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import GatewayConfigurationError, WebhookVerificationError
from .gateway import get_payment_gateway

logger = logging.getLogger(__name__)


class GetStripeConfigView(APIView):
    """
    endpoint so the frontend can initialize Stripe.js
    """

    permission_classes = [AllowAny]

    def get(self, request):
        publishable_key = (
            settings.STRIPE_LIVE_PUBLISHABLE_KEY
            if settings.STRIPE_LIVE_MODE
            else settings.STRIPE_TEST_PUBLISHABLE_KEY
        )
        return Response(
            {
                "publishableKey": publishable_key,
                "currency": settings.DEFAULT_CURRENCY,
                "liveMode": settings.STRIPE_LIVE_MODE,
            },
            status=200,
        )


class StripeWebhookView(APIView):
    """
    Receives Stripe webhook deliveries. The raw body is required for the
    signature check, so no parser output is used here.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        signature = request.META.get("HTTP_STRIPE_SIGNATURE")
        try:
            gateway = get_payment_gateway()
            result = gateway.handle_webhook(request.body, signature)
        except WebhookVerificationError as exc:
            logger.warning("Rejected Stripe webhook: %s", exc.message)
            return Response(
                {"success": False, "error": exc.message},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except GatewayConfigurationError as exc:
            logger.error("Stripe webhook received but gateway is not configured: %s", exc.message)
            return Response(
                {"success": False, "error": exc.message},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(result, status=status.HTTP_200_OK)
