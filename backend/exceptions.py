"""
API exception handler.

Turns domain and gateway exceptions raised by views into the
`{"success": false, ...}` envelope used by every GradVillage endpoint.
Everything else falls through to DRF's default handler.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import (
    AuthenticationFailed,
    NotAuthenticated,
    PermissionDenied,
    Throttled,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.stripe_integration.exceptions import GatewayConfigurationError, PaymentGatewayError
from scholarships.exceptions import ScholarshipError

logger = logging.getLogger(__name__)

THROTTLE_MESSAGES = {
    "auth": "Too many authentication attempts, please try again later.",
}
DEFAULT_THROTTLE_MESSAGE = "Too many requests from this IP, please try again later."


def api_exception_handler(exc, context):
    if isinstance(exc, ScholarshipError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.__class__.__name__, exc.message)
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, GatewayConfigurationError):
        logger.error("Payment gateway is not configured: %s", exc.message)
        return Response(
            {
                "success": False,
                "error": "Payment processing failed",
                "message": exc.message,
                "code": exc.code,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, PaymentGatewayError):
        logger.warning("Unhandled payment gateway error: %s", exc.message)
        payload = {
            "success": False,
            "error": "Payment processing failed",
            "message": exc.user_message or exc.message,
        }
        if exc.code:
            payload["code"] = exc.code
        return Response(payload, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        message = "Authentication required" if isinstance(exc, NotAuthenticated) else str(exc.detail)
        response.data = {"success": False, "error": message, "message": message}
    elif isinstance(exc, PermissionDenied):
        message = str(exc.detail)
        response.data = {"success": False, "error": message, "message": message}
    elif isinstance(exc, Throttled):
        scope = getattr(context.get("view"), "throttle_scope", None)
        message = THROTTLE_MESSAGES.get(scope, DEFAULT_THROTTLE_MESSAGE)
        request = context.get("request")
        logger.warning(
            "Rate limit exceeded: scope=%s path=%s",
            scope,
            request.path if request is not None else None,
        )
        response.data = {
            "success": False,
            "error": message,
            "message": message,
            "retryAfter": exc.wait,
        }
    return response
