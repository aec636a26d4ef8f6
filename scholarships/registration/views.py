"""
Registration Payment Views

Endpoints:

1. RegistrationPaymentView
   - URL: /api/registration-payment/process
   - Method: POST
   - Auth: None
   - Purpose: charge the registration fee and activate the student account.
     Accepts an `Idempotency-Key` header (or `idempotencyKey` in the body).

2. TaxReceiptDetailView
   - URL: /api/registration-payment/tax-receipt/<receiptNumber>
   - Method: GET
   - Auth: None

3. TaxReceiptListView
   - URL: /api/registration-payment/tax-receipts
   - Method: GET
   - Auth: Bearer token; receipts issued to the caller's email

4. RegistrationHealthView
   - URL: /api/registration-payment/health
   - Method: GET

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
import traceback

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.stripe_integration.gateway import get_payment_gateway

from ..exceptions import ScholarshipError
from ..receipts.models import TaxReceipt
from ..receipts.serializers import TaxReceiptListSerializer, TaxReceiptSerializer
from .services import RegistrationPaymentService

logger = logging.getLogger(__name__)


def unexpected_error_response(exc: Exception, error: str = "Payment processing failed") -> Response:
    payload = {
        "success": False,
        "error": error,
        "message": str(exc),
        "code": getattr(exc, "code", None) or "PAYMENT_ERROR",
    }
    if settings.DEBUG:
        payload["details"] = {
            "name": exc.__class__.__name__,
            "stack": traceback.format_exc(),
        }
    return Response(payload, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class RegistrationPaymentView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "registration_payment"

    def post(self, request):
        service = RegistrationPaymentService(gateway_provider=get_payment_gateway)
        try:
            result = service.process(
                request.data,
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except ScholarshipError:
            raise
        except Exception as exc:
            logger.exception("Registration payment error")
            return unexpected_error_response(exc)
        return Response(result, status=status.HTTP_200_OK)


class TaxReceiptDetailView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, receipt_number):
        receipt = TaxReceipt.objects.filter(receipt_number=receipt_number).first()
        if receipt is None:
            return Response(
                {"success": False, "error": "Tax receipt not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response({"success": True, "taxReceipt": TaxReceiptSerializer(receipt).data})


class TaxReceiptListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        email = request.auth.get("email") if request.auth is not None else None
        email = email or request.user.email
        receipts = (
            TaxReceipt.objects.filter(donor_email__iexact=email)
            .select_related("registration_fee", "donation")
            .order_by("-receipt_date")
        )
        return Response(
            {
                "success": True,
                "taxReceipts": TaxReceiptListSerializer(receipts, many=True).data,
            }
        )


class RegistrationHealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response(
            {
                "service": "registration-payment",
                "status": "OK",
                "timestamp": timezone.now().isoformat(),
                "endpoints": [
                    "POST /api/registration-payment/process",
                    "GET /api/registration-payment/tax-receipt/:receiptNumber",
                    "GET /api/registration-payment/tax-receipts",
                    "GET /api/registration-payment/health",
                ],
                "features": [
                    "Stripe payment processing",
                    "Test card simulation",
                    "Idempotent retries",
                    "Tax receipt generation",
                    "Email notifications with retry",
                    "Automatic student account activation",
                ],
            }
        )
