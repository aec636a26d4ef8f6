"""
Donation Views

Endpoints:

1. DonationCreateView
   - URL: /api/donations/create
   - Method: POST
   - Auth: Donor
   - Purpose: store a pending donation with its fee and receipt number

2. DonationProcessPaymentView
   - URL: /api/donations/process-payment
   - Method: POST
   - Auth: Donor
   - Purpose: charge a pending donation and issue its tax receipt

3. DonationHistoryView
   - URL: /api/donations/history (also /api/donors/donations)
   - Method: GET
   - Auth: Donor

4. DonationDetailView
   - URL: /api/donations/<id>
   - Method: GET
   - Auth: Donor (own donations only)

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.stripe_integration.gateway import get_payment_gateway

from ...exceptions import NotFound, ScholarshipError, ValidationFailed
from ...pagination import get_page_params, paginate
from ...permissions import IsDonor
from ...registration.views import unexpected_error_response
from ..models import Donation, Donor
from ..serializers import DonationCreateSerializer, DonationSerializer
from ..services import DonationService

logger = logging.getLogger(__name__)


def get_request_donor(request) -> Donor:
    donor = Donor.objects.filter(user_id=request.user.pk).first()
    if donor is None:
        raise NotFound("Donor not found")
    return donor


class DonationCreateView(APIView):
    permission_classes = [IsDonor]

    def post(self, request):
        donor = get_request_donor(request)
        serializer = DonationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "success": False,
                    "message": "Validation failed",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        donation = DonationService().create_donation(donor, serializer.validated_data)
        return Response(
            {
                "success": True,
                "message": "Donation created successfully",
                "donation": DonationSerializer(donation).data,
                "clientSecret": None,
            },
            status=status.HTTP_201_CREATED,
        )


class DonationProcessPaymentView(APIView):
    """
    Body: `{donationId, paymentMethodId?, testCardData?}`. Test cards are
    honoured outside production only.
    """

    permission_classes = [IsDonor]

    def post(self, request):
        donation_id = request.data.get("donationId")
        if not donation_id:
            raise ValidationFailed("Donation ID is required")

        donor = get_request_donor(request)
        service = DonationService(gateway_provider=get_payment_gateway)
        try:
            result = service.process_payment(
                donation_id,
                payment_method_id=request.data.get("paymentMethodId") or None,
                test_card_data=request.data.get("testCardData"),
                donor=donor,
            )
        except ScholarshipError:
            raise
        except Exception as exc:
            logger.exception("Donation payment error")
            return unexpected_error_response(exc)

        receipt = result.receipt
        issued = bool(receipt and receipt.issued)
        return Response(
            {
                "success": True,
                "message": "Payment processed successfully",
                "donation": DonationSerializer(result.donation).data,
                "taxReceipt": {
                    "receiptNumber": result.donation.tax_receipt_number,
                    "receiptUrl": receipt.receipt_pdf_url if issued else None,
                    "issued": issued,
                },
                "metadata": {
                    "testMode": result.test_mode,
                    "pendingSideEffects": result.pending,
                },
            }
        )


class DonationHistoryView(APIView):
    permission_classes = [IsDonor]

    def get(self, request):
        donor = get_request_donor(request)
        page, limit = get_page_params(request.query_params)
        donations = (
            Donation.objects.filter(donor=donor)
            .exclude(donation_type=Donation.DonationType.REGISTRATION_FEE)
            .select_related("student")
            .order_by("-created_at", "-id")
        )
        if request.query_params.get("status"):
            donations = donations.filter(status=request.query_params["status"])

        items, pagination = paginate(donations, page, limit)
        return Response(
            {
                "success": True,
                "data": {
                    "donations": DonationSerializer(items, many=True).data,
                    "pagination": pagination,
                },
            }
        )


class DonationDetailView(APIView):
    permission_classes = [IsDonor]

    def get(self, request, donation_id):
        donor = get_request_donor(request)
        donation = (
            Donation.objects.select_related("student")
            .filter(pk=donation_id, donor=donor)
            .first()
        )
        if donation is None:
            raise NotFound("Donation not found")
        return Response({"success": True, "data": DonationSerializer(donation).data})
