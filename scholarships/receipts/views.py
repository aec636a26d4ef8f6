"""
Receipt download.

GET /api/receipt/<receiptNumber> streams the receipt PDF, rendered from the
stored TaxReceipt so the download works even before the copy in storage
has been written.
"""

import logging

from django.http import HttpResponse
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView

from ..exceptions import NotFound
from .models import TaxReceipt
from .services import TaxReceiptService

logger = logging.getLogger(__name__)


class ReceiptDownloadView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, receipt_number):
        receipt = TaxReceipt.objects.filter(receipt_number=receipt_number).first()
        if receipt is None:
            raise NotFound("Receipt not found")

        pdf = TaxReceiptService().render_pdf(receipt)
        logger.debug("Serving receipt %s (%s bytes)", receipt_number, len(pdf))
        response = HttpResponse(pdf, content_type="application/pdf")
        response["Content-Disposition"] = (
            f'attachment; filename="GradVillage_Receipt_{receipt.receipt_number}.pdf"'
        )
        response["Content-Length"] = str(len(pdf))
        return response
