"""
Tax Receipt Service

Creates TaxReceipt rows for completed registration fees and donations,
renders the receipt PDF with reportlab and stores it.

Flow:
1. `create_registration_receipt` / `create_donation_receipt` run inside the
   payment transaction and write an unissued TaxReceipt row.
2. `generate_and_upload_receipt` runs later (outbox handler): render, store,
   set `receipt_pdf_url` and `issued`.

Receipt numbers look like `GV2025-123456-4F9Z`: year, last six digits of the
epoch milliseconds and four random base36 characters.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
import secrets
import string
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Optional
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models import TaxReceipt
from .receipt_storage import ReceiptStorage

logger = logging.getLogger(__name__)

NOT_PROVIDED = "Not provided"
BASE36_UPPER = string.digits + string.ascii_uppercase

REGISTRATION_RECEIPT_TITLE = "STUDENT REGISTRATION FEE RECEIPT"
DONATION_RECEIPT_TITLE = "TAX-DEDUCTIBLE DONATION RECEIPT"


def generate_receipt_number(now=None) -> str:
    now = now or timezone.now()
    millis = str(int(now.timestamp() * 1000))[-6:]
    suffix = "".join(secrets.choice(BASE36_UPPER) for _ in range(4))
    return f"GV{now.year}-{millis}-{suffix}"


def default_donor_address() -> Dict[str, str]:
    return {
        "street": NOT_PROVIDED,
        "city": NOT_PROVIDED,
        "state": NOT_PROVIDED,
        "zipCode": NOT_PROVIDED,
    }


def format_money(amount: Decimal) -> str:
    return f"${Decimal(amount):,.2f}"


class TaxReceiptService:
    """
    Receipt generator.

    Args:
        storage: Where PDFs are written; defaults to `ReceiptStorage()`
    """

    def __init__(self, storage: Optional[ReceiptStorage] = None) -> None:
        self.storage = storage or ReceiptStorage()

    generate_receipt_number = staticmethod(generate_receipt_number)

    @staticmethod
    def nonprofit_info() -> Dict[str, Any]:
        address = dict(settings.NONPROFIT_ADDRESS)
        address.setdefault("country", "US")
        return {
            "nonprofit_name": settings.NONPROFIT_NAME,
            "nonprofit_ein": settings.NONPROFIT_EIN,
            "nonprofit_address": address,
        }

    def build_receipt_data(
        self,
        *,
        receipt_number: str,
        donor_name: str,
        donor_email: str,
        amount: Decimal,
        donation_date,
        description: str,
        donor_address: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Field values for a new TaxReceipt row."""
        address = default_donor_address()
        address.update({key: value for key, value in (donor_address or {}).items() if value})
        now = timezone.now()
        data = {
            "receipt_number": receipt_number,
            "receipt_date": now,
            "tax_year": donation_date.year,
            "donor_name": donor_name,
            "donor_email": donor_email or "",
            "donor_address": address,
            "donation_amount": amount,
            "donation_date": donation_date,
            "donation_description": description,
            "issued": False,
        }
        data.update(self.nonprofit_info())
        return data

    def create_registration_receipt(self, fee) -> TaxReceipt:
        """Unissued receipt for a completed RegistrationFee; the student is the payer."""
        data = self.build_receipt_data(
            receipt_number=fee.receipt_number,
            donor_name=fee.student_name,
            donor_email=fee.student_email,
            amount=fee.amount,
            donation_date=fee.processed_at or timezone.now(),
            description=(
                "Registration fee payment for student account setup - "
                f"{fee.student_name}"
            ),
        )
        return TaxReceipt.objects.create(registration_fee=fee, **data)

    def create_donation_receipt(self, donation) -> TaxReceipt:
        student = donation.student
        data = self.build_receipt_data(
            receipt_number=donation.tax_receipt_number,
            donor_name=donation.donor_legal_name or "Anonymous Donor",
            donor_email=donation.donor_email,
            amount=donation.amount,
            donation_date=donation.processed_at or timezone.now(),
            description=(
                f"Donation to support {student.full_name} at "
                f"{student.school_name or 'their school'}"
            ),
            donor_address=donation.donor_address,
        )
        return TaxReceipt.objects.create(donation=donation, **data)

    def render_pdf(self, receipt: TaxReceipt) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"GradVillage Receipt {receipt.receipt_number}",
        )
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ReceiptTitle",
            parent=styles["Heading1"],
            fontSize=18,
            textColor=colors.HexColor("#1a1a1a"),
            spaceAfter=12,
            alignment=TA_CENTER,
        )
        centered = ParagraphStyle("Centered", parent=styles["Normal"], alignment=TA_CENTER)
        small = ParagraphStyle("Small", parent=styles["Normal"], fontSize=9, leading=12)

        title = (
            REGISTRATION_RECEIPT_TITLE
            if receipt.is_registration_fee
            else DONATION_RECEIPT_TITLE
        )
        address = receipt.nonprofit_address or {}
        elements = [
            Paragraph(title, title_style),
            Paragraph(f"<b>{escape(receipt.nonprofit_name)}</b>", centered),
            Paragraph("501(c)(3) Tax-Exempt Organization", centered),
            Paragraph(f"EIN: {escape(receipt.nonprofit_ein)}", centered),
            Paragraph(
                escape(
                    ", ".join(
                        str(address[part])
                        for part in ("street", "city", "state", "zipCode")
                        if address.get(part)
                    )
                ),
                centered,
            ),
            Spacer(1, 20),
        ]

        donor_address = receipt.donor_address or default_donor_address()
        data = [
            ["Receipt Number", receipt.receipt_number],
            ["Receipt Date", receipt.receipt_date.strftime("%B %d, %Y")],
            ["Tax Year", str(receipt.tax_year)],
            ["Name", receipt.donor_name],
            ["Email", receipt.donor_email or NOT_PROVIDED],
            [
                "Address",
                ", ".join(
                    str(donor_address.get(part, NOT_PROVIDED))
                    for part in ("street", "city", "state", "zipCode")
                ),
            ],
            ["Date", receipt.donation_date.strftime("%B %d, %Y")],
            ["Description", Paragraph(escape(receipt.donation_description), styles["Normal"])],
            ["Amount", format_money(receipt.donation_amount)],
        ]
        table = Table(data, colWidths=[1.8 * inch, 4.7 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#4472C4")),
                    ("TEXTCOLOR", (0, 0), (0, -1), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("FONTNAME", (1, -1), (1, -1), "Helvetica-Bold"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ]
            )
        )
        elements.extend([table, Spacer(1, 20)])

        if receipt.is_registration_fee:
            elements.append(
                Paragraph(
                    "This receipt confirms payment of the GradVillage student "
                    "registration fee.",
                    small,
                )
            )
        else:
            elements.append(
                Paragraph(
                    "No goods or services were provided in exchange for this "
                    "contribution. Please retain this receipt for your tax records.",
                    small,
                )
            )
        elements.append(Spacer(1, 8))
        elements.append(
            Paragraph(f"Thank you for supporting {escape(receipt.nonprofit_name)}.", small)
        )

        doc.build(elements)
        return buffer.getvalue()

    def generate_and_upload_receipt(self, receipt: TaxReceipt) -> str:
        """
        Render and store the PDF, then mark the receipt issued.

        Already issued receipts are never regenerated.

        Raises:
            ReceiptStorageError: the PDF could not be stored
        """
        if receipt.issued and receipt.receipt_pdf_url:
            return receipt.receipt_pdf_url

        content = self.render_pdf(receipt)
        url = self.storage.save(receipt.receipt_number, content)

        receipt.receipt_pdf_url = url
        receipt.issued = True
        receipt.issued_at = timezone.now()
        receipt.save(update_fields=["receipt_pdf_url", "issued", "issued_at"])
        logger.info("Tax receipt %s issued at %s", receipt.receipt_number, url)
        return url
