"""
Tax Receipt Models

A TaxReceipt is issued for every completed registration fee and every
completed donation. Its number is shared with the originating record
(`RegistrationFee.receipt_number` / `Donation.tax_receipt_number`), which is
how the public lookup endpoints find it.

Author: GradVillage Development Team
Version: 1.0.0
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class TaxReceipt(models.Model):
    """
    Receipt document metadata. The PDF itself lives in receipt storage,
    `receipt_pdf_url` points at it once generated.

    `issued` flips to True only after the PDF has been rendered and stored.
    """

    receipt_number = models.CharField(max_length=40, unique=True)
    registration_fee = models.OneToOneField(
        "scholarships.RegistrationFee",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tax_receipt",
    )
    donation = models.OneToOneField(
        "scholarships.Donation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tax_receipt",
    )
    receipt_date = models.DateTimeField(default=timezone.now)
    tax_year = models.PositiveIntegerField()

    nonprofit_name = models.CharField(max_length=200)
    nonprofit_ein = models.CharField(max_length=20)
    nonprofit_address = models.JSONField(default=dict)

    donor_name = models.CharField(max_length=255)
    donor_email = models.EmailField(blank=True)
    donor_address = models.JSONField(default=dict, blank=True)

    donation_amount = models.DecimalField(max_digits=10, decimal_places=2)
    donation_date = models.DateTimeField()
    donation_description = models.TextField()

    receipt_pdf_url = models.CharField(max_length=500, blank=True)
    issued = models.BooleanField(default=False)
    issued_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Tax Receipt")
        verbose_name_plural = _("Tax Receipts")
        ordering = ["-receipt_date"]

    def __str__(self) -> str:
        return f"Tax receipt {self.receipt_number} ({self.donor_name})"

    @property
    def is_registration_fee(self) -> bool:
        return self.registration_fee_id is not None

    @property
    def donation_type(self) -> str:
        if self.is_registration_fee:
            return "registration_fee"
        if self.donation_id:
            return self.donation.donation_type
        return "general"
