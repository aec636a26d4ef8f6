"""
Donation Models

Money flowing into the platform: donor accounts, donations to students,
registration fees paid by students and the provider-level transaction that
backs each successful charge.

Models:
- Donor: Donor account linked to a Django user
- Donation: A donation to one student (general, registry item, emergency)
- RegistrationFee: The one-off fee a student pays to activate the account
- PaymentTransaction: Provider record (Stripe) for a fee or a donation
- DonorBookmark: Students a donor saved for later

Amounts are stored in dollars as `Decimal(10, 2)`. Conversion to cents only
happens at the gateway boundary.

Author: GradVillage Development Team
Version: 1.0.0
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Count, Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


def default_donor_preferences() -> dict:
    return {
        "emailNotifications": True,
        "anonymousByDefault": False,
        "monthlyReport": True,
    }


class Donor(models.Model):
    """
    A donor account.

    Aggregates (`total_donated`, `students_supported`) are derived from the
    donor's completed donations on read.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="donor_profile",
        null=True,
        blank=True,
    )
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    phone = models.CharField(max_length=30, blank=True)
    address = models.JSONField(default=dict, blank=True)
    preferences = models.JSONField(default=default_donor_preferences)
    verified = models.BooleanField(default=False)
    member_since = models.DateTimeField(default=timezone.now)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Donor")
        verbose_name_plural = _("Donors")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def completed_donations(self):
        """Completed donations to students, registration fees excluded."""
        return self.donations.filter(status=Donation.Status.COMPLETED).exclude(
            donation_type=Donation.DonationType.REGISTRATION_FEE
        )

    @property
    def total_donated(self) -> Decimal:
        total = self.completed_donations().aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0.00")

    @property
    def students_supported(self) -> int:
        return self.completed_donations().aggregate(
            count=Count("student", distinct=True)
        )["count"]


class Donation(models.Model):
    """
    A donation from a donor (or an anonymous payer) to a student.

    Status moves from `pending` to `completed` or `failed` exactly once;
    `refunded` is only reachable from `completed`.
    """

    class DonationType(models.TextChoices):
        GENERAL = "general", _("General")
        REGISTRY_ITEM = "registry_item", _("Registry Item")
        EMERGENCY = "emergency", _("Emergency")
        REGISTRATION_FEE = "registration_fee", _("Registration Fee")

    class PaymentMethod(models.TextChoices):
        STRIPE = "stripe", _("Stripe")
        PAYPAL = "paypal", _("PayPal")
        ZELLE = "zelle", _("Zelle")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSING = "processing", _("Processing")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")

    student = models.ForeignKey(
        "scholarships.Student", on_delete=models.PROTECT, related_name="donations"
    )
    donor = models.ForeignKey(
        Donor,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="donations",
    )
    donor_email = models.EmailField(blank=True)
    donor_first_name = models.CharField(max_length=100, blank=True)
    donor_last_name = models.CharField(max_length=100, blank=True)
    donor_phone = models.CharField(max_length=30, blank=True)
    donor_address = models.JSONField(null=True, blank=True)

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    donation_type = models.CharField(
        max_length=20, choices=DonationType.choices, default=DonationType.GENERAL
    )
    payment_method = models.CharField(
        max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.STRIPE
    )
    payment_intent_id = models.CharField(max_length=255, blank=True, db_index=True)
    transaction_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    net_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    is_anonymous = models.BooleanField(default=False)
    donor_message = models.TextField(blank=True)
    tax_receipt_number = models.CharField(
        max_length=40, unique=True, null=True, blank=True
    )
    failure_reason = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Donation")
        verbose_name_plural = _("Donations")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Donation {self.pk}: ${self.amount} to {self.student_id} ({self.status})"

    @property
    def donor_legal_name(self) -> str:
        """Name for receipts, shown even on anonymous donations."""
        name = f"{self.donor_first_name} {self.donor_last_name}".strip()
        if not name and self.donor_id:
            name = self.donor.full_name
        return name

    @property
    def donor_name(self) -> str:
        if self.is_anonymous:
            return "Anonymous Donor"
        return self.donor_legal_name or "Anonymous Donor"


class RegistrationFee(models.Model):
    """
    The registration fee paid by a student.

    `idempotency_key` is unique: a retried request with the same key replays
    the stored outcome instead of charging again.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")

    student = models.ForeignKey(
        "scholarships.Student",
        on_delete=models.PROTECT,
        related_name="registration_fees",
    )
    receipt_number = models.CharField(max_length=40, unique=True)
    student_first_name = models.CharField(max_length=100)
    student_last_name = models.CharField(max_length=100)
    student_email = models.EmailField()
    student_school = models.CharField(max_length=200, blank=True)
    student_major = models.CharField(max_length=200, blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    payment_method = models.CharField(max_length=20, default="stripe")
    payment_intent_id = models.CharField(max_length=255, db_index=True)
    transaction_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    net_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.COMPLETED
    )
    idempotency_key = models.CharField(
        max_length=255, unique=True, null=True, blank=True
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Registration Fee")
        verbose_name_plural = _("Registration Fees")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Registration fee {self.receipt_number} ({self.student_email})"

    @property
    def student_name(self) -> str:
        return f"{self.student_first_name} {self.student_last_name}".strip()


class PaymentTransaction(models.Model):
    """
    Provider-level record of a successful charge. Exactly one of
    `registration_fee` / `donation` is set.
    """

    registration_fee = models.ForeignKey(
        RegistrationFee,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="transactions",
    )
    donation = models.ForeignKey(
        Donation,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="transactions",
    )
    provider = models.CharField(max_length=20, default="stripe")
    provider_transaction_id = models.CharField(max_length=255, db_index=True)
    provider_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    gross_amount = models.DecimalField(max_digits=10, decimal_places=2)
    net_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    merchant_account_id = models.CharField(max_length=100, default="gradvillage_main")
    risk_score = models.FloatField(default=0.1)
    fraud_status = models.CharField(max_length=20, default="clean")
    compliance_checked = models.BooleanField(default=True)
    gateway_response = models.JSONField(default=dict, blank=True)
    settled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment Transaction")
        verbose_name_plural = _("Payment Transactions")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.provider}:{self.provider_transaction_id} ${self.gross_amount}"


class DonorBookmark(models.Model):
    donor = models.ForeignKey(Donor, on_delete=models.CASCADE, related_name="bookmarks")
    student = models.ForeignKey(
        "scholarships.Student", on_delete=models.CASCADE, related_name="bookmarked_by"
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Donor Bookmark")
        verbose_name_plural = _("Donor Bookmarks")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["donor", "student"], name="unique_donor_bookmark"
            )
        ]

    def __str__(self) -> str:
        return f"{self.donor.email} → {self.student.email}"
