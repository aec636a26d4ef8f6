"""
Student Models

This module defines the student side of the GradVillage platform: the schools
students attend, the student accounts themselves, the one-per-student school
verification and the welcome box shipped after the registration fee is paid.

Models:
- School: Institution with its supported verification methods
- Student: Student account, lifecycle flags and public donation profile
- SchoolVerification: Proof of enrolment reviewed by an admin
- WelcomeBox: Shipping request, gated on the paid registration fee

Funding:
    `amount_raised` is never stored. It is derived from the student's
    completed donations (registration fees excluded) every time it is read,
    either per row (`Student.amount_raised`) or for a whole queryset
    (`Student.objects.with_amount_raised()`).

Author: GradVillage Development Team
Version: 1.0.0
"""

import uuid
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import models
from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _


def default_verification_methods() -> list:
    return ["email", "document"]


class School(models.Model):
    """
    An institution students can be verified against.

    Attributes:
        name: Official school name
        domain: Email domain used by the school (e.g. "stanford.edu")
        verification_methods: Methods the school accepts ("email", "document")
        is_active: Inactive schools are hidden from the signup flow
    """

    name = models.CharField(max_length=200, unique=True, verbose_name=_("Name"))
    domain = models.CharField(max_length=255, blank=True, verbose_name=_("Email Domain"))
    verification_methods = models.JSONField(
        default=default_verification_methods,
        verbose_name=_("Verification Methods"),
    )
    is_active = models.BooleanField(default=True, verbose_name=_("Active"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("School")
        verbose_name_plural = _("Schools")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def supports(self, method: str) -> bool:
        return method in (self.verification_methods or [])


# Donations that count towards a student's funding goal
FUNDING_DONATION_FILTER = Q(donations__status="completed") & ~Q(
    donations__donation_type="registration_fee"
)


class StudentQuerySet(models.QuerySet):
    def with_amount_raised(self) -> "StudentQuerySet":
        """
        Annotate each student with `raised_total`, the sum of net amounts of
        completed non-registration donations.
        """
        return self.annotate(
            raised_total=Coalesce(
                Sum("donations__net_amount", filter=FUNDING_DONATION_FILTER),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=12, decimal_places=2),
            )
        )

    def discoverable(self) -> "StudentQuerySet":
        """Students donors may browse: paid, active and public."""
        return self.filter(
            registration_status__in=[
                Student.RegistrationStatus.COMPLETE,
                Student.RegistrationStatus.VERIFIED,
            ],
            status=Student.AccountStatus.ACTIVE,
            is_public=True,
        )


class Student(models.Model):
    """
    A student account on the platform.

    The row is created by the registration payment workflow once the fee has
    been charged and is linked to a Django user (username = email) that
    carries the password. Students are never hard-deleted.
    """

    class RegistrationStatus(models.TextChoices):
        PENDING_PAYMENT = "pending_payment", _("Pending Payment")
        COMPLETE = "complete", _("Complete")
        VERIFIED = "verified", _("Verified")

    class AccountStatus(models.TextChoices):
        ACTIVE = "active", _("Active")
        SUSPENDED = "suspended", _("Suspended")
        INACTIVE = "inactive", _("Inactive")

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="student_profile",
        null=True,
        blank=True,
        verbose_name=_("User"),
    )
    user_uid = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        editable=False,
        verbose_name=_("Public User ID"),
    )

    email = models.EmailField(unique=True, verbose_name=_("Email"))
    first_name = models.CharField(max_length=100, verbose_name=_("First Name"))
    last_name = models.CharField(max_length=100, verbose_name=_("Last Name"))
    school_name = models.CharField(max_length=200, blank=True, verbose_name=_("School"))
    major = models.CharField(max_length=200, blank=True, verbose_name=_("Major"))
    graduation_year = models.CharField(max_length=4, blank=True, verbose_name=_("Graduation Year"))

    registration_status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        default=RegistrationStatus.PENDING_PAYMENT,
        db_index=True,
    )
    payment_complete = models.BooleanField(default=False)
    payment_status = models.CharField(max_length=20, default="pending")
    payment_intent_id = models.CharField(max_length=255, blank=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    registration_fee = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    registration_paid = models.BooleanField(default=False)
    verified = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20,
        choices=AccountStatus.choices,
        default=AccountStatus.ACTIVE,
        db_index=True,
    )

    funding_goal = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    bio = models.TextField(blank=True)
    profile_photo = models.CharField(max_length=500, blank=True)
    profile_url = models.CharField(max_length=255, unique=True)
    is_public = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StudentQuerySet.as_manager()

    class Meta:
        verbose_name = _("Student")
        verbose_name_plural = _("Students")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"

    def __repr__(self) -> str:
        return f"<Student(id={self.pk}, email={self.email}, status={self.registration_status})>"

    @staticmethod
    def build_profile_url(first_name: str, last_name: str, now: Optional[timezone.datetime] = None) -> str:
        """
        Public profile slug: `<first>-<last>-<epoch milliseconds>`.
        """
        now = now or timezone.now()
        return f"{slugify(first_name)}-{slugify(last_name)}-{int(now.timestamp() * 1000)}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def registration_complete(self) -> bool:
        return (
            self.registration_status != self.RegistrationStatus.PENDING_PAYMENT
            and self.payment_complete
        )

    @property
    def amount_raised(self) -> Decimal:
        """
        Sum of net amounts of completed donations, registration fees excluded.
        Uses the queryset annotation when present.
        """
        annotated = getattr(self, "raised_total", None)
        if annotated is not None:
            return annotated
        if self.pk is None:
            return Decimal("0.00")
        total = self.donations.filter(status="completed").exclude(
            donation_type="registration_fee"
        ).aggregate(total=Sum("net_amount"))["total"]
        return total or Decimal("0.00")

    @property
    def funding_progress(self) -> float:
        if not self.funding_goal:
            return 0.0
        return round(float(self.amount_raised / self.funding_goal * 100), 2)


class SchoolVerification(models.Model):
    """
    Proof that a student is enrolled at a school.

    One verification per student; reviewers move it from `pending` to the
    terminal states `verified` or `rejected`.
    """

    class Method(models.TextChoices):
        EMAIL = "email", _("Email")
        DOCUMENT = "document", _("Document")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        VERIFIED = "verified", _("Verified")
        REJECTED = "rejected", _("Rejected")

    student = models.OneToOneField(
        Student, on_delete=models.CASCADE, related_name="school_verification"
    )
    school = models.ForeignKey(
        School, on_delete=models.PROTECT, related_name="verifications"
    )
    verification_method = models.CharField(max_length=20, choices=Method.choices)
    verification_email = models.EmailField(blank=True)
    verification_document = models.CharField(max_length=500, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    rejection_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_verifications",
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("School Verification")
        verbose_name_plural = _("School Verifications")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.student.email} @ {self.school.name} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING


class WelcomeBox(models.Model):
    """Welcome box shipping request, one per student."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSING = "processing", _("Processing")
        SHIPPED = "shipped", _("Shipped")
        DELIVERED = "delivered", _("Delivered")

    student = models.OneToOneField(
        Student, on_delete=models.CASCADE, related_name="welcome_box"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    shipping_address = models.JSONField(default=dict)
    tracking_number = models.CharField(max_length=100, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Welcome Box")
        verbose_name_plural = _("Welcome Boxes")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Welcome box for {self.student.email} ({self.status})"
