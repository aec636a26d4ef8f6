"""
GradVillage Django Admin Configuration

Admin interface for the scholarship models, organized into sections:
- Students: schools, students, verifications, welcome boxes
- Donations: donors, donations, registration fees, payment transactions
- Receipts and notifications: tax receipts, outbox messages

Payment records are read-only here; they are written by the payment
workflows only.

Author: GradVillage Development Team
Version: 1.0.0
"""

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _

from .models import (
    Donation,
    Donor,
    DonorBookmark,
    OutboxMessage,
    PaymentTransaction,
    RegistrationFee,
    School,
    SchoolVerification,
    Student,
    TaxReceipt,
    WelcomeBox,
)
from .notifications.outbox import dispatch_message

# --- Students ---


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ("name", "domain", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "domain")


class SchoolVerificationInline(admin.StackedInline):
    model = SchoolVerification
    fk_name = "student"
    extra = 0
    fields = ("school", "verification_method", "verification_email", "status", "rejection_reason")
    readonly_fields = ("school", "verification_method", "verification_email")


class WelcomeBoxInline(admin.StackedInline):
    model = WelcomeBox
    extra = 0
    fields = ("status", "tracking_number", "shipped_at")


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    """
    Student administration. The funding total is computed from completed
    donations, so it is shown read-only.
    """

    list_display = (
        "email",
        "first_name",
        "last_name",
        "school_name",
        "registration_status",
        "status",
        "verified",
        "amount_raised",
    )
    list_filter = ("registration_status", "status", "verified", "is_public")
    search_fields = ("email", "first_name", "last_name", "school_name")
    readonly_fields = ("user_uid", "payment_intent_id", "payment_completed_at", "amount_raised")
    inlines = [SchoolVerificationInline, WelcomeBoxInline]

    def get_queryset(self, request: HttpRequest) -> QuerySet:
        return super().get_queryset(request).with_amount_raised()

    @admin.display(description=_("Amount raised"))
    def amount_raised(self, instance: Student):
        return instance.amount_raised


@admin.register(SchoolVerification)
class SchoolVerificationAdmin(admin.ModelAdmin):
    list_display = ("student", "school", "verification_method", "status", "created_at")
    list_filter = ("status", "verification_method")
    search_fields = ("student__email", "school__name", "verification_email")
    list_select_related = ("student", "school")


@admin.register(WelcomeBox)
class WelcomeBoxAdmin(admin.ModelAdmin):
    list_display = ("student", "status", "tracking_number", "shipped_at")
    list_filter = ("status",)


# --- Donations ---


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_change_permission(self, request: HttpRequest, obj=None) -> bool:
        return False


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "verified", "member_since")
    list_filter = ("verified",)
    search_fields = ("email", "first_name", "last_name")


@admin.register(Donation)
class DonationAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "student",
        "donor_email",
        "amount",
        "donation_type",
        "payment_method",
        "status",
        "created_at",
    )
    list_filter = ("status", "donation_type", "payment_method")
    search_fields = ("donor_email", "student__email", "payment_intent_id", "tax_receipt_number")
    list_select_related = ("student",)


@admin.register(RegistrationFee)
class RegistrationFeeAdmin(ReadOnlyAdmin):
    list_display = ("receipt_number", "student_email", "amount", "status", "processed_at")
    list_filter = ("status",)
    search_fields = ("receipt_number", "student_email", "payment_intent_id", "idempotency_key")


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(ReadOnlyAdmin):
    list_display = ("provider_transaction_id", "provider", "gross_amount", "net_amount", "created_at")
    list_filter = ("provider",)
    search_fields = ("provider_transaction_id",)


@admin.register(DonorBookmark)
class DonorBookmarkAdmin(admin.ModelAdmin):
    list_display = ("donor", "student", "created_at")


# --- Receipts and notifications ---


@admin.register(TaxReceipt)
class TaxReceiptAdmin(ReadOnlyAdmin):
    list_display = ("receipt_number", "donor_name", "donation_amount", "tax_year", "issued")
    list_filter = ("issued", "tax_year")
    search_fields = ("receipt_number", "donor_email", "donor_name")


@admin.register(OutboxMessage)
class OutboxMessageAdmin(ReadOnlyAdmin):
    list_display = ("id", "topic", "status", "attempts", "next_attempt_at", "sent_at")
    list_filter = ("status", "topic")
    search_fields = ("topic", "last_error")
    actions = ["retry_now"]

    @admin.action(description=_("Retry selected messages now"))
    def retry_now(self, request: HttpRequest, queryset: QuerySet) -> None:
        pending = list(queryset.filter(status=OutboxMessage.Status.PENDING))
        sent = sum(1 for message in pending if dispatch_message(message))
        self.message_user(request, f"{sent}/{len(pending)} messages sent", messages.INFO)
