"""
Donation Service

Creates donations and takes their payment.

Workflow:
1. `create_donation`: validate the student, compute the processor fee and net
   amount, reserve a tax receipt number, store a pending donation.
2. `process_payment`: move the donation from `pending` to `processing` under
   a row lock (a second request gets "Donation already processed"), charge it,
   then record the outcome:
   - succeeded: completed donation, PaymentTransaction, TaxReceipt and the
     outbox messages (receipt PDF, donor receipt, student notice, admin alert
     for large donations) in one transaction
   - requires_action: stays `processing`; the webhook completes it
   - anything else: `failed` with the failure reason

`complete_donation` and `fail_donation` are shared with the Stripe webhook
receivers in `scholarships.signals`.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.stripe_integration.exceptions import (
    GatewayConfigurationError,
    PaymentGatewayError,
)

from ...exceptions import Conflict, NotFound, PaymentDeclined, RecordingFailed, ValidationFailed
from ...notifications.models import OutboxMessage
from ...notifications.outbox import dispatch, enqueue, pending_topics
from ...receipts.models import TaxReceipt
from ...receipts.services import TaxReceiptService
from ...registration.services.registration_payment_service import (
    TEST_CARD_DECLINES,
    clean_card_number,
    get_card_brand,
    simulated_payment_intent_id,
)
from ...students.models import Student
from ..models import Donation, Donor, PaymentTransaction

logger = logging.getLogger(__name__)

# Nonprofit processor rates; unknown methods pay the standard card rate
FEE_RATES = {
    Donation.PaymentMethod.STRIPE: Decimal("0.022"),
    Donation.PaymentMethod.PAYPAL: Decimal("0.022"),
    Donation.PaymentMethod.ZELLE: Decimal("0"),
}
STANDARD_FEE_RATE = Decimal("0.029")
FIXED_FEE = Decimal("0.30")
CENT = Decimal("0.01")


def calculate_transaction_fee(amount: Decimal, payment_method: str) -> Decimal:
    """
    round((amount * rate + 0.30) * 100) / 100; Zelle transfers are free.
    """
    if payment_method == Donation.PaymentMethod.ZELLE:
        return Decimal("0.00")
    amount = Decimal(str(amount))
    rate = FEE_RATES.get(payment_method, STANDARD_FEE_RATE)
    return (amount * rate + FIXED_FEE).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class DonationPaymentResult:
    donation: Donation
    receipt: Optional[TaxReceipt]
    pending: List[str] = field(default_factory=list)
    test_mode: bool = False


class DonationService:
    """
    Args:
        gateway_provider: Callable returning the payment gateway
        receipt_service: Defaults to `TaxReceiptService()`
        environment: Overrides `settings.ENVIRONMENT`
    """

    def __init__(
        self,
        gateway_provider: Optional[Callable[[], Any]] = None,
        receipt_service: Optional[TaxReceiptService] = None,
        environment: Optional[str] = None,
    ) -> None:
        self.gateway_provider = gateway_provider
        self.receipt_service = receipt_service or TaxReceiptService()
        self.environment = (environment or settings.ENVIRONMENT).lower()

    # ---------- create ----------

    def create_donation(self, donor: Donor, data: Dict[str, Any]) -> Donation:
        """
        Store a pending donation. `data` is the validated
        `DonationCreateSerializer` payload.
        """
        student = Student.objects.filter(pk=data["studentId"]).first()
        if student is None:
            raise NotFound("Student not found")
        if student.status != Student.AccountStatus.ACTIVE:
            raise ValidationFailed("This student is not accepting donations")

        amount = Decimal(str(data["amount"])).quantize(CENT, rounding=ROUND_HALF_UP)
        fee = calculate_transaction_fee(amount, data["paymentMethod"])
        donation = Donation.objects.create(
            student=student,
            donor=donor,
            donor_email=donor.email,
            donor_first_name=donor.first_name,
            donor_last_name=donor.last_name,
            donor_phone=donor.phone,
            donor_address=donor.address or None,
            amount=amount,
            donation_type=data.get("donationType") or Donation.DonationType.GENERAL,
            payment_method=data["paymentMethod"],
            transaction_fee=fee,
            net_amount=amount - fee,
            is_anonymous=data.get("isAnonymous", False),
            donor_message=data.get("donorMessage") or "",
            tax_receipt_number=self.receipt_service.generate_receipt_number(),
            status=Donation.Status.PENDING,
        )
        logger.info(
            "Donation %s created: $%s from donor %s to student %s",
            donation.pk,
            amount,
            donor.pk,
            student.pk,
        )
        return donation

    # ---------- payment ----------

    def is_test_mode(self, test_card_number: Optional[str]) -> bool:
        return bool(test_card_number) and self.environment != "production"

    def process_payment(
        self,
        donation_id: Any,
        payment_method_id: Optional[str] = None,
        test_card_data: Optional[Dict[str, Any]] = None,
        donor: Optional[Donor] = None,
    ) -> DonationPaymentResult:
        """
        Charge a pending donation.

        Raises:
            NotFound: unknown donation, or not the caller's donation
            Conflict: donation is not pending
            ValidationFailed: missing payment method, manual-only method
            PaymentDeclined: payment failed (donation marked failed)
            RecordingFailed: charged but could not be recorded
        """
        test_card_number = None
        if isinstance(test_card_data, dict):
            test_card_number = clean_card_number(test_card_data.get("number")) or None
        test_mode = self.is_test_mode(test_card_number)

        with transaction.atomic():
            donation = self._lock_pending(donation_id, donor)
            self._check_method(donation, payment_method_id, test_mode)
            donation.status = Donation.Status.PROCESSING
            donation.save(update_fields=["status", "updated_at"])

        try:
            intent = self._charge(donation, payment_method_id, test_card_number, test_mode)
        except PaymentDeclined as exc:
            self.fail_donation(donation, exc.message)
            raise
        except GatewayConfigurationError:
            self._release(donation)
            raise

        if intent.get("status") == "requires_action":
            donation.payment_intent_id = intent.get("id") or ""
            donation.save(update_fields=["payment_intent_id", "updated_at"])
            raise PaymentDeclined(
                "Payment requires additional authentication",
                details={
                    "requiresAction": True,
                    "donationId": donation.pk,
                    "paymentIntent": {
                        "id": intent.get("id"),
                        "client_secret": intent.get("client_secret"),
                        "status": intent.get("status"),
                    },
                },
            )

        try:
            with transaction.atomic():
                donation = Donation.objects.select_for_update().get(pk=donation.pk)
                receipt, messages = self.complete_donation(
                    donation,
                    intent["id"],
                    gateway_response={
                        "testMode": test_mode,
                        "isRealStripePayment": not intent.get("simulated", False),
                        "cardBrand": get_card_brand(test_card_number) if test_card_number else "unknown",
                        "paymentType": "donation",
                        "status": intent.get("status"),
                    },
                )
        except Exception as exc:
            logger.exception(
                "Donation %s charged (pi=%s) but could not be recorded", donation.pk, intent.get("id")
            )
            raise RecordingFailed(
                "Payment succeeded but the donation could not be recorded. Please contact support.",
                details={"paymentIntentId": intent.get("id"), "donationId": donation.pk},
            ) from exc

        dispatch(messages)
        receipt.refresh_from_db()
        return DonationPaymentResult(
            donation=donation,
            receipt=receipt,
            pending=pending_topics(messages),
            test_mode=test_mode,
        )

    def _lock_pending(self, donation_id: Any, donor: Optional[Donor]) -> Donation:
        try:
            donation = (
                Donation.objects.select_for_update()
                .select_related("student")
                .filter(pk=int(donation_id))
                .first()
            )
        except (TypeError, ValueError):
            donation = None
        if donation is None or (donor is not None and donation.donor_id != donor.pk):
            raise NotFound("Donation not found")
        if donation.status != Donation.Status.PENDING:
            raise Conflict("Donation already processed")
        return donation

    def _check_method(self, donation: Donation, payment_method_id: Optional[str], test_mode: bool) -> None:
        if donation.payment_method == Donation.PaymentMethod.ZELLE:
            raise ValidationFailed(
                "Zelle payments require manual verification",
                details={"requiresManualVerification": True},
            )
        if donation.payment_method != Donation.PaymentMethod.STRIPE:
            raise ValidationFailed("Unsupported payment method")
        if not test_mode and not payment_method_id:
            raise ValidationFailed("Payment method required for production payments")

    def _release(self, donation: Donation) -> None:
        Donation.objects.filter(pk=donation.pk, status=Donation.Status.PROCESSING).update(
            status=Donation.Status.PENDING, updated_at=timezone.now()
        )

    def _charge(
        self,
        donation: Donation,
        payment_method_id: Optional[str],
        test_card_number: Optional[str],
        test_mode: bool,
    ) -> Dict[str, Any]:
        """Returns the payment intent dict. Raises PaymentDeclined on failure."""
        if test_mode:
            if test_card_number in TEST_CARD_DECLINES:
                message, code = TEST_CARD_DECLINES[test_card_number]
                raise PaymentDeclined(message, code=code, details={"donationId": donation.pk})
            if not test_card_number.startswith("424242"):
                return {"id": simulated_payment_intent_id(), "status": "succeeded", "simulated": True}
            payment_method_id = payment_method_id or "pm_card_visa"

        gateway = self.gateway_provider()
        try:
            intent = gateway.create_payment_intent(
                amount_cents=int((donation.amount * 100).to_integral_value(rounding=ROUND_HALF_UP)),
                currency=donation.currency,
                payment_method_id=payment_method_id,
                metadata={
                    "type": "donation",
                    "donationId": donation.pk,
                    "studentId": donation.student_id,
                    "donorEmail": donation.donor_email,
                    "nonprofitId": "gradvillage-501c3",
                    "taxReceiptNumber": donation.tax_receipt_number,
                },
                stripe_account=settings.STRIPE_NONPROFIT_ACCOUNT_ID or None,
                idempotency_key=f"donation-{donation.pk}",
            )
        except GatewayConfigurationError:
            raise
        except PaymentGatewayError as exc:
            logger.warning("Donation %s payment failed: %s", donation.pk, exc.message)
            raise PaymentDeclined(
                exc.user_message or exc.message,
                code=exc.code,
                details={"donationId": donation.pk},
            ) from exc

        status = intent.get("status")
        if status in ("succeeded", "requires_action"):
            return intent
        last_error = intent.get("last_payment_error") or {}
        raise PaymentDeclined(
            last_error.get("message") or "Payment failed",
            code=last_error.get("code"),
            details={"donationId": donation.pk, "paymentIntent": {"id": intent.get("id"), "status": status}},
        )

    # ---------- recording ----------

    def complete_donation(
        self,
        donation: Donation,
        payment_intent_id: str,
        gateway_response: Optional[Dict[str, Any]] = None,
    ):
        """
        Mark a locked donation completed and queue its side effects. Must run
        inside a transaction.

        Returns:
            (TaxReceipt, [OutboxMessage])
        """
        now = timezone.now()
        donation.status = Donation.Status.COMPLETED
        donation.payment_intent_id = payment_intent_id
        donation.processed_at = now
        donation.failure_reason = ""
        donation.save()

        PaymentTransaction.objects.create(
            donation=donation,
            provider=donation.payment_method,
            provider_transaction_id=payment_intent_id,
            provider_fee=donation.transaction_fee,
            gross_amount=donation.amount,
            net_amount=donation.net_amount,
            currency=donation.currency,
            merchant_account_id=settings.STRIPE_NONPROFIT_ACCOUNT_ID or "gradvillage_main",
            gateway_response=gateway_response or {},
            settled_at=now,
        )
        receipt = self.receipt_service.create_donation_receipt(donation)

        messages: List[OutboxMessage] = [
            enqueue("receipt.generate", receipt_id=receipt.pk),
            enqueue("email.donation_receipt", donation_id=donation.pk),
        ]
        if not donation.is_anonymous:
            messages.append(enqueue("email.student_donation_notice", donation_id=donation.pk))
        if donation.amount >= settings.LARGE_DONATION_THRESHOLD:
            messages.append(enqueue("email.admin_large_donation", donation_id=donation.pk))

        logger.info(
            "Donation %s completed: $%s (pi=%s, receipt %s)",
            donation.pk,
            donation.amount,
            payment_intent_id,
            receipt.receipt_number,
        )
        return receipt, messages

    def fail_donation(self, donation: Donation, reason: str) -> Donation:
        donation.status = Donation.Status.FAILED
        donation.failure_reason = reason or "Payment failed"
        donation.save(update_fields=["status", "failure_reason", "updated_at"])
        logger.info("Donation %s failed: %s", donation.pk, donation.failure_reason)
        return donation
