"""
Registration Payment Service

Charges the student registration fee and activates the account.

Workflow:
1. Validate the request (email, amount, registration data).
2. Normalize the amount to dollars (explicit `amountUnit`, legacy heuristic
   otherwise).
3. Replay a stored outcome when the idempotency key was seen before.
4. Reject students whose registration is already complete.
5. Charge: simulated test cards, Stripe test tokens or a real payment method.
6. In one transaction: student, RegistrationFee, PaymentTransaction, unissued
   TaxReceipt and the outbox messages for receipt PDF and emails.
7. Dispatch the outbox messages, issue the access token, build the response.

Nothing is written before the charge succeeded, so a declined card leaves no
rows behind. A failure after the charge is reported as `RecordingFailed`
together with the payment intent id.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
import re
import secrets
import string
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.stripe_integration.exceptions import (
    GatewayConfigurationError,
    PaymentGatewayError,
)

from ...accounts.tokens import get_or_create_account_user, token_for_student
from ...donations.models import PaymentTransaction, RegistrationFee
from ...exceptions import Conflict, PaymentDeclined, RecordingFailed, ValidationFailed
from ...notifications.outbox import dispatch, enqueue, pending_topics
from ...receipts.models import TaxReceipt
from ...receipts.services import TaxReceiptService
from ...students.models import Student

logger = logging.getLogger(__name__)

REQUIRED_REGISTRATION_FIELDS = ["firstName", "lastName", "school", "email"]
AMOUNT_UNITS = ("dollars", "cents")
LEGACY_CENTS_THRESHOLD = Decimal("100")
CENT = Decimal("0.01")

# Simulated declines, never sent to Stripe
TEST_CARD_DECLINES = {
    "4000000000000002": ("Your card was declined.", "card_declined"),
    "4000000000009995": ("Your card has insufficient funds.", "insufficient_funds"),
    "4000000000000069": ("Your card has expired.", "expired_card"),
}

# Stripe test payment method tokens for the card numbers of the test UI
TEST_PAYMENT_METHODS = {
    "4242424242424242": "pm_card_visa",
    "4000056655665556": "pm_card_visa_debit",
    "5555555555554444": "pm_card_mastercard",
    "378282246310005": "pm_card_amex",
}
DEFAULT_TEST_PAYMENT_METHOD = "pm_card_visa"


def get_card_brand(card_number: Optional[str]) -> str:
    digits = re.sub(r"\D", "", card_number or "")
    if digits.startswith("4"):
        return "visa"
    if digits.startswith("5") or re.match(r"^2[2-7]", digits):
        return "mastercard"
    if re.match(r"^3[47]", digits):
        return "amex"
    if digits.startswith("6"):
        return "discover"
    return "unknown"


def clean_card_number(card_number: Any) -> str:
    return re.sub(r"\s", "", str(card_number or ""))


def simulated_payment_intent_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"pi_test_{int(time.time() * 1000)}_{suffix}"


@dataclass
class AmountProcessing:
    """Result of amount normalization; `processed` is always dollars."""

    original: Any
    processed: Decimal
    unit: str
    was_converted: bool
    unit_explicit: bool

    @property
    def cents(self) -> int:
        return int((self.processed * 100).to_integral_value(rounding=ROUND_HALF_UP))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "processed": float(self.processed),
            "unit": self.unit,
            "wasConverted": self.was_converted,
        }


def normalize_amount(amount: Any, unit: Optional[str] = None) -> AmountProcessing:
    """
    Convert the request amount to dollars.

    With `unit` the caller decides. Without it, amounts above 100 are taken
    as cents (100 → $100.00, 101 → $1.01).

    Raises:
        ValidationFailed: missing, non-numeric, non-positive amount or unknown unit
    """
    invalid = ValidationFailed("Valid amount is required")
    if amount is None or isinstance(amount, bool) or amount == "":
        raise invalid
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise invalid from None
    if not value.is_finite() or value <= 0:
        raise invalid

    if unit:
        unit = str(unit).lower()
        if unit not in AMOUNT_UNITS:
            raise invalid
        explicit = True
    else:
        unit = "cents" if value > LEGACY_CENTS_THRESHOLD else "dollars"
        explicit = False
        logger.warning(
            "Registration amount %s sent without amountUnit, treating it as %s", amount, unit
        )

    dollars = value / 100 if unit == "cents" else value
    dollars = dollars.quantize(CENT, rounding=ROUND_HALF_UP)
    if dollars <= 0:
        raise invalid
    return AmountProcessing(
        original=amount,
        processed=dollars,
        unit=unit,
        was_converted=unit == "cents",
        unit_explicit=explicit,
    )


@dataclass
class RegistrationRequest:
    email: str
    amount: AmountProcessing
    currency: str
    registration_data: Dict[str, Any]
    payment_method_id: Optional[str]
    test_card_number: Optional[str]
    metadata: Dict[str, Any]
    idempotency_key: Optional[str]


@dataclass
class ChargeResult:
    payment_intent_id: str
    is_real_stripe_payment: bool
    test_mode: bool
    card_number: Optional[str]


class RegistrationPaymentService:
    """
    Args:
        gateway_provider: Callable returning a payment gateway; only called
            when a real (Stripe) charge is needed
        receipt_service: Tax receipt service, defaults to `TaxReceiptService()`
        sleep: Used for the simulated test payment delay
        environment: Overrides `settings.ENVIRONMENT`
    """

    def __init__(
        self,
        gateway_provider: Callable[[], Any],
        receipt_service: Optional[TaxReceiptService] = None,
        sleep: Callable[[float], None] = time.sleep,
        environment: Optional[str] = None,
    ) -> None:
        self.gateway_provider = gateway_provider
        self.receipt_service = receipt_service or TaxReceiptService()
        self.sleep = sleep
        self.environment = (environment or settings.ENVIRONMENT).lower()

    # ---------- validation ----------

    def parse_request(self, data: Dict[str, Any], idempotency_key: Optional[str] = None) -> RegistrationRequest:
        email = str(data.get("email") or "").strip()
        if not email:
            raise ValidationFailed("Email is required")

        amount = normalize_amount(data.get("amount"), data.get("amountUnit"))

        registration_data = data.get("registrationData")
        if not isinstance(registration_data, dict) or not registration_data:
            raise ValidationFailed(
                "Registration data is required. Please complete the signup process first."
            )

        missing = [f for f in REQUIRED_REGISTRATION_FIELDS if not registration_data.get(f)]
        if missing:
            raise ValidationFailed(
                f"Missing required registration fields: {', '.join(missing)}",
                details={"receivedData": list(registration_data.keys())},
            )

        test_card = data.get("testCardData") or {}
        test_card_number = clean_card_number(test_card.get("number")) if isinstance(test_card, dict) else ""

        return RegistrationRequest(
            email=email,
            amount=amount,
            currency=str(data.get("currency") or "usd").lower(),
            registration_data=registration_data,
            payment_method_id=data.get("paymentMethodId") or None,
            test_card_number=test_card_number or None,
            metadata=data.get("metadata") if isinstance(data.get("metadata"), dict) else {},
            idempotency_key=(idempotency_key or data.get("idempotencyKey") or None),
        )

    # ---------- workflow ----------

    def process(self, data: Dict[str, Any], idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the whole workflow and return the success payload.

        `metadata.studentCreated` is true for a new student and also for an
        existing row still in `pending_payment`: that row is an abandoned
        signup which this payment turns into the account for the first time.

        Raises:
            ValidationFailed, Conflict, PaymentDeclined: 400 responses
            RecordingFailed: the charge succeeded but could not be recorded
        """
        request = self.parse_request(data, idempotency_key)

        if request.idempotency_key:
            replay = self.replay(request)
            if replay is not None:
                return replay

        student = Student.objects.filter(email=request.email).first()
        if student is not None and student.registration_complete:
            raise Conflict(
                "Registration already completed for this student",
                details={
                    "user": {
                        "id": student.pk,
                        "email": student.email,
                        "firstName": student.first_name,
                        "lastName": student.last_name,
                        "registrationComplete": True,
                    }
                },
            )
        student_created = student is None or (
            student.registration_status == Student.RegistrationStatus.PENDING_PAYMENT
        )

        charge = self.charge(request, student)

        try:
            with transaction.atomic():
                student = self._save_student(request, student, charge)
                fee = self._create_fee(request, student, charge)
                payment_transaction = self._create_transaction(request, fee, charge)
                receipt = self.receipt_service.create_registration_receipt(fee)
                messages = [
                    enqueue("receipt.generate", receipt_id=receipt.pk),
                    enqueue("email.payment_confirmation", fee_id=fee.pk),
                    enqueue("email.tax_receipt", receipt_id=receipt.pk),
                    enqueue("email.welcome", student_id=student.pk),
                ]
        except Exception as exc:
            logger.exception(
                "Registration payment %s for %s succeeded but could not be recorded",
                charge.payment_intent_id,
                request.email,
            )
            raise RecordingFailed(
                "Payment succeeded but the registration could not be recorded. "
                "Please retry with the same idempotency key or contact support.",
                details={"paymentIntentId": charge.payment_intent_id},
            ) from exc

        logger.info(
            "Registration fee %s recorded for student %s (pi=%s)",
            fee.receipt_number,
            student.pk,
            charge.payment_intent_id,
        )

        dispatch(messages)
        receipt.refresh_from_db()

        return self.build_response(
            student=student,
            fee=fee,
            payment_transaction=payment_transaction,
            receipt=receipt,
            currency=request.currency,
            amount=request.amount.to_dict(),
            test_mode=charge.test_mode,
            is_real=charge.is_real_stripe_payment,
            student_created=student_created,
            pending=pending_topics(messages),
            replay=False,
        )

    def replay(self, request: RegistrationRequest) -> Optional[Dict[str, Any]]:
        """
        Stored outcome for a key seen before, or None.

        A key only replays the request it was first used with: a different
        email or amount is rejected instead of returning the stored student.

        Raises:
            Conflict: the key belongs to another registration payment
        """
        fee = (
            RegistrationFee.objects.select_related("student")
            .filter(idempotency_key=request.idempotency_key)
            .first()
        )
        if fee is None:
            return None

        if (
            fee.student_email.lower() != request.email.lower()
            or fee.amount != request.amount.processed
        ):
            logger.warning(
                "Idempotency key %s reused for a different registration payment (%s)",
                request.idempotency_key,
                request.email,
            )
            raise Conflict(
                "Idempotency key was already used for a different request",
                code="idempotency_key_reused",
            )

        logger.info("Replaying registration payment for idempotency key %s", request.idempotency_key)
        payment_transaction = fee.transactions.order_by("pk").first()
        receipt = TaxReceipt.objects.filter(registration_fee=fee).first()
        gateway_response = payment_transaction.gateway_response if payment_transaction else {}
        return self.build_response(
            student=fee.student,
            fee=fee,
            payment_transaction=payment_transaction,
            receipt=receipt,
            currency=fee.currency.lower(),
            amount={
                "original": gateway_response.get("originalAmount"),
                "processed": float(fee.amount),
                "unit": gateway_response.get("amountUnit"),
                "wasConverted": gateway_response.get("amountUnit") == "cents",
            },
            test_mode=bool(gateway_response.get("testMode")),
            is_real=bool(gateway_response.get("isRealStripePayment")),
            student_created=False,
            pending=[],
            replay=True,
        )

    # ---------- payment ----------

    def is_test_mode(self, request: RegistrationRequest) -> bool:
        return bool(request.test_card_number) and self.environment != "production"

    def charge(self, request: RegistrationRequest, student: Optional[Student]) -> ChargeResult:
        """
        Take the payment. Returns only when the payment succeeded.

        Raises:
            PaymentDeclined: declined, failed or incomplete payment
            ValidationFailed: production payment without a payment method
        """
        if self.is_test_mode(request):
            number = request.test_card_number
            logger.info("Processing registration test card ending %s", number[-4:])

            if number in TEST_CARD_DECLINES:
                message, code = TEST_CARD_DECLINES[number]
                logger.info("Simulated decline for %s: %s", request.email, code)
                raise PaymentDeclined(message, code=code)

            if number == "4242424242424242" or number.startswith("424242"):
                payment_method = TEST_PAYMENT_METHODS.get(number, DEFAULT_TEST_PAYMENT_METHOD)
                intent_id = self._charge_gateway(request, student, payment_method)
                return ChargeResult(intent_id, True, True, number)

            self.sleep(settings.TEST_PAYMENT_DELAY_SECONDS)
            return ChargeResult(simulated_payment_intent_id(), False, True, number)

        if not request.payment_method_id:
            raise ValidationFailed("Payment method required for production payments")
        intent_id = self._charge_gateway(request, student, request.payment_method_id)
        return ChargeResult(intent_id, True, False, None)

    def _charge_gateway(
        self, request: RegistrationRequest, student: Optional[Student], payment_method_id: str
    ) -> str:
        gateway = self.gateway_provider()
        metadata = dict(request.metadata)
        metadata.update(
            {
                "type": "registration_fee",
                "student_email": request.email,
                "student_id": student.pk if student else "",
            }
        )
        try:
            intent = gateway.create_payment_intent(
                amount_cents=request.amount.cents,
                currency=request.currency,
                payment_method_id=payment_method_id,
                metadata=metadata,
                idempotency_key=request.idempotency_key,
            )
        except GatewayConfigurationError:
            raise
        except PaymentGatewayError as exc:
            logger.warning("Registration payment for %s failed: %s", request.email, exc.message)
            raise PaymentDeclined(
                "Payment processing failed",
                code=exc.code,
                details={"message": exc.message},
            ) from exc

        status = intent.get("status")
        if status == "requires_action":
            raise PaymentDeclined(
                "Payment requires additional authentication",
                details={
                    "requiresAction": True,
                    "paymentIntent": {
                        "id": intent.get("id"),
                        "client_secret": intent.get("client_secret"),
                        "status": status,
                    },
                },
            )
        if status != "succeeded":
            last_error = intent.get("last_payment_error") or {}
            raise PaymentDeclined(
                f"Payment failed with status: {status}",
                details={
                    "message": last_error.get("message") or "Unknown payment error",
                    "paymentIntent": {"id": intent.get("id"), "status": status},
                },
            )
        return intent["id"]

    # ---------- recording ----------

    def _save_student(
        self, request: RegistrationRequest, student: Optional[Student], charge: ChargeResult
    ) -> Student:
        data = request.registration_data
        now = timezone.now()
        if student is None:
            user = get_or_create_account_user(
                request.email,
                password=data.get("password"),
                first_name=data["firstName"],
                last_name=data["lastName"],
            )
            student = Student(
                user=user,
                email=request.email,
                first_name=data["firstName"],
                last_name=data["lastName"],
                school_name=data["school"],
                major=data.get("major") or "",
                graduation_year=str(data.get("graduationYear") or ""),
                profile_url=Student.build_profile_url(data["firstName"], data["lastName"], now),
            )
        else:
            student = Student.objects.select_for_update().get(pk=student.pk)
            if student.user_id is None:
                student.user = get_or_create_account_user(
                    student.email,
                    password=data.get("password"),
                    first_name=student.first_name,
                    last_name=student.last_name,
                )

        student.registration_status = Student.RegistrationStatus.COMPLETE
        student.payment_complete = True
        student.payment_status = "completed"
        student.payment_intent_id = charge.payment_intent_id
        student.payment_completed_at = now
        student.registration_fee = request.amount.processed
        student.registration_paid = True
        student.save()
        return student

    def _create_fee(
        self, request: RegistrationRequest, student: Student, charge: ChargeResult
    ) -> RegistrationFee:
        data = request.registration_data
        amount = request.amount.processed
        return RegistrationFee.objects.create(
            student=student,
            receipt_number=self.receipt_service.generate_receipt_number(),
            student_first_name=data["firstName"],
            student_last_name=data["lastName"],
            student_email=request.email,
            student_school=data["school"],
            student_major=data.get("major") or "",
            amount=amount,
            currency="USD",
            payment_method="stripe",
            payment_intent_id=charge.payment_intent_id,
            transaction_fee=Decimal("0.00"),
            net_amount=amount,
            status=RegistrationFee.Status.COMPLETED,
            idempotency_key=request.idempotency_key,
            processed_at=timezone.now(),
        )

    def _create_transaction(
        self, request: RegistrationRequest, fee: RegistrationFee, charge: ChargeResult
    ) -> PaymentTransaction:
        return PaymentTransaction.objects.create(
            registration_fee=fee,
            provider="stripe",
            provider_transaction_id=charge.payment_intent_id,
            provider_fee=Decimal("0.00"),
            gross_amount=fee.amount,
            net_amount=fee.amount,
            currency="USD",
            gateway_response={
                "isRealStripePayment": charge.is_real_stripe_payment,
                "testMode": charge.test_mode,
                "cardBrand": get_card_brand(charge.card_number) if charge.card_number else "unknown",
                "cardLast4": charge.card_number[-4:] if charge.card_number else "0000",
                "paymentType": "registration_fee",
                "originalAmount": request.amount.original,
                "processedAmount": float(request.amount.processed),
                "amountUnit": request.amount.unit,
            },
            settled_at=timezone.now(),
        )

    # ---------- response ----------

    def build_response(
        self,
        *,
        student: Student,
        fee: RegistrationFee,
        payment_transaction: Optional[PaymentTransaction],
        receipt: Optional[TaxReceipt],
        currency: str,
        amount: Dict[str, Any],
        test_mode: bool,
        is_real: bool,
        student_created: bool,
        pending: List[str],
        replay: bool,
    ) -> Dict[str, Any]:
        issued = bool(receipt and receipt.issued)
        processed_at = fee.processed_at or fee.created_at
        return {
            "success": True,
            "message": "Registration payment processed successfully",
            "paymentIntent": {
                "id": fee.payment_intent_id,
                "status": "succeeded",
                "amount": float(fee.amount),
                "currency": currency,
                "created": int(processed_at.timestamp()),
                "isRealStripePayment": is_real,
            },
            "user": {
                "id": student.pk,
                "email": student.email,
                "firstName": student.first_name,
                "lastName": student.last_name,
                "school": student.school_name,
                "major": student.major,
                "userType": "student",
                "verified": True,
                "paymentComplete": student.payment_complete,
                "registrationComplete": student.registration_complete,
                "profileUrl": student.profile_url,
            },
            "token": token_for_student(student),
            "taxReceipt": {
                "receiptNumber": fee.receipt_number,
                "receiptUrl": receipt.receipt_pdf_url if issued else None,
                "issued": issued,
                "message": (
                    "Tax receipt generated successfully"
                    if issued
                    else "Tax receipt will be generated and emailed shortly"
                ),
            },
            "metadata": {
                "paymentProcessedAt": processed_at.isoformat(),
                "registrationFee": float(fee.amount),
                "testMode": test_mode,
                "isRealStripePayment": is_real,
                "studentCreated": student_created,
                "registrationFeeId": fee.pk,
                "paymentTransactionId": payment_transaction.pk if payment_transaction else None,
                "taxReceiptGenerated": issued,
                "amountProcessing": amount,
                "pendingSideEffects": pending,
                "idempotentReplay": replay,
            },
        }
