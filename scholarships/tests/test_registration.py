"""
Registration payment tests: amount normalization, the payment workflow
through POST /api/registration-payment/process and the receipt lookups.
"""

from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.core.cache import cache
from django.test import SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle

from core.stripe_integration.exceptions import GatewayConfigurationError
from scholarships.donations.models import PaymentTransaction, RegistrationFee
from scholarships.exceptions import ValidationFailed
from scholarships.notifications.models import OutboxMessage
from scholarships.notifications.outbox import dispatch_message
from scholarships.receipts.models import TaxReceipt
from scholarships.receipts.services import ReceiptStorageError
from scholarships.registration.services import normalize_amount
from scholarships.students.models import Student

from .base import FakeGateway, GradVillageTestCase, card_declined, create_student

PROCESS_URL = "/api/registration-payment/process"
GATEWAY_PATH = "scholarships.registration.views.get_payment_gateway"
RECEIPT_UPLOAD_PATH = (
    "scholarships.receipts.services.tax_receipt_service.TaxReceiptService.generate_and_upload_receipt"
)


def registration_payload(email="ada@stanford.edu", card="5555 5555 5555 4444", **overrides):
    payload = {
        "email": email,
        "amount": 25,
        "amountUnit": "dollars",
        "currency": "usd",
        "registrationData": {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "school": "Stanford University",
            "email": email,
            "major": "Mathematics",
            "graduationYear": "2027",
            "password": "Sup3r-secret-pass",
        },
    }
    if card:
        payload["testCardData"] = {"number": card, "expiry": "12/34", "cvc": "123"}
    payload.update(overrides)
    return payload


class NormalizeAmountTests(SimpleTestCase):
    def test_explicit_dollars_are_kept(self):
        result = normalize_amount("25", "dollars")
        self.assertEqual(result.processed, Decimal("25.00"))
        self.assertFalse(result.was_converted)
        self.assertEqual(result.cents, 2500)

    def test_explicit_cents_are_converted(self):
        result = normalize_amount(2500, "cents")
        self.assertEqual(result.processed, Decimal("25.00"))
        self.assertTrue(result.was_converted)

    def test_legacy_threshold_without_unit(self):
        self.assertEqual(normalize_amount(100).processed, Decimal("100.00"))
        self.assertEqual(normalize_amount(101).processed, Decimal("1.01"))
        self.assertEqual(normalize_amount(2500).processed, Decimal("25.00"))

    def test_invalid_amounts_are_rejected(self):
        for amount in (None, "", 0, -5, "abc", True):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationFailed):
                    normalize_amount(amount)

    def test_unknown_unit_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            normalize_amount(25, "euros")


class RegistrationPaymentTests(GradVillageTestCase):
    def test_simulated_test_card_creates_active_student(self):
        with patch(GATEWAY_PATH) as gateway_provider:
            response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        gateway_provider.assert_not_called()
        body = response.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["paymentIntent"]["id"].startswith("pi_test_"))
        self.assertEqual(body["paymentIntent"]["status"], "succeeded")
        self.assertFalse(body["paymentIntent"]["isRealStripePayment"])
        self.assertTrue(body["user"]["registrationComplete"])
        self.assertEqual(body["user"]["userType"], "student")
        self.assertTrue(body["metadata"]["testMode"])
        self.assertTrue(body["metadata"]["studentCreated"])
        self.assertFalse(body["metadata"]["idempotentReplay"])
        self.assertEqual(body["metadata"]["pendingSideEffects"], [])
        self.assertTrue(body["token"])

        student = Student.objects.get(email="ada@stanford.edu")
        self.assertEqual(student.registration_status, Student.RegistrationStatus.COMPLETE)
        self.assertTrue(student.registration_paid)
        self.assertTrue(student.user.check_password("Sup3r-secret-pass"))

        fee = RegistrationFee.objects.get(student=student)
        self.assertEqual(fee.amount, Decimal("25.00"))
        self.assertEqual(body["taxReceipt"]["receiptNumber"], fee.receipt_number)

        payment_transaction = PaymentTransaction.objects.get(registration_fee=fee)
        self.assertEqual(payment_transaction.gateway_response["cardBrand"], "mastercard")
        self.assertEqual(payment_transaction.gateway_response["cardLast4"], "4444")

    def test_receipt_and_emails_are_sent_after_commit(self):
        response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        body = response.json()
        self.assertTrue(body["taxReceipt"]["issued"])
        self.assertTrue(body["taxReceipt"]["receiptUrl"].endswith(".pdf"))
        receipt = TaxReceipt.objects.get(receipt_number=body["taxReceipt"]["receiptNumber"])
        self.assertTrue(receipt.issued)
        self.assertEqual(receipt.donor_email, "ada@stanford.edu")

        subjects = sorted(message.subject for message in mail.outbox)
        self.assertEqual(
            subjects,
            [
                "Welcome to GradVillage - Your Registration is Complete!",
                "Welcome to the GradVillage community",
                "Your GradVillage Tax Receipt",
            ],
        )
        self.assertFalse(OutboxMessage.objects.exclude(status=OutboxMessage.Status.SENT).exists())

    def test_failed_email_does_not_fail_the_payment(self):
        with patch(
            "scholarships.notifications.services.email_service.EmailService.send_welcome",
            side_effect=ConnectionError("smtp down"),
        ):
            response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["metadata"]["pendingSideEffects"], ["email.welcome"])
        message = OutboxMessage.objects.get(topic="email.welcome")
        self.assertEqual(message.status, OutboxMessage.Status.PENDING)
        self.assertEqual(message.attempts, 1)
        self.assertIn("smtp down", message.last_error)

    def test_simulated_decline_leaves_no_records(self):
        response = self.client.post(
            PROCESS_URL, registration_payload(card="4000000000000002"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Your card was declined.")
        self.assertEqual(body["code"], "card_declined")
        self.assertFalse(Student.objects.exists())
        self.assertFalse(RegistrationFee.objects.exists())
        self.assertFalse(OutboxMessage.objects.exists())

    def test_stripe_test_card_is_charged_through_gateway(self):
        gateway = FakeGateway()
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.client.post(
                PROCESS_URL, registration_payload(card="4242424242424242"), format="json"
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(gateway.created), 1)
        call = gateway.created[0]
        self.assertEqual(call["amount_cents"], 2500)
        self.assertEqual(call["payment_method_id"], "pm_card_visa")
        self.assertEqual(call["metadata"]["type"], "registration_fee")
        self.assertEqual(call["metadata"]["student_email"], "ada@stanford.edu")
        body = response.json()
        self.assertEqual(body["paymentIntent"]["id"], "pi_fake_1")
        self.assertTrue(body["paymentIntent"]["isRealStripePayment"])

    def test_production_payment_method(self):
        gateway = FakeGateway()
        payload = registration_payload(card=None, paymentMethodId="pm_live_123")
        with override_settings(ENVIRONMENT="production"), patch(GATEWAY_PATH, return_value=gateway):
            response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(gateway.created[0]["payment_method_id"], "pm_live_123")
        self.assertFalse(response.json()["metadata"]["testMode"])

    @override_settings(ENVIRONMENT="production")
    def test_test_cards_are_ignored_in_production(self):
        response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.json()["error"], "Payment method required for production payments"
        )

    def test_gateway_decline_is_reported(self):
        gateway = FakeGateway(error=card_declined())
        payload = registration_payload(card=None, paymentMethodId="pm_card_chargeDeclined")
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["error"], "Payment processing failed")
        self.assertEqual(body["code"], "card_declined")
        self.assertFalse(Student.objects.exists())

    def test_requires_action_returns_client_secret(self):
        gateway = FakeGateway(status="requires_action")
        payload = registration_payload(card=None, paymentMethodId="pm_card_threeDSecure2Required")
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertTrue(body["requiresAction"])
        self.assertEqual(body["paymentIntent"]["client_secret"], "pi_fake_1_secret_test")
        self.assertFalse(Student.objects.exists())

    def test_missing_gateway_configuration(self):
        payload = registration_payload(card=None, paymentMethodId="pm_live_123")
        with patch(
            GATEWAY_PATH,
            side_effect=GatewayConfigurationError("STRIPE_SECRET_KEY environment variable is not set"),
        ):
            response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        body = response.json()
        self.assertEqual(body["error"], "Payment processing failed")
        self.assertEqual(body["code"], "gateway_not_configured")
        self.assertNotIn("details", body)

    def test_recording_failure_returns_payment_intent(self):
        with patch(
            "scholarships.receipts.services.tax_receipt_service.TaxReceiptService.create_registration_receipt",
            side_effect=RuntimeError("database unavailable"),
        ):
            response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        body = response.json()
        self.assertEqual(body["code"], "RECORDING_FAILED")
        self.assertTrue(body["paymentIntentId"].startswith("pi_test_"))
        self.assertFalse(Student.objects.exists())
        self.assertFalse(OutboxMessage.objects.exists())

    def test_validation_errors(self):
        cases = [
            ({"email": ""}, "Email is required"),
            ({"amount": "abc"}, "Valid amount is required"),
            (
                {"registrationData": {}},
                "Registration data is required. Please complete the signup process first.",
            ),
        ]
        for overrides, message in cases:
            with self.subTest(message=message):
                response = self.client.post(
                    PROCESS_URL, registration_payload(**overrides), format="json"
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.json()["error"], message)

    def test_missing_registration_fields_are_listed(self):
        payload = registration_payload()
        del payload["registrationData"]["school"]
        response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["error"], "Missing required registration fields: school")
        self.assertNotIn("school", body["receivedData"])

    def test_already_registered_student_is_rejected(self):
        student = create_student(email="ada@stanford.edu")
        response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["error"], "Registration already completed for this student")
        self.assertEqual(body["user"]["id"], student.pk)
        self.assertFalse(RegistrationFee.objects.exists())

    def test_pending_student_is_completed(self):
        student = create_student(email="ada@stanford.edu", paid=False)
        response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["metadata"]["studentCreated"])
        student.refresh_from_db()
        self.assertTrue(student.registration_complete)
        self.assertEqual(Student.objects.count(), 1)

    def test_idempotency_key_replays_the_stored_outcome(self):
        first = self.client.post(
            PROCESS_URL, registration_payload(), format="json", HTTP_IDEMPOTENCY_KEY="reg-key-1"
        )
        second = self.client.post(
            PROCESS_URL, registration_payload(), format="json", HTTP_IDEMPOTENCY_KEY="reg-key-1"
        )

        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertTrue(second.json()["metadata"]["idempotentReplay"])
        self.assertEqual(second.json()["paymentIntent"]["id"], first.json()["paymentIntent"]["id"])
        self.assertEqual(
            second.json()["taxReceipt"]["receiptNumber"],
            first.json()["taxReceipt"]["receiptNumber"],
        )
        self.assertEqual(RegistrationFee.objects.count(), 1)

    def test_idempotency_key_in_body(self):
        payload = registration_payload(idempotencyKey="reg-key-body")
        self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(RegistrationFee.objects.get().idempotency_key, "reg-key-body")

    def test_idempotency_key_cannot_be_reused_for_another_student(self):
        self.client.post(PROCESS_URL, registration_payload(idempotencyKey="k1"), format="json")

        response = self.client.post(
            PROCESS_URL,
            registration_payload(email="mallory@example.com", idempotencyKey="k1"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["code"], "idempotency_key_reused")
        self.assertEqual(body["error"], "Idempotency key was already used for a different request")
        self.assertNotIn("token", body)
        self.assertNotIn("user", body)
        self.assertEqual(RegistrationFee.objects.count(), 1)
        self.assertFalse(Student.objects.filter(email="mallory@example.com").exists())

    def test_idempotency_key_cannot_be_reused_for_another_amount(self):
        self.client.post(PROCESS_URL, registration_payload(idempotencyKey="k1"), format="json")

        response = self.client.post(
            PROCESS_URL, registration_payload(amount=30, idempotencyKey="k1"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["code"], "idempotency_key_reused")

    def test_idempotency_key_replay_ignores_email_case(self):
        self.client.post(PROCESS_URL, registration_payload(idempotencyKey="k1"), format="json")

        response = self.client.post(
            PROCESS_URL,
            registration_payload(email="Ada@Stanford.edu", idempotencyKey="k1"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["metadata"]["idempotentReplay"])

    def test_markup_characters_in_names_still_issue_the_receipt(self):
        payload = registration_payload()
        payload["registrationData"]["lastName"] = "O<Brien & Co"
        payload["registrationData"]["school"] = "Stanford <University>"

        response = self.client.post(PROCESS_URL, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertTrue(body["taxReceipt"]["issued"])
        self.assertEqual(body["metadata"]["pendingSideEffects"], [])
        number = body["taxReceipt"]["receiptNumber"]
        self.assertEqual(TaxReceipt.objects.get(receipt_number=number).donor_name, "Ada O<Brien & Co")

        download = self.client.get(f"/api/receipt/{number}")
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertTrue(download.content.startswith(b"%PDF"))

    def test_receipt_email_waits_for_the_receipt_pdf(self):
        with patch(RECEIPT_UPLOAD_PATH, side_effect=ReceiptStorageError("bucket unavailable")):
            response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertFalse(body["taxReceipt"]["issued"])
        self.assertEqual(
            body["metadata"]["pendingSideEffects"], ["receipt.generate", "email.tax_receipt"]
        )
        subjects = [message.subject for message in mail.outbox]
        self.assertNotIn("Your GradVillage Tax Receipt", subjects)
        self.assertIn(
            "is not issued yet", OutboxMessage.objects.get(topic="email.tax_receipt").last_error
        )

        for topic in ("receipt.generate", "email.tax_receipt"):
            self.assertTrue(dispatch_message(OutboxMessage.objects.get(topic=topic)))

        self.assertIn("Your GradVillage Tax Receipt", [message.subject for message in mail.outbox])
        self.assertTrue(TaxReceipt.objects.get(receipt_number=body["taxReceipt"]["receiptNumber"]).issued)


@override_settings(
    CACHES={"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
)
class RegistrationThrottleTests(GradVillageTestCase):
    def setUp(self):
        cache.clear()

    def test_process_is_rate_limited(self):
        with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"registration_payment": "2/minute"}):
            for _ in range(2):
                response = self.client.post(PROCESS_URL, {}, format="json")
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

            response = self.client.post(PROCESS_URL, registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Too many requests from this IP, please try again later.")
        self.assertIn("Retry-After", response)
        self.assertFalse(Student.objects.exists())


class TaxReceiptLookupTests(GradVillageTestCase):
    def setUp(self):
        response = self.client.post(PROCESS_URL, registration_payload(), format="json")
        self.body = response.json()

    def test_lookup_by_receipt_number(self):
        number = self.body["taxReceipt"]["receiptNumber"]
        response = self.client.get(f"/api/registration-payment/tax-receipt/{number}")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        receipt = response.json()["taxReceipt"]
        self.assertEqual(receipt["receiptNumber"], number)
        self.assertEqual(receipt["donationAmount"], 25.0)
        self.assertEqual(receipt["donorName"], "Ada Lovelace")

    def test_lookup_is_repeatable(self):
        url = f"/api/registration-payment/tax-receipt/{self.body['taxReceipt']['receiptNumber']}"

        first = self.client.get(url)
        second = self.client.get(url)

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.json(), second.json())

    def test_unknown_receipt(self):
        response = self.client.get("/api/registration-payment/tax-receipt/GV2026-000000-NONE")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"], "Tax receipt not found")

    def test_receipt_history_of_the_token_holder(self):
        self.authenticate(self.body["token"])
        response = self.client.get("/api/registration-payment/tax-receipts")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        receipts = response.json()["taxReceipts"]
        self.assertEqual(len(receipts), 1)
        self.assertEqual(receipts[0]["donationType"], "registration_fee")

    def test_receipt_history_requires_token(self):
        response = self.client.get("/api/registration-payment/tax-receipts")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_health(self):
        response = self.client.get("/api/registration-payment/health")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "OK")
