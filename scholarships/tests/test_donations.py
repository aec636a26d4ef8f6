"""
Donation tests: fee calculation, POST /api/donations/create, payment through
POST /api/donations/process-payment and the donor's donation history.
"""

from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.test import SimpleTestCase, override_settings
from rest_framework import status

from core.stripe_integration.exceptions import GatewayConfigurationError
from scholarships.donations.models import Donation, PaymentTransaction
from scholarships.donations.services import calculate_transaction_fee
from scholarships.receipts.models import TaxReceipt
from scholarships.students.models import Student

from .base import (
    FakeGateway,
    GradVillageTestCase,
    card_declined,
    create_donation,
    create_donor,
    create_student,
)

CREATE_URL = "/api/donations/create"
PROCESS_URL = "/api/donations/process-payment"
GATEWAY_PATH = "scholarships.donations.views.donation_views.get_payment_gateway"
SIMULATED_CARD = {"number": "5555 5555 5555 4444"}


class TransactionFeeTests(SimpleTestCase):
    def test_card_payments_pay_the_nonprofit_rate(self):
        self.assertEqual(calculate_transaction_fee(Decimal("100.00"), "stripe"), Decimal("2.50"))
        self.assertEqual(calculate_transaction_fee(Decimal("50.00"), "paypal"), Decimal("1.40"))

    def test_zelle_is_free(self):
        self.assertEqual(calculate_transaction_fee(Decimal("500.00"), "zelle"), Decimal("0.00"))

    def test_unknown_methods_pay_the_standard_rate(self):
        self.assertEqual(calculate_transaction_fee(Decimal("100.00"), "check"), Decimal("3.20"))

    def test_fee_is_rounded_half_up(self):
        # 12.25 * 0.022 + 0.30 = 0.5695
        self.assertEqual(calculate_transaction_fee(Decimal("12.25"), "stripe"), Decimal("0.57"))


class DonationCreateTests(GradVillageTestCase):
    def setUp(self):
        self.student = create_student()
        self.donor = create_donor()
        self.login_donor(self.donor)

    def test_creates_pending_donation_with_fee(self):
        response = self.client.post(
            CREATE_URL,
            {
                "studentId": self.student.pk,
                "amount": "100.00",
                "paymentMethod": "stripe",
                "donorMessage": "Go Ada!",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["message"], "Donation created successfully")
        donation = body["donation"]
        self.assertEqual(donation["status"], "pending")
        self.assertEqual(donation["transactionFee"], 2.5)
        self.assertEqual(donation["netAmount"], 97.5)
        self.assertEqual(donation["donationType"], "general")
        self.assertTrue(donation["taxReceiptNumber"].startswith("GV"))
        self.assertIsNone(body["clientSecret"])

        stored = Donation.objects.get(pk=donation["id"])
        self.assertEqual(stored.donor_email, self.donor.email)
        self.assertEqual(stored.donor_address, self.donor.address)

    def test_invalid_payload(self):
        response = self.client.post(
            CREATE_URL,
            {"studentId": self.student.pk, "amount": "0.50", "paymentMethod": "bitcoin"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["message"], "Validation failed")
        self.assertIn("amount", body["errors"])
        self.assertIn("paymentMethod", body["errors"])

    def test_registration_fee_type_is_not_accepted(self):
        response = self.client.post(
            CREATE_URL,
            {
                "studentId": self.student.pk,
                "amount": "25.00",
                "paymentMethod": "stripe",
                "donationType": "registration_fee",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("donationType", response.json()["errors"])

    def test_unknown_student(self):
        response = self.client.post(
            CREATE_URL,
            {"studentId": 999999, "amount": "10.00", "paymentMethod": "stripe"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"], "Student not found")

    def test_suspended_student_does_not_accept_donations(self):
        self.student.status = Student.AccountStatus.SUSPENDED
        self.student.save()
        response = self.client.post(
            CREATE_URL,
            {"studentId": self.student.pk, "amount": "10.00", "paymentMethod": "stripe"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "This student is not accepting donations")

    def test_students_cannot_donate(self):
        self.login_student(self.student)
        response = self.client.post(
            CREATE_URL,
            {"studentId": self.student.pk, "amount": "10.00", "paymentMethod": "stripe"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()["error"], "Access denied. Donor account required.")


class DonationPaymentTests(GradVillageTestCase):
    def setUp(self):
        self.student = create_student()
        self.donor = create_donor()
        self.donation = create_donation(self.donor, self.student)
        self.login_donor(self.donor)

    def process(self, **body):
        body.setdefault("donationId", self.donation.pk)
        return self.client.post(PROCESS_URL, body, format="json")

    def test_simulated_card_completes_donation(self):
        with patch(GATEWAY_PATH) as gateway_provider:
            response = self.process(testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        gateway_provider.assert_not_called()
        body = response.json()
        self.assertEqual(body["message"], "Payment processed successfully")
        self.assertEqual(body["donation"]["status"], "completed")
        self.assertTrue(body["donation"]["paymentIntentId"].startswith("pi_test_"))
        self.assertTrue(body["taxReceipt"]["issued"])
        self.assertEqual(body["taxReceipt"]["receiptNumber"], self.donation.tax_receipt_number)
        self.assertTrue(body["metadata"]["testMode"])
        self.assertEqual(body["metadata"]["pendingSideEffects"], [])

        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.COMPLETED)
        self.assertIsNotNone(self.donation.processed_at)
        transaction = PaymentTransaction.objects.get(donation=self.donation)
        self.assertEqual(transaction.net_amount, Decimal("97.50"))
        self.assertEqual(transaction.gateway_response["cardBrand"], "mastercard")

        receipt = TaxReceipt.objects.get(donation=self.donation)
        self.assertEqual(receipt.donor_name, self.donor.full_name)
        self.assertEqual(receipt.donation_amount, Decimal("100.00"))
        self.assertEqual(self.student.amount_raised, Decimal("97.50"))

        recipients = sorted(message.to[0] for message in mail.outbox)
        self.assertEqual(recipients, sorted([self.donor.email, self.student.email]))

    def test_anonymous_donation_skips_student_notice(self):
        self.donation.is_anonymous = True
        self.donation.save()

        self.process(testCardData=SIMULATED_CARD)

        self.assertEqual([message.to for message in mail.outbox], [[self.donor.email]])
        receipt = TaxReceipt.objects.get(donation=self.donation)
        self.assertEqual(receipt.donor_name, self.donor.full_name)

    @override_settings(LARGE_DONATION_THRESHOLD=1000, ADMIN_NOTIFICATION_EMAIL="ops@gradvillage.com")
    def test_large_donation_alerts_admin(self):
        large = create_donation(self.donor, self.student, amount="1500.00")

        self.process(donationId=large.pk, testCardData=SIMULATED_CARD)

        admin_mails = [m for m in mail.outbox if m.to == ["ops@gradvillage.com"]]
        self.assertEqual(len(admin_mails), 1)
        self.assertEqual(admin_mails[0].subject, "Large donation received: $1,500.00")

    def test_simulated_decline_fails_donation(self):
        response = self.process(testCardData={"number": "4000000000009995"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["error"], "Your card has insufficient funds.")
        self.assertEqual(body["code"], "insufficient_funds")
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.FAILED)
        self.assertEqual(self.donation.failure_reason, "Your card has insufficient funds.")
        self.assertFalse(TaxReceipt.objects.exists())

    def test_donation_is_only_charged_once(self):
        self.process(testCardData=SIMULATED_CARD)
        response = self.process(testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "Donation already processed")
        self.assertEqual(PaymentTransaction.objects.filter(donation=self.donation).count(), 1)

    def test_stripe_test_card_goes_through_gateway(self):
        gateway = FakeGateway()
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.process(testCardData={"number": "4242424242424242"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        call = gateway.created[0]
        self.assertEqual(call["amount_cents"], 10000)
        self.assertEqual(call["payment_method_id"], "pm_card_visa")
        self.assertEqual(call["idempotency_key"], f"donation-{self.donation.pk}")
        self.assertEqual(call["metadata"]["type"], "donation")
        self.assertEqual(call["metadata"]["donationId"], self.donation.pk)
        self.assertEqual(call["metadata"]["taxReceiptNumber"], self.donation.tax_receipt_number)
        self.assertIsNone(call["stripe_account"])
        self.assertEqual(response.json()["donation"]["paymentIntentId"], "pi_fake_1")

    @override_settings(ENVIRONMENT="production")
    def test_production_requires_payment_method(self):
        response = self.process(testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.json()["error"], "Payment method required for production payments"
        )
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.PENDING)

    def test_gateway_decline_fails_donation(self):
        gateway = FakeGateway(error=card_declined())
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.process(paymentMethodId="pm_card_chargeDeclined")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["code"], "card_declined")
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.FAILED)

    def test_failed_intent_status_fails_donation(self):
        gateway = FakeGateway(
            status="requires_payment_method",
            last_payment_error={"message": "Your card does not support this type of purchase."},
        )
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.process(paymentMethodId="pm_card_visa")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.FAILED)
        self.assertEqual(
            self.donation.failure_reason, "Your card does not support this type of purchase."
        )

    def test_requires_action_keeps_donation_processing(self):
        gateway = FakeGateway(status="requires_action")
        with patch(GATEWAY_PATH, return_value=gateway):
            response = self.process(paymentMethodId="pm_card_threeDSecure2Required")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertTrue(body["requiresAction"])
        self.assertEqual(body["donationId"], self.donation.pk)
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.PROCESSING)
        self.assertEqual(self.donation.payment_intent_id, "pi_fake_1")

    def test_missing_gateway_configuration_releases_donation(self):
        with patch(GATEWAY_PATH, side_effect=GatewayConfigurationError("STRIPE_SECRET_KEY environment variable is not set")):
            response = self.process(paymentMethodId="pm_card_visa")

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json()["code"], "gateway_not_configured")
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.status, Donation.Status.PENDING)

    def test_zelle_requires_manual_verification(self):
        zelle = create_donation(self.donor, self.student, payment_method=Donation.PaymentMethod.ZELLE)

        response = self.process(donationId=zelle.pk, testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["error"], "Zelle payments require manual verification")
        self.assertTrue(body["requiresManualVerification"])
        zelle.refresh_from_db()
        self.assertEqual(zelle.status, Donation.Status.PENDING)

    def test_paypal_is_not_supported(self):
        paypal = create_donation(self.donor, self.student, payment_method=Donation.PaymentMethod.PAYPAL)

        response = self.process(donationId=paypal.pk, testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "Unsupported payment method")

    def test_other_donors_donation_is_not_found(self):
        other = create_donation(create_donor(), self.student)

        response = self.process(donationId=other.pk, testCardData=SIMULATED_CARD)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"], "Donation not found")

    def test_donation_id_is_required(self):
        response = self.client.post(PROCESS_URL, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "Donation ID is required")


class DonationHistoryTests(GradVillageTestCase):
    def setUp(self):
        self.student = create_student()
        self.donor = create_donor()
        self.completed = create_donation(
            self.donor, self.student, status=Donation.Status.COMPLETED
        )
        self.failed = create_donation(self.donor, self.student, status=Donation.Status.FAILED)
        create_donation(
            self.donor,
            self.student,
            amount="25.00",
            status=Donation.Status.COMPLETED,
            donation_type=Donation.DonationType.REGISTRATION_FEE,
        )
        self.login_donor(self.donor)

    def test_history_excludes_registration_fees(self):
        response = self.client.get("/api/donations/history")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(
            {donation["id"] for donation in data["donations"]},
            {self.completed.pk, self.failed.pk},
        )
        self.assertEqual(data["pagination"]["total"], 2)

    def test_history_status_filter_and_pagination(self):
        response = self.client.get("/api/donors/donations", {"status": "completed", "limit": 1})

        data = response.json()["data"]
        self.assertEqual([donation["id"] for donation in data["donations"]], [self.completed.pk])
        self.assertEqual(data["pagination"]["limit"], 1)
        self.assertFalse(data["pagination"]["hasNext"])

    def test_detail_of_own_donation(self):
        response = self.client.get(f"/api/donations/{self.completed.pk}")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["studentName"], self.student.full_name)

    def test_detail_of_other_donation(self):
        other = create_donation(create_donor(), self.student)

        response = self.client.get(f"/api/donations/{other.pk}")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
