"""
Outbox tests: dispatch, retry backoff, the registered handlers and the
management commands (process_outbox, seed_schools, create_admin).
"""

from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import override_settings
from django.utils import timezone

from scholarships.donations.models import Donation
from scholarships.notifications.models import OutboxMessage
from scholarships.notifications.outbox import (
    dispatch,
    dispatch_message,
    due_messages,
    enqueue,
    pending_topics,
    registered_topics,
)
from scholarships.receipts.services import TaxReceiptService
from scholarships.students.models import School

from .base import GradVillageTestCase, create_donation, create_donor, create_student

User = get_user_model()

WELCOME_PATH = "scholarships.notifications.services.email_service.EmailService.send_welcome"


@override_settings(OUTBOX_MAX_ATTEMPTS=3, OUTBOX_RETRY_BASE_SECONDS=60)
class OutboxDispatchTests(GradVillageTestCase):
    def setUp(self):
        self.student = create_student()

    def test_all_topics_have_handlers(self):
        self.assertEqual(
            registered_topics(),
            [
                "email.account_status",
                "email.admin_large_donation",
                "email.donation_receipt",
                "email.payment_confirmation",
                "email.payment_failed",
                "email.student_donation_notice",
                "email.tax_receipt",
                "email.verification_request",
                "email.verification_update",
                "email.welcome",
                "receipt.generate",
            ],
        )

    def test_successful_dispatch_marks_sent(self):
        message = enqueue("email.welcome", student_id=self.student.pk)

        self.assertEqual(dispatch([message]), {"email.welcome": True})

        message.refresh_from_db()
        self.assertEqual(message.status, OutboxMessage.Status.SENT)
        self.assertEqual(message.attempts, 1)
        self.assertIsNotNone(message.sent_at)
        self.assertEqual(mail.outbox[0].to, [self.student.email])

    def test_failed_attempt_is_rescheduled_with_backoff(self):
        message = enqueue("email.welcome", student_id=self.student.pk)

        with patch(WELCOME_PATH, side_effect=ConnectionError("smtp down")):
            before = timezone.now()
            self.assertFalse(dispatch_message(message))
            first_retry = message.next_attempt_at
            self.assertFalse(dispatch_message(message))

        message.refresh_from_db()
        self.assertEqual(message.status, OutboxMessage.Status.PENDING)
        self.assertEqual(message.attempts, 2)
        self.assertEqual(message.last_error, "ConnectionError: smtp down")
        self.assertGreaterEqual(first_retry, before + timedelta(seconds=60))
        self.assertGreaterEqual(message.next_attempt_at, before + timedelta(seconds=120))
        self.assertEqual(pending_topics([message]), ["email.welcome"])

    def test_message_gives_up_after_max_attempts(self):
        message = enqueue("email.welcome", student_id=self.student.pk)

        with patch(WELCOME_PATH, side_effect=ConnectionError("smtp down")):
            for _ in range(3):
                dispatch_message(message)

        message.refresh_from_db()
        self.assertEqual(message.status, OutboxMessage.Status.FAILED)
        self.assertEqual(message.attempts, 3)

    def test_unknown_topic_counts_as_failure(self):
        message = enqueue("email.unknown", student_id=self.student.pk)

        self.assertFalse(dispatch_message(message))
        self.assertIn("No outbox handler registered", message.last_error)

    def test_dispatch_skips_finished_messages(self):
        message = enqueue("email.welcome", student_id=self.student.pk)
        message.mark_sent()

        self.assertEqual(dispatch([message]), {})

    def test_donation_receipt_email_waits_for_issued_receipt(self):
        donation = create_donation(
            create_donor(), self.student, status=Donation.Status.COMPLETED
        )
        receipt = TaxReceiptService().create_donation_receipt(donation)
        message = enqueue("email.donation_receipt", donation_id=donation.pk)

        self.assertFalse(dispatch_message(message))
        self.assertIn("ReceiptNotIssued", message.last_error)
        self.assertEqual(message.status, OutboxMessage.Status.PENDING)
        self.assertEqual(mail.outbox, [])

        receipt.issued = True
        receipt.save()

        self.assertTrue(dispatch_message(message))
        self.assertEqual(mail.outbox[0].to, [donation.donor_email])

    def test_due_messages(self):
        due = enqueue("email.welcome", student_id=self.student.pk)
        later = enqueue("email.welcome", student_id=self.student.pk)
        later.next_attempt_at = timezone.now() + timedelta(minutes=5)
        later.save()
        sent = enqueue("email.welcome", student_id=self.student.pk)
        sent.mark_sent()

        self.assertEqual(list(due_messages()), [due])
        self.assertEqual(
            list(due_messages(now=timezone.now() + timedelta(minutes=10))), [due, later]
        )
        self.assertEqual(len(due_messages(limit=1, now=timezone.now() + timedelta(minutes=10))), 1)


class ProcessOutboxCommandTests(GradVillageTestCase):
    def setUp(self):
        self.student = create_student()
        self.message = enqueue("email.welcome", student_id=self.student.pk)

    def test_dispatches_due_messages(self):
        out = StringIO()
        call_command("process_outbox", "--verbose", stdout=out)

        self.message.refresh_from_db()
        self.assertEqual(self.message.status, OutboxMessage.Status.SENT)
        self.assertIn("1 sent, 0 failed", out.getvalue())

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command("process_outbox", "--dry-run", stdout=out)

        self.message.refresh_from_db()
        self.assertEqual(self.message.status, OutboxMessage.Status.PENDING)
        self.assertIn("email.welcome", out.getvalue())
        self.assertEqual(mail.outbox, [])

    def test_nothing_due(self):
        self.message.mark_sent()
        out = StringIO()
        call_command("process_outbox", stdout=out)

        self.assertIn("No due outbox messages", out.getvalue())

    def test_invalid_limit(self):
        with self.assertRaises(CommandError):
            call_command("process_outbox", "--limit", "0", stdout=StringIO())


class SeedSchoolsCommandTests(GradVillageTestCase):
    def test_seed_is_repeatable(self):
        call_command("seed_schools", stdout=StringIO())
        call_command("seed_schools", stdout=StringIO())

        self.assertEqual(School.objects.count(), 10)
        stanford = School.objects.get(name="Stanford University")
        self.assertEqual(stanford.domain, "stanford.edu")
        self.assertTrue(stanford.supports("email"))


class CreateAdminCommandTests(GradVillageTestCase):
    def test_creates_staff_user(self):
        call_command(
            "create_admin",
            "--email",
            "ops@gradvillage.com",
            "--password",
            "Adm1n-secret-pass",
            stdout=StringIO(),
        )

        user = User.objects.get(username="ops@gradvillage.com")
        self.assertTrue(user.is_staff)
        self.assertFalse(user.is_superuser)
        self.assertTrue(user.check_password("Adm1n-secret-pass"))

    def test_existing_user(self):
        User.objects.create_user(username="ops@gradvillage.com", password="x")

        with self.assertRaises(CommandError):
            call_command(
                "create_admin",
                "--email",
                "ops@gradvillage.com",
                "--password",
                "Adm1n-secret-pass",
                stdout=StringIO(),
            )

    def test_weak_password(self):
        with self.assertRaises(CommandError):
            call_command(
                "create_admin", "--email", "ops@gradvillage.com", "--password", "123", stdout=StringIO()
            )
