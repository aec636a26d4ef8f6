"""
Email Service

Transactional emails of the platform. Every message is defined once in the
`EMAILS` registry (subject + plain text body with `{named}` placeholders);
the HTML alternative is derived from the text body.

Send errors are NOT swallowed here. Callers are outbox handlers, which record
the failure and retry later.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, TypedDict

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, linebreaks, urlize

logger = logging.getLogger(__name__)


class EmailType(TypedDict):
    subject: str
    body: str


SIGNATURE = "\n\nBest regards,\nThe GradVillage Team"

EMAILS: Dict[str, EmailType] = {
    "payment_confirmation": {
        "subject": "Welcome to GradVillage - Your Registration is Complete!",
        "body": (
            "Dear {first_name},\n\n"
            "Congratulations! Your registration payment of {amount} has been "
            "confirmed and your GradVillage account is now fully activated.\n\n"
            "Your receipt number is {receipt_number}.\n"
            "Download your receipt: {receipt_url}\n\n"
            "Go to your dashboard: {frontend_url}/student/dashboard"
            + SIGNATURE
        ),
    },
    "welcome": {
        "subject": "Welcome to the GradVillage community",
        "body": (
            "Dear {first_name},\n\n"
            "We're thrilled to have you on board. Here is what to do next:\n\n"
            "1. Complete your profile: add a photo, a bio and your academic details.\n"
            "2. Verify your school so donors know your story is real.\n"
            "3. Request your welcome box.\n"
            "4. Share your profile: {frontend_url}/students/{profile_url}\n\n"
            "Need help? Write to support@gradvillage.com."
            + SIGNATURE
        ),
    },
    "payment_failed": {
        "subject": "Registration Payment Failed",
        "body": (
            "Dear {first_name},\n\n"
            "We were unable to process your registration payment. "
            "Please try again or contact support if the issue persists.\n\n"
            "What to do next:\n"
            "- Check your payment method details\n"
            "- Ensure you have sufficient funds\n"
            "- Try using a different payment method\n"
            "- Contact support if you need assistance"
            + SIGNATURE
        ),
    },
    "tax_receipt": {
        "subject": "Your GradVillage Tax Receipt",
        "body": (
            "Dear {donor_name},\n\n"
            "Thank you for your support. Your receipt {receipt_number} for "
            "{amount} dated {receipt_date} is ready.\n\n"
            "Download it here: {receipt_url}\n\n"
            "{nonprofit_name} is a 501(c)(3) tax-exempt organization, "
            "EIN {nonprofit_ein}. Please keep this receipt for your tax records."
            + SIGNATURE
        ),
    },
    "donation_receipt": {
        "subject": "Thank you for your donation to {student_name}",
        "body": (
            "Dear {donor_name},\n\n"
            "Your donation of {amount} to {student_name} was received. "
            "Your tax receipt number is {receipt_number}.\n\n"
            "Download your receipt: {receipt_url}\n\n"
            "No goods or services were provided in exchange for this contribution."
            + SIGNATURE
        ),
    },
    "student_donation_notice": {
        "subject": "You received a new donation!",
        "body": (
            "Dear {first_name},\n\n"
            "{donor_name} just donated {amount} to support your education.\n"
            "{donor_message}\n"
            "See your donations: {frontend_url}/student/dashboard"
            + SIGNATURE
        ),
    },
    "admin_large_donation": {
        "subject": "Large donation received: {amount}",
        "body": (
            "A donation of {amount} was completed.\n\n"
            "Donation ID: {donation_id}\n"
            "Student: {student_name} ({student_email})\n"
            "Donor: {donor_name} ({donor_email})\n"
            "Payment intent: {payment_intent_id}"
        ),
    },
    "verification_request": {
        "subject": "School Verification Request",
        "body": (
            "Hello,\n\n"
            "{student_name} asked to verify their enrollment at {school_name}.\n\n"
            "Please confirm by visiting: {frontend_url}/verify-school/{verification_id}"
            + SIGNATURE
        ),
    },
    "verification_update": {
        "subject": "School Verification Update",
        "body": (
            "Hello,\n\n"
            "Your school verification has been {status}. Reason: {reason}"
            + SIGNATURE
        ),
    },
    "account_status": {
        "subject": "Account Status Update",
        "body": (
            "Dear {first_name},\n\n"
            "Your account status has been updated. Reason: {reason}\n\n"
            "New status: {status}"
            + SIGNATURE
        ),
    },
}


def format_amount(amount: Any) -> str:
    return f"${Decimal(str(amount)):,.2f}"


def receipt_download_url(receipt_number: str) -> str:
    return f"{settings.FRONTEND_URL}/api/receipt/{receipt_number}"


class EmailService:
    """
    Formats and sends the registry emails.

    Args:
        from_email: Sender address, defaults to DEFAULT_FROM_EMAIL
    """

    def __init__(self, from_email: Optional[str] = None) -> None:
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send(self, template: str, to: List[str], **context: Any) -> int:
        """
        Render `template` from the registry and send it.

        Returns:
            Number of messages sent (1)

        Raises:
            KeyError: unknown template or missing placeholder
            Exception: whatever the mail backend raises
        """
        email = EMAILS[template]
        context.setdefault("frontend_url", settings.FRONTEND_URL)
        subject = email["subject"].format(**context)
        body = email["body"].format(**context)
        html = urlize(linebreaks(escape(body)))

        message = EmailMultiAlternatives(
            subject=subject,
            body=body,
            from_email=self.from_email,
            to=to,
        )
        message.attach_alternative(html, "text/html")
        sent = message.send(fail_silently=False)
        logger.info("Sent '%s' email to %s", template, ", ".join(to))
        return sent

    # ---------- registration ----------

    def send_payment_confirmation(self, student, fee, receipt_url: Optional[str] = None) -> int:
        return self.send(
            "payment_confirmation",
            [student.email],
            first_name=student.first_name,
            amount=format_amount(fee.amount),
            receipt_number=fee.receipt_number,
            receipt_url=receipt_url or receipt_download_url(fee.receipt_number),
        )

    def send_welcome(self, student) -> int:
        return self.send(
            "welcome",
            [student.email],
            first_name=student.first_name,
            profile_url=student.profile_url,
        )

    def send_payment_failure(self, email: str, first_name: str) -> int:
        return self.send("payment_failed", [email], first_name=first_name or "there")

    def send_tax_receipt(self, receipt) -> int:
        return self.send(
            "tax_receipt",
            [receipt.donor_email],
            donor_name=receipt.donor_name,
            receipt_number=receipt.receipt_number,
            amount=format_amount(receipt.donation_amount),
            receipt_date=receipt.receipt_date.strftime("%B %d, %Y"),
            receipt_url=receipt_download_url(receipt.receipt_number),
            nonprofit_name=receipt.nonprofit_name,
            nonprofit_ein=receipt.nonprofit_ein,
        )

    # ---------- donations ----------

    def send_donation_receipt(self, donation) -> int:
        return self.send(
            "donation_receipt",
            [donation.donor_email],
            donor_name=donation.donor_legal_name or "Donor",
            student_name=donation.student.full_name,
            amount=format_amount(donation.amount),
            receipt_number=donation.tax_receipt_number,
            receipt_url=receipt_download_url(donation.tax_receipt_number),
        )

    def send_student_donation_notice(self, donation) -> int:
        student = donation.student
        message = donation.donor_message
        return self.send(
            "student_donation_notice",
            [student.email],
            first_name=student.first_name,
            donor_name=donation.donor_name,
            amount=format_amount(donation.amount),
            donor_message=f'Their message: "{message}"\n' if message else "",
        )

    def send_admin_large_donation_alert(self, donation) -> int:
        student = donation.student
        return self.send(
            "admin_large_donation",
            [settings.ADMIN_NOTIFICATION_EMAIL],
            amount=format_amount(donation.amount),
            donation_id=donation.pk,
            student_name=student.full_name,
            student_email=student.email,
            donor_name=donation.donor_name,
            donor_email=donation.donor_email or "n/a",
            payment_intent_id=donation.payment_intent_id or "n/a",
        )

    # ---------- verification / account ----------

    def send_verification_request(self, verification) -> int:
        return self.send(
            "verification_request",
            [verification.verification_email],
            student_name=verification.student.full_name,
            school_name=verification.school.name,
            verification_id=verification.pk,
        )

    def send_verification_update(self, verification) -> int:
        return self.send(
            "verification_update",
            [verification.verification_email],
            status=verification.status,
            reason=verification.rejection_reason or "N/A",
        )

    def send_account_status_update(self, student, status: str, reason: str) -> int:
        return self.send(
            "account_status",
            [student.email],
            first_name=student.first_name,
            status=status,
            reason=reason or "N/A",
        )
