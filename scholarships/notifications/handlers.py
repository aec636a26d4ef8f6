"""
Outbox handlers.

Each handler loads what it needs by primary key from the payload, so a retry
days later still sees current data. Raising marks the attempt as failed.

Emails that link to a receipt download wait until the receipt PDF has been
issued: they raise `ReceiptNotIssued` and are retried after `receipt.generate`
succeeded.
"""

import logging

from ..donations.models import Donation, RegistrationFee
from ..receipts.models import TaxReceipt
from ..receipts.services import TaxReceiptService
from ..students.models import SchoolVerification, Student
from .outbox import handler
from .services.email_service import EmailService

logger = logging.getLogger(__name__)


class ReceiptNotIssued(RuntimeError):
    """The receipt PDF linked from an email has not been generated yet."""


def ensure_issued(receipt):
    if receipt is not None and not receipt.issued:
        raise ReceiptNotIssued(f"Tax receipt {receipt.receipt_number} is not issued yet")


@handler("receipt.generate")
def generate_receipt(payload):
    receipt = TaxReceipt.objects.get(pk=payload["receipt_id"])
    TaxReceiptService().generate_and_upload_receipt(receipt)


@handler("email.payment_confirmation")
def send_payment_confirmation(payload):
    fee = RegistrationFee.objects.select_related("student").get(pk=payload["fee_id"])
    receipt = TaxReceipt.objects.filter(registration_fee=fee).first()
    receipt_url = receipt.receipt_pdf_url if receipt and receipt.issued else None
    EmailService().send_payment_confirmation(fee.student, fee, receipt_url)


@handler("email.tax_receipt")
def send_tax_receipt(payload):
    receipt = TaxReceipt.objects.get(pk=payload["receipt_id"])
    if not receipt.donor_email:
        logger.info("Tax receipt %s has no donor email, skipping", receipt.receipt_number)
        return
    ensure_issued(receipt)
    EmailService().send_tax_receipt(receipt)


@handler("email.welcome")
def send_welcome(payload):
    EmailService().send_welcome(Student.objects.get(pk=payload["student_id"]))


@handler("email.payment_failed")
def send_payment_failed(payload):
    EmailService().send_payment_failure(payload["email"], payload.get("first_name", ""))


@handler("email.donation_receipt")
def send_donation_receipt(payload):
    donation = Donation.objects.select_related("student").get(pk=payload["donation_id"])
    if not donation.donor_email:
        logger.info("Donation %s has no donor email, skipping receipt", donation.pk)
        return
    ensure_issued(TaxReceipt.objects.filter(donation=donation).first())
    EmailService().send_donation_receipt(donation)


@handler("email.student_donation_notice")
def send_student_donation_notice(payload):
    donation = Donation.objects.select_related("student").get(pk=payload["donation_id"])
    EmailService().send_student_donation_notice(donation)


@handler("email.admin_large_donation")
def send_admin_large_donation(payload):
    donation = Donation.objects.select_related("student").get(pk=payload["donation_id"])
    EmailService().send_admin_large_donation_alert(donation)


@handler("email.verification_request")
def send_verification_request(payload):
    verification = SchoolVerification.objects.select_related("student", "school").get(
        pk=payload["verification_id"]
    )
    EmailService().send_verification_request(verification)


@handler("email.verification_update")
def send_verification_update(payload):
    verification = SchoolVerification.objects.get(pk=payload["verification_id"])
    EmailService().send_verification_update(verification)


@handler("email.account_status")
def send_account_status(payload):
    student = Student.objects.get(pk=payload["student_id"])
    EmailService().send_account_status_update(
        student, payload["status"], payload.get("reason", "")
    )
