"""
Stripe webhook receivers.

The gateway sends `payment_intent_succeeded` / `payment_intent_failed` once a
webhook delivery has been verified. Here they are matched to local records
through the intent metadata:

- `donationId`: donations left in `pending` / `processing` (3-D Secure,
  dropped connection) are completed or failed. Donations already recorded by
  the payment request are left alone, so Stripe retries are harmless.
- `type = registration_fee`: registration fees are recorded synchronously by
  the payment request; a failed intent sends the payment failure email to
  `student_email`.
"""

import logging

from django.db import transaction
from django.dispatch import receiver

from core.stripe_integration.signals import payment_intent_failed, payment_intent_succeeded

from .donations.models import Donation
from .donations.services import DonationService
from .notifications.outbox import dispatch, enqueue
from .students.models import Student

logger = logging.getLogger(__name__)

OPEN_DONATION_STATUSES = (Donation.Status.PENDING, Donation.Status.PROCESSING)


def _metadata(payment_intent):
    return payment_intent.get("metadata") or {}


def _open_donation(donation_id):
    try:
        donation_id = int(donation_id)
    except (TypeError, ValueError):
        logger.warning("Webhook carries an invalid donationId: %r", donation_id)
        return None
    donation = Donation.objects.select_for_update().filter(pk=donation_id).first()
    if donation is None:
        logger.warning("Webhook for unknown donation %s", donation_id)
        return None
    if donation.status not in OPEN_DONATION_STATUSES:
        logger.info("Donation %s already %s, webhook ignored", donation.pk, donation.status)
        return None
    return donation


@receiver(payment_intent_succeeded, dispatch_uid="scholarships.donation_succeeded")
def complete_donation_from_webhook(sender, payment_intent, **kwargs):
    donation_id = _metadata(payment_intent).get("donationId")
    if not donation_id:
        return

    with transaction.atomic():
        donation = _open_donation(donation_id)
        if donation is None:
            return
        _, messages = DonationService().complete_donation(
            donation,
            payment_intent.get("id") or donation.payment_intent_id,
            gateway_response={
                "source": "webhook",
                "status": payment_intent.get("status"),
                "paymentType": "donation",
            },
        )
    dispatch(messages)


@receiver(payment_intent_failed, dispatch_uid="scholarships.payment_failed")
def record_failed_payment(sender, payment_intent, **kwargs):
    metadata = _metadata(payment_intent)
    last_error = payment_intent.get("last_payment_error") or {}
    reason = last_error.get("message") or "Payment failed"

    if metadata.get("donationId"):
        with transaction.atomic():
            donation = _open_donation(metadata["donationId"])
            if donation is not None:
                DonationService().fail_donation(donation, reason)

    if metadata.get("type") == "registration_fee" and metadata.get("student_email"):
        email = metadata["student_email"]
        student = Student.objects.filter(email=email).first()
        message = enqueue(
            "email.payment_failed",
            email=email,
            first_name=student.first_name if student else "",
        )
        dispatch([message])
