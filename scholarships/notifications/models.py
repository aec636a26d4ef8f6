"""
Outbox Model

Side effects of a payment (receipt PDF, emails) are not executed inside the
payment transaction. They are written as OutboxMessage rows in the same
atomic block as the business records and dispatched afterwards; failed
messages are retried by the `process_outbox` management command with
exponential backoff.

Author: GradVillage Development Team
Version: 1.0.0
"""

from datetime import timedelta

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class OutboxMessage(models.Model):
    """
    One pending side effect.

    Attributes:
        topic: Handler name, e.g. "receipt.generate" or "email.welcome"
        payload: JSON arguments for the handler (ids, never model instances)
        status: pending → sent, or pending → failed after max_attempts
        attempts: Number of dispatch attempts so far
        next_attempt_at: Earliest time the message may be dispatched again
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SENT = "sent", _("Sent")
        FAILED = "failed", _("Failed")

    topic = models.CharField(max_length=100, db_index=True)
    payload = models.JSONField(default=dict)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=5)
    last_error = models.TextField(blank=True)
    next_attempt_at = models.DateTimeField(default=timezone.now)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Outbox Message")
        verbose_name_plural = _("Outbox Messages")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.topic} #{self.pk} ({self.status}, attempts={self.attempts})"

    def mark_sent(self) -> None:
        self.status = self.Status.SENT
        self.attempts += 1
        self.sent_at = timezone.now()
        self.last_error = ""
        self.save(update_fields=["status", "attempts", "sent_at", "last_error", "updated_at"])

    def mark_failed_attempt(self, error: str, base_delay_seconds: int) -> None:
        """
        Record a failed attempt; reschedule with `base * 2^(attempts-1)`
        seconds, or give up once `max_attempts` is reached.
        """
        self.attempts += 1
        self.last_error = error[:2000]
        if self.attempts >= self.max_attempts:
            self.status = self.Status.FAILED
        else:
            delay = base_delay_seconds * (2 ** (self.attempts - 1))
            self.next_attempt_at = timezone.now() + timedelta(seconds=delay)
        self.save(
            update_fields=[
                "attempts",
                "last_error",
                "status",
                "next_attempt_at",
                "updated_at",
            ]
        )
