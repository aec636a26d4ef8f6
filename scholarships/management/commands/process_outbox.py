"""
Process Outbox Command - GradVillage

Retries outbox messages whose next attempt is due (receipt PDFs, emails).
Meant to run from cron or a scheduler every minute.

Usage:
    python manage.py process_outbox
    python manage.py process_outbox --limit 50
    python manage.py process_outbox --dry-run --verbose

Author: GradVillage Development Team
Version: 1.0.0
"""

from django.core.management.base import BaseCommand, CommandError

from scholarships.notifications.models import OutboxMessage
from scholarships.notifications.outbox import dispatch_message, due_messages


class Command(BaseCommand):
    help = "Dispatch due outbox messages (receipt generation and emails)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum number of messages to process (default: 100)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only list the due messages, do not dispatch them",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Print every message and its outcome",
        )

    def handle(self, *args, **options):
        limit = options["limit"]
        verbose = options["verbose"]
        if limit < 1:
            raise CommandError("--limit must be a positive number")

        messages = list(due_messages(limit=limit))
        if not messages:
            self.stdout.write(self.style.SUCCESS("No due outbox messages"))
            return

        if options["dry_run"]:
            self.stdout.write(
                self.style.WARNING(f"DRY RUN: {len(messages)} messages would be dispatched")
            )
            for message in messages:
                self.stdout.write(
                    f"   - #{message.pk} {message.topic} (attempt {message.attempts + 1})"
                )
            return

        sent = failed = 0
        for message in messages:
            ok = dispatch_message(message)
            if ok:
                sent += 1
            else:
                failed += 1
            if verbose:
                outcome = "sent" if ok else f"failed: {message.last_error}"
                self.stdout.write(f"   - #{message.pk} {message.topic}: {outcome}")

        summary = f"{sent} sent, {failed} failed"
        if failed:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))

        if verbose:
            given_up = OutboxMessage.objects.filter(status=OutboxMessage.Status.FAILED).count()
            self.stdout.write(f"   Messages that exhausted their retries: {given_up}")
