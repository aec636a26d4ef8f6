"""
Seed Schools Command - GradVillage

Creates or updates the schools students can verify against.

Usage:
    python manage.py seed_schools
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from scholarships.students.models import School

DEFAULT_METHODS = ["email", "document"]

SCHOOLS = [
    ("Harvard University", "harvard.edu"),
    ("Stanford University", "stanford.edu"),
    ("Massachusetts Institute of Technology", "mit.edu"),
    ("University of California, Berkeley", "berkeley.edu"),
    ("Columbia University", "columbia.edu"),
    ("Yale University", "yale.edu"),
    ("Princeton University", "princeton.edu"),
    ("University of Chicago", "uchicago.edu"),
    ("New York University", "nyu.edu"),
    ("University of Pennsylvania", "upenn.edu"),
]


class Command(BaseCommand):
    help = "Create or update the default list of schools"

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for name, domain in SCHOOLS:
            _, created = School.objects.update_or_create(
                name=name,
                defaults={
                    "domain": domain,
                    "verification_methods": DEFAULT_METHODS,
                    "is_active": True,
                },
            )
            created_count += int(created)
            self.stdout.write(f"   {'Created' if created else 'Updated'} {name}")

        self.stdout.write(
            self.style.SUCCESS(
                f"{len(SCHOOLS)} schools ready ({created_count} new, "
                f"{len(SCHOOLS) - created_count} updated)"
            )
        )
