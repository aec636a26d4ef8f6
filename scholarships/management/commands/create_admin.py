"""
Create Admin Command - GradVillage

Creates the staff user that signs in to the admin API (`userType` admin).

Usage:
    python manage.py create_admin --email admin@gradvillage.com --password '...'
    python manage.py create_admin --email admin@gradvillage.com --password '...' --superuser
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

User = get_user_model()


class Command(BaseCommand):
    help = "Create a GradVillage platform admin (staff user)"

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True)
        parser.add_argument("--password", required=True)
        parser.add_argument("--first-name", default="Platform")
        parser.add_argument("--last-name", default="Admin")
        parser.add_argument(
            "--superuser",
            action="store_true",
            help="Also grant Django admin superuser rights",
        )

    def handle(self, *args, **options):
        email = options["email"].strip()
        if User.objects.filter(username=email).exists():
            raise CommandError(f"A user with the email {email} already exists")

        try:
            validate_password(options["password"])
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages)) from exc

        user = User(
            username=email,
            email=email,
            first_name=options["first_name"],
            last_name=options["last_name"],
            is_staff=True,
            is_superuser=options["superuser"],
        )
        user.set_password(options["password"])
        user.save()

        self.stdout.write(self.style.SUCCESS(f"Admin {email} created (id={user.pk})"))
