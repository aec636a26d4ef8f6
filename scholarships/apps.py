"""
GradVillage Scholarships Application Configuration

The scholarships application holds the whole product domain: students and
their school verification, donors and donations, registration fees, tax
receipts and the notification outbox.

Author: GradVillage Development Team
Version: 1.0.0
"""

from django.apps import AppConfig


class ScholarshipsConfig(AppConfig):
    """
    Configuration class for the scholarships Django application.

    Attributes:
        default_auto_field: Default primary key field type for models
        name: Application name for Django registration
        verbose_name: Human-readable application name for admin interface
    """

    default_auto_field: str = "django.db.models.BigAutoField"
    name: str = "scholarships"
    verbose_name: str = "GradVillage Scholarships"

    def ready(self) -> None:
        """
        Connect the Stripe webhook receivers and register the outbox handlers.
        Both imports only register callbacks and are safe to repeat.
        """
        super().ready()
        from . import signals  # noqa: F401
        from .notifications import handlers  # noqa: F401
