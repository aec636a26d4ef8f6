"""
Stripe Integration AppConfig
============================

This module defines the Django application configuration for the local
`core.stripe_integration` package. The package has no models; it provides the
payment gateway adapter, the webhook endpoint and the webhook signals.

Operational notes
-----------------
- `apps.py` is executed on every process start; avoid DB/network calls here.
- The gateway is built per use from settings (`get_payment_gateway`), so
  nothing Stripe-related is initialised at import time.

Author: GradVillage Development Team
Date: 2025-09-03
"""

from django.apps import AppConfig


class StripeIntegrationConfig(AppConfig):
    """
    App configuration for the `core.stripe_integration` package.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core.stripe_integration"
    verbose_name = "Stripe Integration"
