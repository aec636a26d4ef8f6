"""
Stripe Integration Package - GradVillage
=============================================================

This package centralizes all Stripe-related logic for the GradVillage backend.
Product code (registration fees, donations) never imports `stripe` directly;
it goes through the gateway adapter defined here.

Current Scope
--------------------
- `StripeGateway` (gateway.py): create / confirm / retrieve PaymentIntents
  and verify webhooks, with the API key injected per instance.
- Webhook endpoint (views.py) and project signals (signals.py) that let
  other apps react to succeeded / failed PaymentIntents.
- Publishable key endpoint for Stripe.js.

Design Rationale
----------------
- Core placement: Located in `core/stripe_integration` so that billing
  is not tied to one product domain.
- No hidden singleton: there is no module-level `stripe.api_key` and no
  cached client. Services receive the gateway through their constructor,
  tests pass a fake with the same methods.
- Errors from the SDK are wrapped in `PaymentGatewayError` so that callers
  can map them to HTTP responses without importing `stripe`.

Structure
---------
- __init__.py     → this file, documentation
- apps.py         → App configuration (`StripeIntegrationConfig`)
- exceptions.py   → Gateway exception hierarchy
- gateway.py      → `StripeGateway` and `get_payment_gateway()`
- signals.py      → payment_intent_succeeded / payment_intent_failed
- views.py        → Config and webhook endpoints
- urls.py         → Routes for Stripe endpoints

Author: GradVillage Development Team
Date: 2025-09-03
"""
