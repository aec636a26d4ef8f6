"""
Stripe Webhook Signals
======================

Project-level signals sent by `StripeGateway.handle_webhook` after an event
has been verified. They decouple the gateway adapter from the apps that keep
payment records: the gateway only knows Stripe, the receivers (see
`scholarships.signals`) know Donations and RegistrationFees.

Signals
-------
- payment_intent_succeeded(sender, payment_intent)
- payment_intent_failed(sender, payment_intent)

`payment_intent` is the plain-dict `data.object` of the event.

Receivers are called through `send_robust`: an exception in a receiver is
logged by the gateway and never re-raised, so Stripe does not retry the
delivery because of a local bug.

Author: GradVillage Development Team
Date: 2025-09-03
"""

from django.dispatch import Signal

payment_intent_succeeded = Signal()
payment_intent_failed = Signal()
