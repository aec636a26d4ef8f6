"""
Outbox

Queue of best-effort side effects (receipt PDFs, emails).

Usage:
    with transaction.atomic():
        ... business writes ...
        messages = [enqueue("email.welcome", student_id=student.pk)]
    dispatch(messages)

`enqueue` only writes a row, so it belongs inside the caller's transaction:
the side effect exists if and only if the business records exist.
`dispatch` runs the registered handler of each message once the
transaction has committed; failures are recorded on the message and retried by
`manage.py process_outbox` with exponential backoff.

Handlers are registered with the `@handler("<topic>")` decorator
(see handlers.py) and receive the JSON payload.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from .models import OutboxMessage

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]

_HANDLERS: Dict[str, Handler] = {}


class UnknownTopicError(LookupError):
    """No handler is registered for the message topic."""


def handler(topic: str) -> Callable[[Handler], Handler]:
    def register(func: Handler) -> Handler:
        _HANDLERS[topic] = func
        return func

    return register


def registered_topics() -> List[str]:
    return sorted(_HANDLERS)


def get_handler(topic: str) -> Handler:
    try:
        return _HANDLERS[topic]
    except KeyError:
        raise UnknownTopicError(f"No outbox handler registered for '{topic}'") from None


def enqueue(topic: str, **payload: Any) -> OutboxMessage:
    """Write a pending message. Call inside the business transaction."""
    return OutboxMessage.objects.create(
        topic=topic,
        payload=payload,
        max_attempts=settings.OUTBOX_MAX_ATTEMPTS,
    )


def dispatch_message(message: OutboxMessage) -> bool:
    """
    Run the handler of one message and record the outcome.

    Returns:
        True when the handler succeeded
    """
    try:
        get_handler(message.topic)(message.payload)
    except Exception as exc:
        logger.exception(
            "Outbox message %s (%s) failed on attempt %s",
            message.pk,
            message.topic,
            message.attempts + 1,
        )
        message.mark_failed_attempt(
            f"{exc.__class__.__name__}: {exc}", settings.OUTBOX_RETRY_BASE_SECONDS
        )
        return False

    message.mark_sent()
    logger.debug("Outbox message %s (%s) sent", message.pk, message.topic)
    return True


def dispatch(messages: Iterable[OutboxMessage]) -> Dict[str, bool]:
    """
    Dispatch messages in order; returns `{topic: succeeded}`.
    """
    results: Dict[str, bool] = {}
    for message in messages:
        if message.status != OutboxMessage.Status.PENDING:
            continue
        results[message.topic] = dispatch_message(message)
    return results


def pending_topics(messages: Iterable[OutboxMessage]) -> List[str]:
    return [m.topic for m in messages if m.status == OutboxMessage.Status.PENDING]


def due_messages(limit: Optional[int] = None, now=None) -> QuerySet:
    """Pending messages whose next attempt time has passed, oldest first."""
    now = now or timezone.now()
    queryset = OutboxMessage.objects.filter(
        status=OutboxMessage.Status.PENDING, next_attempt_at__lte=now
    ).order_by("next_attempt_at", "id")
    if limit:
        queryset = queryset[:limit]
    return queryset
