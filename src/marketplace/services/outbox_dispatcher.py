import logging
from typing import Any, Callable, Dict, Optional

from marketplace.core.config import OutboxConfig
from marketplace.db import get_session
from marketplace.models.outbox import OutboxEvent
from marketplace.repositories.outbox_repository import OutboxRepository
from marketplace.schemas.event_schemas import ORDER_PLACED, OrderPlacedPayload
from marketplace.services.notification_service import Mailer
from marketplace.utils.formatting_utils import FormattingUtils

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], None]


def order_confirmation_body(payload: OrderPlacedPayload) -> str:
    lines = [
        f"Hi {payload.customer_name},",
        "",
        f"Your order has been placed successfully. Order ID: {payload.order_id}",
        "",
    ]
    for line in payload.lines:
        lines.append(
            f"  {line.quantity} x {line.name} @ {FormattingUtils.format_money(line.price.cents, line.price.currency)}"
        )
    lines.append("")
    lines.append(f"Total: {FormattingUtils.format_money(payload.total.cents, payload.total.currency)}")
    if payload.sub_order_count > 1:
        lines.append(f"Your order ships from {payload.sub_order_count} shops.")
    if payload.shipping_to:
        lines.append(f"Shipping to: {payload.shipping_to}")
    lines.extend(["", "Thanks!"])
    return "\n".join(lines)


class OutboxDispatcher:
    """
    Delivers outbox events to their handlers.

    Every event is handled in its own transaction: a handler failure marks
    that event failed (to be retried on a later run while attempts remain)
    and never touches the others.
    """

    def __init__(self, mailer: Mailer, config: OutboxConfig):
        self.mailer = mailer
        self.config = config
        self.handlers: Dict[str, EventHandler] = {
            ORDER_PLACED: self.send_order_confirmation,
        }

    def register(self, event_type: str, handler: EventHandler) -> None:
        self.handlers[event_type] = handler

    def dispatch_pending(self, event_id: Optional[int] = None) -> Dict[str, int]:
        """
        Process dispatchable events, oldest first.

        Args:
            event_id: restrict the run to a single event (inline dispatch)

        Returns:
            counts of events sent and failed during this run
        """
        with get_session() as session:
            ids = [
                e.id
                for e in OutboxRepository(session).list_dispatchable(
                    self.config.max_attempts, self.config.batch_size, event_id=event_id
                )
            ]

        counts = {"sent": 0, "failed": 0}
        for eid in ids:
            with get_session() as session:
                repo = OutboxRepository(session)
                event = repo.get(eid)
                if event is None or event.status == "sent":
                    continue
                if self._handle(repo, event):
                    repo.mark_sent(event)
                    counts["sent"] += 1
                else:
                    counts["failed"] += 1

        if ids:
            logger.info(f"Outbox run finished: {counts['sent']} sent, {counts['failed']} failed")
        return counts

    def _handle(self, repo: OutboxRepository, event: OutboxEvent) -> bool:
        handler = self.handlers.get(event.event_type)
        if handler is None:
            logger.error(f"No handler for outbox event {event.id} ({event.event_type})")
            repo.mark_failed(event, f"No handler registered for event type {event.event_type!r}")
            # not retryable
            event.attempts = max(event.attempts, self.config.max_attempts)
            return False

        try:
            handler(event.payload)
        except Exception as e:
            logger.error(f"Outbox event {event.id} ({event.event_type}) failed on attempt {event.attempts + 1}: {e}")
            repo.mark_failed(event, f"{type(e).__name__}: {e}")
            return False

        logger.info(f"Dispatched outbox event {event.id} ({event.event_type})")
        return True

    def send_order_confirmation(self, payload: Dict[str, Any]) -> None:
        order = OrderPlacedPayload.model_validate(payload)
        self.mailer.send(order.customer_email, "Order Confirmation", order_confirmation_body(order))
