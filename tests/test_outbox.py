import pytest
from conftest import place_order

from marketplace.core.config import MailConfig, OutboxConfig
from marketplace.db import get_session
from marketplace.models import OutboxEvent
from marketplace.repositories.outbox_repository import OutboxRepository
from marketplace.schemas.event_schemas import ORDER_PLACED, OrderPlacedPayload
from marketplace.services.notification_service import ConsoleMailer, Mailer, SmtpMailer, build_mailer
from marketplace.services.outbox_dispatcher import OutboxDispatcher


def events():
    with get_session() as session:
        return [e.to_dict() | {"payload": e.payload} for e in session.query(OutboxEvent).order_by(OutboxEvent.id)]


def record(event_type, payload, aggregate_id=1):
    with get_session() as session:
        return OutboxRepository(session).record("order", aggregate_id, event_type, payload).id


class TestOrderPlacedEvent:
    def test_event_recorded_with_order(self, client, customer, shop, make_product, config):
        config.outbox.dispatch_inline = False
        p1 = make_product(shop, price_cents=1250, name="Silk Scarf")

        order = place_order(client, customer, [(p1, 2)]).get_json()["data"]

        [event] = events()
        assert event["event_type"] == ORDER_PLACED
        assert event["aggregate_id"] == str(order["id"])
        assert event["status"] == "pending"
        payload = OrderPlacedPayload.model_validate(event["payload"])
        assert payload.order_id == order["id"]
        assert payload.customer_email == customer.email
        assert payload.total.cents == 2500
        assert payload.sub_order_count == 1
        assert [(l.product_id, l.name, l.quantity) for l in payload.lines] == [(p1, "Silk Scarf", 2)]
        assert payload.shipping_to == "12 Market Street, 12345 Springfield, USA"

    def test_inline_dispatch_marks_event_sent(self, client, customer, shop, make_product):
        place_order(client, customer, [(make_product(shop), 1)])

        [event] = events()
        assert event["status"] == "sent"
        assert event["attempts"] == 1
        assert event["processed_at"] is not None


class TestDispatcher:
    def _payload(self, email="buyer@example.com"):
        return OrderPlacedPayload(
            order_id=7,
            customer_name="Jane Smith",
            customer_email=email,
            total={"cents": 11000},
            sub_order_count=1,
            lines=[{"product_id": 3, "name": "Leather Crossbody Bag", "quantity": 1, "price": {"cents": 11000}}],
        ).model_dump()

    def test_sends_pending_events(self, app, mailer, dispatcher):
        record(ORDER_PLACED, self._payload())

        assert dispatcher.dispatch_pending() == {"sent": 1, "failed": 0}
        assert mailer.sent[0][0] == "buyer@example.com"
        assert "Total: $110.00" in mailer.sent[0][2]
        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 0}

    def test_failed_event_is_retried_until_max_attempts(self, app, mailer):
        dispatcher = OutboxDispatcher(mailer, OutboxConfig(max_attempts=2, batch_size=10))
        record(ORDER_PLACED, self._payload())
        mailer.fail = True

        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 1}
        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 1}
        # attempts exhausted
        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 0}

        [event] = events()
        assert event["status"] == "failed"
        assert event["attempts"] == 2
        assert "ConnectionError" in event["last_error"]

    def test_unknown_event_type_fails_without_retry(self, app, dispatcher):
        record("order.exploded", {"order_id": 1})

        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 1}
        assert dispatcher.dispatch_pending() == {"sent": 0, "failed": 0}
        [event] = events()
        assert event["status"] == "failed"
        assert "No handler registered" in event["last_error"]

    def test_one_failure_does_not_block_others(self, app, mailer, dispatcher):
        record("order.exploded", {"order_id": 1})
        record(ORDER_PLACED, self._payload(), aggregate_id=2)

        assert dispatcher.dispatch_pending() == {"sent": 1, "failed": 1}
        assert [e["status"] for e in events()] == ["failed", "sent"]

    def test_custom_handler(self, app, dispatcher):
        seen = []
        dispatcher.register("shop.opened", seen.append)
        record("shop.opened", {"shop_id": 4})

        assert dispatcher.dispatch_pending() == {"sent": 1, "failed": 0}
        assert seen == [{"shop_id": 4}]

    def test_dispatch_single_event(self, app, mailer, dispatcher):
        first = record(ORDER_PLACED, self._payload("first@example.com"))
        record(ORDER_PLACED, self._payload("second@example.com"))

        assert dispatcher.dispatch_pending(event_id=first) == {"sent": 1, "failed": 0}
        assert [m[0] for m in mailer.sent] == ["first@example.com"]


class TestMailers:
    def test_mailer_is_abstract(self):
        with pytest.raises(TypeError):
            Mailer(MailConfig())

    def test_backend_selection(self):
        assert isinstance(build_mailer(MailConfig(backend="console")), ConsoleMailer)
        assert isinstance(build_mailer(MailConfig(backend="smtp")), SmtpMailer)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_mailer(MailConfig(backend="pigeon"))
