import logging

from flask import Blueprint, abort, g, request

from marketplace.db import get_session
from marketplace.routes.schemas import CreateOrderSchema, UpdateOrderStatusSchema
from marketplace.routes.utils import (
    auth_required,
    get_config,
    get_dispatcher,
    load_body,
    success_response,
)
from marketplace.services.order_service import OrderService

logger = logging.getLogger(__name__)

orders_bp = Blueprint("orders", __name__)

_create_schema = CreateOrderSchema()
_status_schema = UpdateOrderStatusSchema()


@orders_bp.route("", methods=["POST"])
@auth_required()
def create_order():
    """
    Atomic order placement:
      1. Replay the stored order if this Idempotency-Key was seen before
      2. Reserve stock line by line with conditional UPDATEs (ascending product id)
      3. Create the order and one sub-order per shop
      4. Drop the ordered products from the cart and record an order.placed event
    All steps run inside a single transaction. The confirmation email is sent
    from the outbox after commit and can never fail the order.
    """
    idempotency_key = request.headers.get("Idempotency-Key", "").strip() or None
    if idempotency_key and len(idempotency_key) > 255:
        abort(400, "Idempotency-Key cannot exceed 255 characters.")

    body = load_body(_create_schema)

    with get_session() as session:
        placed = OrderService(session).place_order(
            g.current_user,
            body["products"],
            body["shipping_address"],
            idempotency_key=idempotency_key,
        )

    if not placed.created:
        return success_response(placed.order, message="Order already placed")

    if get_config().outbox.dispatch_inline and placed.event_id is not None:
        try:
            get_dispatcher().dispatch_pending(event_id=placed.event_id)
        except Exception as e:
            # the event stays pending for the next dispatch-outbox run
            logger.error(f"Inline dispatch of event {placed.event_id} failed: {e}")

    return success_response(placed.order, message="Order placed", status=201)


@orders_bp.route("/myorders", methods=["GET"])
@auth_required()
def my_orders():
    with get_session() as session:
        orders = OrderService(session).list_user_orders(g.current_user.id)
    return success_response(orders)


@orders_bp.route("/vendor", methods=["GET"])
@auth_required("vendor", "admin")
def vendor_orders():
    with get_session() as session:
        sub_orders = OrderService(session).list_vendor_orders(g.current_user)
    return success_response(sub_orders)


@orders_bp.route("", methods=["GET"])
@auth_required("admin")
def all_orders():
    with get_session() as session:
        orders = OrderService(session).list_all_orders()
    return success_response(orders)


@orders_bp.route("/<int:order_id>", methods=["GET"])
@auth_required()
def get_order(order_id: int):
    with get_session() as session:
        order = OrderService(session).get_order(g.current_user, order_id)
    return success_response(order)


@orders_bp.route("/<int:sub_order_id>/status", methods=["PUT"])
@auth_required("vendor", "admin")
def update_order_status(sub_order_id: int):
    body = load_body(_status_schema)
    with get_session() as session:
        sub_order = OrderService(session).update_sub_order_status(g.current_user, sub_order_id, body["status"])
    return success_response(sub_order, message="Order status updated")
