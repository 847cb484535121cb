import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.core.exceptions import (
    ForbiddenError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    ShopUnavailableError,
    ValidationError,
)
from marketplace.core.security import CurrentUser
from marketplace.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    SubOrder,
    SubOrderItem,
    SubOrderStatus,
    can_transition,
)
from marketplace.models.product import Product
from marketplace.repositories.cart_repository import CartRepository
from marketplace.repositories.order_repository import OrderRepository
from marketplace.repositories.outbox_repository import OutboxRepository
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.shop_repository import ShopRepository
from marketplace.schemas.common_schemas import MoneyField
from marketplace.schemas.event_schemas import ORDER_PLACED, OrderPlacedLine, OrderPlacedPayload
from marketplace.utils.formatting_utils import FormattingUtils

logger = logging.getLogger(__name__)


class PlacedOrder:
    """Result of a checkout: the order, whether it was new, and its outbox event"""

    def __init__(self, order: Dict[str, Any], created: bool, event_id: Optional[int] = None):
        self.order = order
        self.created = created
        self.event_id = event_id


def merge_lines(lines: Iterable[Mapping[str, int]]) -> "OrderedDict[int, int]":
    """
    Collapse repeated products into one line each, ordered by product id.

    The ascending order is the lock order used when reserving stock.
    """
    merged: Dict[int, int] = {}
    for line in lines:
        merged[line["product"]] = merged.get(line["product"], 0) + line["quantity"]
    return OrderedDict(sorted(merged.items()))


class OrderService:
    """
    Order placement, fulfilment and order read models

    Business Rules:
    - Checkout is one transaction: stock, order, sub-orders, cart cleanup and
      the outbox event commit or roll back together
    - Stock is taken with a conditional UPDATE, never read-modify-write
    - One sub-order per shop; the parent status is derived from them
    """

    def __init__(self, session: Session):
        self.session = session
        self.order_repo = OrderRepository(session)
        self.product_repo = ProductRepository(session)
        self.shop_repo = ShopRepository(session)
        self.cart_repo = CartRepository(session)
        self.outbox_repo = OutboxRepository(session)

    # ------------------------------------------------------------------ #
    # Placement                                                           #
    # ------------------------------------------------------------------ #
    def place_order(
        self,
        buyer: CurrentUser,
        lines: List[Mapping[str, int]],
        shipping_address: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> PlacedOrder:
        if idempotency_key:
            existing = self.order_repo.get_by_idempotency_key(buyer.id, idempotency_key)
            if existing is not None:
                logger.info(f"Idempotent replay of order {existing.id} for user {buyer.id}")
                return PlacedOrder(existing.to_dict(), created=False)

        if not lines:
            raise ValidationError("No order items")
        if not shipping_address:
            raise ValidationError("Please provide a shipping address")

        merged = merge_lines(lines)
        reserved = self._reserve(merged)
        buckets = self._bucket_by_shop(reserved)

        total_cents = sum(p.price_cents * q for p, q in reserved)
        order = Order(
            user_id=buyer.id,
            status=OrderStatus.PENDING.value,
            total_cents=total_cents,
            shipping_address=dict(shipping_address),
            idempotency_key=idempotency_key,
        )
        order.items = [
            OrderItem(product_id=p.id, quantity=q, price_cents=p.price_cents) for p, q in reserved
        ]
        for shop_id, shop_lines in buckets.items():
            shop = shop_lines[0][0].shop
            sub_order = SubOrder(
                shop_id=shop_id,
                vendor_id=shop.owner_id,
                status=SubOrderStatus.PENDING.value,
                total_cents=sum(p.price_cents * q for p, q in shop_lines),
            )
            sub_order.shop = shop
            sub_order.items = [
                SubOrderItem(product_id=p.id, name=p.name, price_cents=p.price_cents, quantity=q)
                for p, q in shop_lines
            ]
            order.sub_orders.append(sub_order)

        self.order_repo.add(order)
        self.cart_repo.remove_products(buyer.id, merged.keys())

        payload = OrderPlacedPayload(
            order_id=order.id,
            customer_name=buyer.name,
            customer_email=buyer.email,
            total=MoneyField(cents=total_cents),
            sub_order_count=len(order.sub_orders),
            lines=[
                OrderPlacedLine(product_id=p.id, name=p.name, quantity=q, price=MoneyField(cents=p.price_cents))
                for p, q in reserved
            ],
            shipping_to=FormattingUtils.format_address(shipping_address) or None,
        )
        event = self.outbox_repo.record("order", order.id, ORDER_PLACED, payload.model_dump())

        logger.info(
            f"Order {order.id} placed by user {buyer.id}: {len(reserved)} lines, "
            f"{len(order.sub_orders)} sub-orders, total={total_cents}"
        )
        return PlacedOrder(order.to_dict(), created=True, event_id=event.id)

    def _reserve(self, merged: Mapping[int, int]) -> List[Tuple[Product, int]]:
        """Take stock for every line, in ascending product id order."""
        reserved = []
        for product_id, quantity in merged.items():
            product = self.product_repo.get_by_id(product_id)
            if product.shop is None or not product.shop.is_active:
                raise ShopUnavailableError(product.id, product.name)
            if not self.product_repo.reserve_stock(product, quantity):
                logger.warning(f"Insufficient stock for product {product.id}: requested {quantity}")
                raise InsufficientStockError(product.id, product.name, quantity)
            reserved.append((product, quantity))
        return reserved

    @staticmethod
    def _bucket_by_shop(reserved: List[Tuple[Product, int]]) -> "OrderedDict[int, List[Tuple[Product, int]]]":
        buckets: "OrderedDict[int, List[Tuple[Product, int]]]" = OrderedDict()
        for product, quantity in reserved:
            buckets.setdefault(product.shop_id, []).append((product, quantity))
        return buckets

    # ------------------------------------------------------------------ #
    # Fulfilment                                                          #
    # ------------------------------------------------------------------ #
    def update_sub_order_status(self, user: CurrentUser, sub_order_id: int, status: str) -> Dict[str, Any]:
        """
        Move one sub-order along its state machine and refresh the parent.

        Raises:
            ValidationError: Unknown status value
            NotFoundError: No such sub-order
            ForbiddenError: Caller is neither the sub-order's vendor nor an admin
            InvalidStatusTransitionError: Transition not allowed from the current status
        """
        try:
            target = SubOrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status {status!r}")

        sub_order = self.order_repo.get_sub_order(sub_order_id)
        if sub_order is None:
            raise NotFoundError("Order", sub_order_id)

        if sub_order.vendor_id != user.id and not user.is_admin:
            logger.warning(f"User {user.id} denied status update on sub-order {sub_order.id}")
            raise ForbiddenError("Not authorized to update this order")

        current = sub_order.status_enum
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(current.value, target.value)

        sub_order.status = target.value
        if target == SubOrderStatus.CANCELLED:
            for item in sub_order.items:
                if item.product_id is not None:
                    self.product_repo.release_stock(item.product_id, item.quantity)

        order = sub_order.order
        order.refresh_status()
        self.session.flush()

        logger.info(
            f"Sub-order {sub_order.id} {current.value} -> {target.value} by user {user.id}; "
            f"order {order.id} is {order.status}"
        )
        data = sub_order.to_dict()
        data["order_status"] = order.status
        return data

    # ------------------------------------------------------------------ #
    # Read side                                                           #
    # ------------------------------------------------------------------ #
    def list_user_orders(self, user_id: int) -> List[Dict[str, Any]]:
        return [o.to_dict() for o in self.order_repo.list_for_user(user_id)]

    def list_all_orders(self) -> List[Dict[str, Any]]:
        orders = []
        for order in self.order_repo.list_all():
            data = order.to_dict()
            data["user"] = {"id": order.user.id, "name": order.user.name, "email": order.user.email}
            orders.append(data)
        return orders

    def list_vendor_orders(self, user: CurrentUser) -> List[Dict[str, Any]]:
        shop = self.shop_repo.get_by_owner(user.id)
        if shop is None:
            raise NotFoundError("Shop for this vendor")

        sub_orders = []
        for sub_order in self.order_repo.list_sub_orders_for_shop(shop.id):
            data = sub_order.to_dict()
            buyer = sub_order.order.user
            data["buyer"] = {"id": buyer.id, "name": buyer.name, "email": buyer.email}
            data["shipping_address"] = sub_order.order.shipping_address
            data["order_status"] = sub_order.order.status
            sub_orders.append(data)
        return sub_orders

    def get_order(self, user: CurrentUser, order_id: int) -> Dict[str, Any]:
        order = self.order_repo.get_full(order_id)
        # other users' orders are reported as missing
        if order is None or (order.user_id != user.id and not user.is_admin):
            raise NotFoundError("Order", order_id)
        return order.to_dict()
