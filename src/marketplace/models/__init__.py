# Re-export all models from a single entry point so the rest of the app
# can import cleanly:
#   from marketplace.models import User, Product, Order
#
# Importing all models here also ensures they are registered with Base.metadata
# before any call to Base.metadata.create_all().

from marketplace.models.cart import Cart, CartItem
from marketplace.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    SubOrder,
    SubOrderItem,
    SubOrderStatus,
)
from marketplace.models.outbox import OutboxEvent
from marketplace.models.product import Product, ProductTag, Review
from marketplace.models.shop import Shop
from marketplace.models.user import User, wishlist_items

__all__ = [
    "User",
    "wishlist_items",
    "Shop",
    "Product",
    "ProductTag",
    "Review",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "SubOrder",
    "SubOrderItem",
    "SubOrderStatus",
    "OutboxEvent",
]
