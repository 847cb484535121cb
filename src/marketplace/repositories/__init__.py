from marketplace.repositories.cart_repository import CartRepository
from marketplace.repositories.order_repository import OrderRepository
from marketplace.repositories.outbox_repository import OutboxRepository
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.shop_repository import ShopRepository
from marketplace.repositories.user_repository import UserRepository

__all__ = [
    "CartRepository",
    "OrderRepository",
    "OutboxRepository",
    "ProductRepository",
    "ShopRepository",
    "UserRepository",
]
