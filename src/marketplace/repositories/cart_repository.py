import logging
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from marketplace.models.cart import Cart, CartItem
from marketplace.models.product import Product
from marketplace.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CartRepository(BaseRepository[Cart]):
    """Repository for per-user carts"""

    model = Cart
    resource_name = "Cart"

    def get_or_create_for_user(self, user_id: int) -> Cart:
        """Return the user's cart, creating an empty one on first use."""
        cart = self.session.execute(
            select(Cart)
            .options(selectinload(Cart.items).selectinload(CartItem.product).selectinload(Product.shop))
            .where(Cart.user_id == user_id)
        ).scalar_one_or_none()

        if cart is None:
            cart = Cart(user_id=user_id)
            self.add(cart)
            logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    def remove_products(self, user_id: int, product_ids: Iterable[int]) -> int:
        """Drop the given products from the user's cart. Returns rows removed."""
        product_ids = list(product_ids)
        if not product_ids:
            return 0

        cart_id = self.session.execute(
            select(Cart.id).where(Cart.user_id == user_id)
        ).scalar_one_or_none()
        if cart_id is None:
            return 0

        result = self.session.execute(
            delete(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.product_id.in_(product_ids))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
