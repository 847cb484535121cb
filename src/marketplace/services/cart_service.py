import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.models.cart import Cart, CartItem
from marketplace.repositories.cart_repository import CartRepository
from marketplace.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class CartService:
    """
    Shopping cart business logic service

    Stock is not reserved while items sit in a cart; it is only taken at
    checkout. Quantities are still checked against current stock so the cart
    never promises more than the shop holds.
    """

    max_items_per_cart = 50
    max_quantity_per_item = 99

    def __init__(self, session: Session):
        self.session = session
        self.cart_repo = CartRepository(session)
        self.product_repo = ProductRepository(session)

    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.cart_repo.get_or_create_for_user(user_id)
        return self._to_dict(cart)

    def add_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        """
        Add item to cart with business validation

        Business Rules:
        - Product must exist
        - Adding an existing product increments its quantity
        - Resulting quantity may not exceed stock or the per-item limit
        - At most max_items_per_cart distinct products
        """
        logger.info(f"Adding to cart - user: {user_id}, product: {product_id}, quantity: {quantity}")

        product = self.product_repo.get_by_id(product_id)
        cart = self.cart_repo.get_or_create_for_user(user_id)
        item = cart.get_item(product_id)

        if item is None and len(cart.items) >= self.max_items_per_cart:
            raise ValidationError(f"Cannot add more than {self.max_items_per_cart} different items to cart")

        total_quantity = quantity + (item.quantity if item else 0)
        if total_quantity > self.max_quantity_per_item:
            raise ValidationError(f"Cannot add more than {self.max_quantity_per_item} of the same item")
        if total_quantity > product.stock:
            raise ValidationError(f"Only {product.stock} of {product.name} in stock")

        if item is None:
            item = CartItem(product_id=product.id, quantity=total_quantity)
            item.product = product
            cart.items.append(item)
        else:
            item.quantity = total_quantity
        self.session.flush()

        return self._to_dict(cart)

    def update_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        """Set the quantity of a cart line. Quantity 0 removes the line."""
        cart = self.cart_repo.get_or_create_for_user(user_id)
        item = cart.get_item(product_id)
        if item is None:
            raise NotFoundError("Cart item for product", product_id)

        if quantity == 0:
            return self.remove_item(user_id, product_id)

        if quantity > self.max_quantity_per_item:
            raise ValidationError(f"Quantity cannot exceed {self.max_quantity_per_item}")
        if quantity > item.product.stock:
            raise ValidationError(f"Only {item.product.stock} of {item.product.name} in stock")

        item.quantity = quantity
        self.session.flush()
        return self._to_dict(cart)

    def remove_item(self, user_id: int, product_id: int) -> Dict[str, Any]:
        cart = self.cart_repo.get_or_create_for_user(user_id)
        item = cart.get_item(product_id)
        if item is None:
            raise NotFoundError("Cart item for product", product_id)

        cart.items.remove(item)
        self.session.flush()
        logger.info(f"Removed product {product_id} from cart {cart.id}")
        return self._to_dict(cart)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.cart_repo.get_or_create_for_user(user_id)
        removed = len(cart.items)
        cart.items.clear()
        self.session.flush()
        logger.info(f"Cleared {removed} items from cart {cart.id}")
        return self._to_dict(cart)

    @staticmethod
    def _to_dict(cart: Cart) -> Dict[str, Any]:
        items = [
            {
                "product": item.product_id,
                "name": item.product.name,
                "price_cents": item.product.price_cents,
                "quantity": item.quantity,
                "stock": item.product.stock,
                "line_total_cents": item.line_total_cents,
            }
            for item in cart.items
        ]
        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "items": items,
            "total_items": len(items),
            "total_quantity": sum(i["quantity"] for i in items),
            "total_cents": sum(i["line_total_cents"] for i in items),
        }
