from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.db import Base, BigIntPK


class Cart(Base):
    """
    A shopping cart belonging to a user.

    A user has exactly one cart (unique user_id), created lazily on first use.
    updated_at is refreshed whenever items are added or removed.
    """

    __tablename__ = "carts"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def get_item(self, product_id: int):
        return next((i for i in self.items if i.product_id == product_id), None)

    def __repr__(self) -> str:
        return f"<Cart id={self.id} user_id={self.user_id}>"


class CartItem(Base):
    """
    A product + quantity pair inside a cart.

    quantity must be > 0 -- removing an item means deleting the row, not
    setting quantity to 0.
    """

    __tablename__ = "cart_items"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    cart_id = Column(
        BigIntPK, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(
        BigIntPK, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity"),
        UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),
    )

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.product.price_cents

    def __repr__(self) -> str:
        return (
            f"<CartItem id={self.id} product_id={self.product_id} "
            f"qty={self.quantity}>"
        )
