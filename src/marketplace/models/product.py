from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from marketplace.db import Base, BigIntPK


class Product(Base):
    """
    A purchasable item sold by exactly one shop.

    price_cents stores the price as an integer number of cents to avoid
    floating-point rounding errors. $19.99 -> 1999.

    stock is only ever changed through conditional UPDATE statements
    (see ProductRepository), never by read-modify-write in Python.
    The CHECK constraint is a last line of defence against going negative.

    rating / num_reviews are a denormalised aggregate of the reviews table,
    recomputed whenever a review is written.
    """

    __tablename__ = "products"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    shop_id = Column(BigIntPK, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)
    num_reviews = Column(Integer, nullable=False, default=0)
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

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_product_price"),
        CheckConstraint("stock >= 0", name="ck_product_stock"),
    )

    shop = relationship("Shop", back_populates="products")
    tag_rows = relationship(
        "ProductTag",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductTag.tag",
    )
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")

    @property
    def tags(self):
        return [t.tag for t in self.tag_rows]

    @property
    def price_dollars(self) -> Decimal:
        return Decimal(self.price_cents) / 100

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price_dollars": str(self.price_dollars),
            "stock": self.stock,
            "in_stock": self.in_stock,
            "tags": self.tags,
            "rating": round(self.rating or 0.0, 2),
            "num_reviews": self.num_reviews,
            "shop": self.shop.to_summary() if self.shop else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"


class ProductTag(Base):
    __tablename__ = "product_tags"

    product_id = Column(
        BigIntPK, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    tag = Column(Text, primary_key=True)

    product = relationship("Product", back_populates="tag_rows")


class Review(Base):
    """A customer's rating of a product. One review per user per product."""

    __tablename__ = "reviews"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(
        BigIntPK, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(BigIntPK, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
        UniqueConstraint("product_id", "user_id", name="uq_review_product_user"),
    )

    product = relationship("Product", back_populates="reviews")
    user = relationship("User")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "name": self.user.name if self.user else None,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
