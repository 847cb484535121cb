from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Table, Text
from sqlalchemy.orm import relationship

from marketplace.db import Base, BigIntPK

ROLES = ("customer", "vendor", "admin")


wishlist_items = Table(
    "wishlist_items",
    Base.metadata,
    Column("user_id", BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", BigIntPK, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """
    A registered account.

    role decides what the account may do: customers buy, vendors own one shop
    and fulfil its sub-orders, admins see and manage everything.
    """

    __tablename__ = "users"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="customer")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("role IN ('customer','vendor','admin')", name="ck_user_role"),
    )

    shop = relationship("Shop", back_populates="owner", uselist=False)
    wishlist = relationship("Product", secondary=wishlist_items, order_by="Product.id")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
