from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from marketplace.db import Base, BigIntPK

SHOP_STATUSES = ("active", "inactive")


class Shop(Base):
    """
    A vendor's storefront. Each vendor owns at most one shop (unique owner_id).

    Products of an inactive shop stay visible in the catalog but cannot be
    ordered.
    """

    __tablename__ = "shops"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id = Column(BigIntPK, ForeignKey("users.id"), nullable=False, unique=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("status IN ('active','inactive')", name="ck_shop_status"),
    )

    owner = relationship("User", back_populates="shop")
    products = relationship("Product", back_populates="shop", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_summary(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "status": self.status}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"
