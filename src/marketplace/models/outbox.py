from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, Integer, Text

from marketplace.db import Base, BigIntPK


class OutboxEvent(Base):
    """
    A domain event recorded in the same transaction as the change it describes.

    The dispatcher picks up pending/failed rows later and performs the side
    effect (e.g. the confirmation email). Because the row commits or rolls back
    together with the order, an email is never sent for an order that does not
    exist, and a failed email never undoes an order.
    """

    __tablename__ = "outbox_events"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    aggregate_type = Column(Text, nullable=False)
    aggregate_id = Column(Text, nullable=False)
    event_type = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('pending','sent','failed')", name="ck_outbox_status"),
        Index("ix_outbox_status_created", "status", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "aggregate_type": self.aggregate_type,
            "aggregate_id": self.aggregate_id,
            "event_type": self.event_type,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }

    def __repr__(self) -> str:
        return f"<OutboxEvent id={self.id} type={self.event_type!r} status={self.status!r}>"
