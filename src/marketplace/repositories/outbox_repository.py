from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select

from marketplace.models.outbox import OutboxEvent
from marketplace.repositories.base import BaseRepository


class OutboxRepository(BaseRepository[OutboxEvent]):
    """Repository for outbox events"""

    model = OutboxEvent
    resource_name = "Outbox event"

    def record(
        self,
        aggregate_type: str,
        aggregate_id: Any,
        event_type: str,
        payload: Dict[str, Any],
    ) -> OutboxEvent:
        """Stage an event in the caller's transaction."""
        event = OutboxEvent(
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
            event_type=event_type,
            payload=payload,
            status="pending",
            attempts=0,
        )
        return self.add(event)

    def list_dispatchable(self, max_attempts: int, limit: int, event_id: Optional[int] = None) -> List[OutboxEvent]:
        """Pending events and failed ones that still have attempts left, oldest first."""
        stmt = select(OutboxEvent).where(
            or_(
                OutboxEvent.status == "pending",
                (OutboxEvent.status == "failed") & (OutboxEvent.attempts < max_attempts),
            )
        )
        if event_id is not None:
            stmt = stmt.where(OutboxEvent.id == event_id)
        stmt = stmt.order_by(OutboxEvent.created_at, OutboxEvent.id).limit(limit)
        return list(self.session.execute(stmt).scalars())

    def mark_sent(self, event: OutboxEvent) -> None:
        event.status = "sent"
        event.attempts += 1
        event.last_error = None
        event.processed_at = datetime.now(timezone.utc)

    def mark_failed(self, event: OutboxEvent, error: str) -> None:
        event.status = "failed"
        event.attempts += 1
        event.last_error = error[:2000]
