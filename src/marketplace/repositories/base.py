import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.core.exceptions import NotFoundError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Base repository providing common operations over one mapped class.

    Repositories never commit: the caller owns the unit of work
    (``marketplace.db.get_session``), so several repositories can take part
    in the same transaction.
    """

    model: Type[T]
    resource_name: str = "Resource"

    def __init__(self, session: Session):
        self.session = session

    def get(self, entity_id: int) -> Optional[T]:
        return self.session.get(self.model, entity_id)

    def get_by_id(self, entity_id: int) -> T:
        """
        Get entity by ID

        Raises:
            NotFoundError: When no row has this ID
        """
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.resource_name, entity_id)
        return entity

    def count(self) -> int:
        return self.session.execute(select(func.count()).select_from(self.model)).scalar_one()

    def add(self, entity: T) -> T:
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: T) -> None:
        self.session.delete(entity)
        self.session.flush()
