from typing import List, Optional

from sqlalchemy import select

from marketplace.models.shop import Shop
from marketplace.repositories.base import BaseRepository


class ShopRepository(BaseRepository[Shop]):
    model = Shop
    resource_name = "Shop"

    def get_by_owner(self, owner_id: int) -> Optional[Shop]:
        return self.session.execute(
            select(Shop).where(Shop.owner_id == owner_id)
        ).scalar_one_or_none()

    def get_by_name(self, name: str) -> Optional[Shop]:
        return self.session.execute(
            select(Shop).where(Shop.name == name)
        ).scalar_one_or_none()

    def list_shops(self) -> List[Shop]:
        return list(self.session.execute(select(Shop).order_by(Shop.id)).scalars())
