import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from marketplace.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from marketplace.core.security import CurrentUser
from marketplace.models.shop import Shop
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.shop_repository import ShopRepository
from marketplace.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


class ShopService:
    """
    Vendor onboarding and shop management

    Business Rules:
    - Only vendors open shops, one shop per vendor
    - Shop names are unique
    - Owners edit name/description; only admins change status
    """

    def __init__(self, session: Session):
        self.session = session
        self.shop_repo = ShopRepository(session)
        self.product_repo = ProductRepository(session)

    def shop_for(self, user: CurrentUser) -> Shop:
        """The shop owned by ``user``; NotFoundError if there is none."""
        shop = self.shop_repo.get_by_owner(user.id)
        if shop is None:
            raise NotFoundError("Shop for this vendor")
        return shop

    def create_shop(self, owner: CurrentUser, name: str, description: Optional[str]) -> Dict[str, Any]:
        if not owner.is_vendor:
            raise ForbiddenError("Only vendors can open a shop")
        if self.shop_repo.get_by_owner(owner.id) is not None:
            raise ConflictError("Vendor already owns a shop", conflict_field="owner")

        name = ValidationUtils.sanitize_text(name, 100)
        if self.shop_repo.get_by_name(name) is not None:
            raise ConflictError(f"Shop name {name!r} is taken", conflict_field="name")

        shop = self.shop_repo.add(
            Shop(
                owner_id=owner.id,
                name=name,
                description=ValidationUtils.sanitize_text(description, 2000),
                status="active",
            )
        )
        logger.info(f"Vendor {owner.id} opened shop {shop.id} ({shop.name})")
        return shop.to_dict()

    def list_shops(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.shop_repo.list_shops()]

    def get_shop(self, shop_id: int) -> Dict[str, Any]:
        shop = self.shop_repo.get_by_id(shop_id)
        data = shop.to_dict()
        data["product_count"] = self.product_repo.count_for_shop(shop.id)
        return data

    def update_shop(self, user: CurrentUser, shop_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        shop = self.shop_repo.get_by_id(shop_id)

        if shop.owner_id != user.id and not user.is_admin:
            raise ForbiddenError("Not authorized to update this shop")
        if "status" in changes and not user.is_admin:
            raise ForbiddenError("Only admins can change shop status")

        if "name" in changes and changes["name"] != shop.name:
            name = ValidationUtils.sanitize_text(changes["name"], 100)
            existing = self.shop_repo.get_by_name(name)
            if existing is not None and existing.id != shop.id:
                raise ConflictError(f"Shop name {name!r} is taken", conflict_field="name")
            shop.name = name
        if "description" in changes:
            shop.description = ValidationUtils.sanitize_text(changes["description"], 2000)
        if "status" in changes:
            logger.info(f"Shop {shop.id} status {shop.status} -> {changes['status']} by admin {user.id}")
            shop.status = changes["status"]

        self.session.flush()
        return shop.to_dict()
