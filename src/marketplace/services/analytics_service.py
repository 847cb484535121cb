import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.core.exceptions import NotFoundError
from marketplace.core.security import CurrentUser
from marketplace.repositories.order_repository import OrderRepository
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.shop_repository import ShopRepository
from marketplace.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Read-only aggregates, recomputed on every call"""

    def __init__(self, session: Session):
        self.session = session
        self.order_repo = OrderRepository(session)
        self.product_repo = ProductRepository(session)
        self.shop_repo = ShopRepository(session)
        self.user_repo = UserRepository(session)

    def vendor_summary(self, user: CurrentUser) -> Dict[str, Any]:
        shop = self.shop_repo.get_by_owner(user.id)
        if shop is None:
            raise NotFoundError("Shop for this vendor")

        product_ids = self.product_repo.ids_for_shop(shop.id)
        return {
            "shop": shop.to_summary(),
            "total_products": len(product_ids),
            "total_orders": self.order_repo.count_orders_with_products(product_ids),
            "total_items_sold": self.order_repo.sum_quantity_for_products(product_ids),
            "total_revenue_cents": self.order_repo.revenue_for_shop(shop.id),
            "orders_by_status": self.order_repo.sub_order_status_counts(shop.id),
        }

    def admin_summary(self) -> Dict[str, Any]:
        return {
            "total_revenue_cents": self.order_repo.total_revenue(),
            "total_orders": self.order_repo.count(),
            "total_shops": self.shop_repo.count(),
            "total_products": self.product_repo.count(),
            "total_users": self.user_repo.count(),
        }
