import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from marketplace.core.config import APIConfig
from marketplace.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from marketplace.core.security import CurrentUser
from marketplace.models.product import Product, Review
from marketplace.models.shop import Shop
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.shop_repository import ShopRepository
from marketplace.schemas.common_schemas import PaginationResponse
from marketplace.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


class ProductService:
    """
    Product business logic service

    Responsibilities:
    - Catalog listing, search and filtering
    - Vendor product management inside the vendor's own shop
    - Reviews and the rating aggregate
    """

    def __init__(self, session: Session, api: APIConfig):
        self.session = session
        self.api = api
        self.product_repo = ProductRepository(session)
        self.shop_repo = ShopRepository(session)

    def list_products(
        self,
        limit: Optional[int] = None,
        after: Optional[int] = None,
        shop_id: Optional[int] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        min_price_cents: Optional[int] = None,
        max_price_cents: Optional[int] = None,
        in_stock: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        List products with filtering and pagination

        Business Rules:
        - Enforce maximum page size
        - Search terms are 2..100 characters
        - Price range must be ordered
        """
        if limit is None:
            limit = self.api.default_page_size
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        if limit > self.api.max_page_size:
            logger.warning(f"Requested limit {limit} exceeds maximum {self.api.max_page_size}")
            limit = self.api.max_page_size

        if search is not None:
            search = search.strip()
            if not 2 <= len(search) <= 100:
                raise ValidationError("Search query must be between 2 and 100 characters")

        for name, value in (("min_price_cents", min_price_cents), ("max_price_cents", max_price_cents)):
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative")
        if (
            min_price_cents is not None
            and max_price_cents is not None
            and min_price_cents > max_price_cents
        ):
            raise ValidationError("min_price_cents cannot be greater than max_price_cents")

        products, next_cursor = self.product_repo.list_products(
            limit=limit,
            after=after,
            shop_id=shop_id,
            search_query=search or None,
            tag=tag,
            min_price_cents=min_price_cents,
            max_price_cents=max_price_cents,
            in_stock=in_stock,
        )

        pagination = PaginationResponse(
            limit=limit,
            count=len(products),
            has_more=next_cursor is not None,
            next_cursor=next_cursor,
        )
        logger.info(f"Listed {len(products)} products (after={after}, has_more={pagination.has_more})")
        return {"items": [p.to_dict() for p in products], "pagination": pagination.model_dump()}

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.product_repo.get_by_id(product_id)
        data = product.to_dict()
        data["reviews"] = [r.to_dict() for r in self.product_repo.list_reviews(product.id)]
        return data

    def list_vendor_products(self, user: CurrentUser) -> List[Dict[str, Any]]:
        shop = self._own_shop(user)
        return [p.to_dict() for p in self.product_repo.list_for_shop(shop.id)]

    # ------------------------------------------------------------------ #
    # Vendor management                                                   #
    # ------------------------------------------------------------------ #
    def create_product(self, user: CurrentUser, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Business Rules:
        - Vendors always create in their own shop
        - Admins name the target shop explicitly
        """
        if user.is_admin and data.get("shop_id") is not None:
            shop = self.shop_repo.get_by_id(data["shop_id"])
        elif user.is_admin:
            raise ValidationError("shop_id is required when an admin creates a product")
        else:
            shop = self._own_shop(user)

        product = Product(
            shop_id=shop.id,
            name=ValidationUtils.sanitize_text(data["name"], 200),
            description=ValidationUtils.sanitize_text(data.get("description"), 5000),
            price_cents=data["price_cents"],
            stock=data.get("stock", 0),
        )
        product.shop = shop
        self.product_repo.set_tags(product, data.get("tags") or [])
        self.product_repo.add(product)

        logger.info(f"User {user.id} created product {product.id} in shop {shop.id}")
        return product.to_dict()

    def update_product(self, user: CurrentUser, product_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        product = self.product_repo.get_by_id(product_id)
        self._check_owner(user, product)

        if "name" in changes:
            product.name = ValidationUtils.sanitize_text(changes["name"], 200)
        if "description" in changes:
            product.description = ValidationUtils.sanitize_text(changes["description"], 5000)
        if "price_cents" in changes:
            product.price_cents = changes["price_cents"]
        if "stock" in changes:
            product.stock = changes["stock"]
        if "tags" in changes:
            self.product_repo.set_tags(product, changes["tags"] or [])

        self.session.flush()
        logger.info(f"User {user.id} updated product {product.id}: {sorted(changes)}")
        return product.to_dict()

    def delete_product(self, user: CurrentUser, product_id: int) -> None:
        product = self.product_repo.get_by_id(product_id)
        self._check_owner(user, product)
        self.product_repo.delete(product)
        logger.info(f"User {user.id} deleted product {product_id}")

    # ------------------------------------------------------------------ #
    # Reviews                                                             #
    # ------------------------------------------------------------------ #
    def add_review(self, user: CurrentUser, product_id: int, rating: int, comment: Optional[str]) -> Dict[str, Any]:
        product = self.product_repo.get_by_id(product_id)
        if self.product_repo.get_review(product.id, user.id) is not None:
            raise ConflictError("Product already reviewed", conflict_field="product")

        review = Review(
            product_id=product.id,
            user_id=user.id,
            rating=rating,
            comment=ValidationUtils.sanitize_text(comment, 2000),
        )
        self.session.add(review)
        self.session.flush()
        self.product_repo.refresh_rating(product)

        logger.info(f"User {user.id} reviewed product {product.id} ({rating}/5)")
        return {
            "review": review.to_dict(),
            "rating": round(product.rating, 2),
            "num_reviews": product.num_reviews,
        }

    # Private helpers
    def _own_shop(self, user: CurrentUser) -> Shop:
        shop = self.shop_repo.get_by_owner(user.id)
        if shop is None:
            raise NotFoundError("Shop for this vendor")
        return shop

    def _check_owner(self, user: CurrentUser, product: Product) -> None:
        if user.is_admin:
            return
        if product.shop is None or product.shop.owner_id != user.id:
            logger.warning(f"User {user.id} denied access to product {product.id}")
            raise ForbiddenError("Not authorized to manage this product")
