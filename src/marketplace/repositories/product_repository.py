import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import joinedload, selectinload

from marketplace.models.product import Product, ProductTag, Review
from marketplace.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ProductRepository(BaseRepository[Product]):
    """Repository for Product, its tags and its reviews"""

    model = Product
    resource_name = "Product"

    def list_products(
        self,
        limit: int,
        after: Optional[int] = None,
        shop_id: Optional[int] = None,
        search_query: Optional[str] = None,
        tag: Optional[str] = None,
        min_price_cents: Optional[int] = None,
        max_price_cents: Optional[int] = None,
        in_stock: Optional[bool] = None,
    ) -> Tuple[List[Product], Optional[int]]:
        """
        List products with filtering and cursor-based pagination

        Fetches one row more than requested to learn whether another page
        exists without a second COUNT query.

        Returns:
            (products, next_cursor) -- next_cursor is None on the last page
        """
        stmt = select(Product).options(joinedload(Product.shop), selectinload(Product.tag_rows))

        if after is not None:
            stmt = stmt.where(Product.id > after)
        if shop_id is not None:
            stmt = stmt.where(Product.shop_id == shop_id)
        if search_query:
            pattern = f"%{search_query}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        if tag:
            stmt = stmt.where(Product.tag_rows.any(ProductTag.tag == tag.lower()))
        if min_price_cents is not None:
            stmt = stmt.where(Product.price_cents >= min_price_cents)
        if max_price_cents is not None:
            stmt = stmt.where(Product.price_cents <= max_price_cents)
        if in_stock is True:
            stmt = stmt.where(Product.stock > 0)
        elif in_stock is False:
            stmt = stmt.where(Product.stock == 0)

        stmt = stmt.order_by(Product.id).limit(limit + 1)
        rows = list(self.session.execute(stmt).scalars())

        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = rows[-1].id
        return rows, next_cursor

    def list_for_shop(self, shop_id: int) -> List[Product]:
        stmt = (
            select(Product)
            .options(joinedload(Product.shop), selectinload(Product.tag_rows))
            .where(Product.shop_id == shop_id)
            .order_by(Product.id)
        )
        return list(self.session.execute(stmt).scalars())

    def ids_for_shop(self, shop_id: int) -> List[int]:
        return list(self.session.execute(select(Product.id).where(Product.shop_id == shop_id)).scalars())

    def count_for_shop(self, shop_id: int) -> int:
        return self.session.execute(
            select(func.count(Product.id)).where(Product.shop_id == shop_id)
        ).scalar_one()

    def set_tags(self, product: Product, tags: Iterable[str]) -> None:
        normalized = sorted({t.strip().lower() for t in tags if t and t.strip()})
        product.tag_rows = [ProductTag(tag=t) for t in normalized]

    # ------------------------------------------------------------------ #
    # Stock                                                               #
    # ------------------------------------------------------------------ #
    def reserve_stock(self, product: Product, quantity: int) -> bool:
        """
        Atomically take ``quantity`` units from stock.

        A single conditional UPDATE (compare-and-decrement): the row is only
        changed if it still holds enough stock at the moment the statement
        runs. Two concurrent checkouts cannot both succeed on the last units;
        the loser sees rowcount 0.

        Returns:
            True if the stock was decremented, False if it was insufficient
        """
        result = self.session.execute(
            update(Product)
            .where(Product.id == product.id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        self.session.expire(product, ["stock", "updated_at"])
        return result.rowcount == 1

    def release_stock(self, product_id: int, quantity: int) -> bool:
        """Return ``quantity`` units to stock. False if the product no longer exists."""
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        product = self.session.identity_map.get(self.session.identity_key(Product, product_id))
        if product is not None:
            self.session.expire(product, ["stock", "updated_at"])
        return result.rowcount == 1

    # ------------------------------------------------------------------ #
    # Reviews                                                             #
    # ------------------------------------------------------------------ #
    def get_review(self, product_id: int, user_id: int) -> Optional[Review]:
        return self.session.execute(
            select(Review).where(Review.product_id == product_id, Review.user_id == user_id)
        ).scalar_one_or_none()

    def list_reviews(self, product_id: int) -> List[Review]:
        stmt = (
            select(Review)
            .options(joinedload(Review.user))
            .where(Review.product_id == product_id)
            .order_by(Review.id)
        )
        return list(self.session.execute(stmt).scalars())

    def refresh_rating(self, product: Product) -> None:
        avg_rating, num_reviews = self.session.execute(
            select(func.avg(Review.rating), func.count(Review.id)).where(Review.product_id == product.id)
        ).one()
        product.rating = float(avg_rating or 0.0)
        product.num_reviews = int(num_reviews)
