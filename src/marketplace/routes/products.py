import logging

from flask import Blueprint, abort, g, request

from marketplace.db import get_session
from marketplace.routes.schemas import ProductSchema, ReviewSchema
from marketplace.routes.utils import (
    auth_required,
    get_config,
    load_body,
    parse_bool,
    parse_int,
    success_response,
)
from marketplace.services.product_service import ProductService

logger = logging.getLogger(__name__)

products_bp = Blueprint("products", __name__)

_product_schema = ProductSchema()
_review_schema = ReviewSchema()


@products_bp.route("", methods=["GET"])
def list_products():
    """List products with cursor-based pagination, filtering, and search."""
    api = get_config().api
    limit = parse_int(request.args.get("limit"), default=api.default_page_size, min_val=1, max_val=api.max_page_size, field_name="limit")
    after = parse_int(request.args.get("after"), default=None, min_val=1, field_name="after")
    shop_id = parse_int(request.args.get("shop"), default=None, min_val=1, field_name="shop")

    search_query = request.args.get("q", "").strip()
    if search_query and len(search_query) < 2:
        abort(400, "Search query must be at least 2 characters.")
    if search_query and len(search_query) > 100:
        abort(400, "Search query cannot exceed 100 characters.")

    min_price_cents = parse_int(request.args.get("min_price_cents"), default=None, min_val=0, field_name="min_price_cents")
    max_price_cents = parse_int(request.args.get("max_price_cents"), default=None, min_val=0, field_name="max_price_cents")
    in_stock = parse_bool(request.args.get("in_stock"), default=None)
    tag = request.args.get("tag", "").strip() or None

    with get_session() as session:
        page = ProductService(session, api).list_products(
            limit=limit,
            after=after,
            shop_id=shop_id,
            search=search_query or None,
            tag=tag,
            min_price_cents=min_price_cents,
            max_price_cents=max_price_cents,
            in_stock=in_stock,
        )
    return success_response(page)


@products_bp.route("/vendor", methods=["GET"])
@auth_required("vendor", "admin")
def list_vendor_products():
    with get_session() as session:
        products = ProductService(session, get_config().api).list_vendor_products(g.current_user)
    return success_response(products)


@products_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id: int):
    with get_session() as session:
        product = ProductService(session, get_config().api).get_product(product_id)
    return success_response(product)


@products_bp.route("", methods=["POST"])
@auth_required("vendor", "admin")
def create_product():
    body = load_body(_product_schema)
    with get_session() as session:
        product = ProductService(session, get_config().api).create_product(g.current_user, body)
    return success_response(product, message="Product created", status=201)


@products_bp.route("/<int:product_id>", methods=["PUT"])
@auth_required("vendor", "admin")
def update_product(product_id: int):
    changes = load_body(_product_schema, partial=True)
    changes.pop("shop_id", None)
    if not changes:
        abort(400, "No changes supplied.")
    with get_session() as session:
        product = ProductService(session, get_config().api).update_product(g.current_user, product_id, changes)
    return success_response(product, message="Product updated")


@products_bp.route("/<int:product_id>", methods=["DELETE"])
@auth_required("vendor", "admin")
def delete_product(product_id: int):
    with get_session() as session:
        ProductService(session, get_config().api).delete_product(g.current_user, product_id)
    return success_response({"id": product_id}, message="Product removed")


@products_bp.route("/<int:product_id>/review", methods=["POST"])
@auth_required()
def create_review(product_id: int):
    body = load_body(_review_schema)
    with get_session() as session:
        result = ProductService(session, get_config().api).add_review(
            g.current_user, product_id, body["rating"], body["comment"]
        )
    return success_response(result, message="Review added", status=201)
