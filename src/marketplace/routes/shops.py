from flask import Blueprint, abort, g

from marketplace.db import get_session
from marketplace.routes.schemas import CreateShopSchema, UpdateShopSchema
from marketplace.routes.utils import auth_required, load_body, success_response
from marketplace.services.shop_service import ShopService

shops_bp = Blueprint("shops", __name__)

_create_schema = CreateShopSchema()
_update_schema = UpdateShopSchema()


@shops_bp.route("", methods=["POST"])
@auth_required("vendor")
def create_shop():
    body = load_body(_create_schema)
    with get_session() as session:
        shop = ShopService(session).create_shop(g.current_user, body["name"], body["description"])
    return success_response(shop, message="Shop created", status=201)


@shops_bp.route("", methods=["GET"])
def list_shops():
    with get_session() as session:
        shops = ShopService(session).list_shops()
    return success_response(shops)


@shops_bp.route("/<int:shop_id>", methods=["GET"])
def get_shop(shop_id: int):
    with get_session() as session:
        shop = ShopService(session).get_shop(shop_id)
    return success_response(shop)


@shops_bp.route("/<int:shop_id>", methods=["PUT"])
@auth_required("vendor", "admin")
def update_shop(shop_id: int):
    changes = load_body(_update_schema)
    if not changes:
        abort(400, "No changes supplied.")
    with get_session() as session:
        shop = ShopService(session).update_shop(g.current_user, shop_id, changes)
    return success_response(shop, message="Shop updated")
