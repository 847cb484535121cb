from flask import Blueprint, g

from marketplace.db import get_session
from marketplace.routes.utils import auth_required, get_config, success_response
from marketplace.services.user_service import UserService

users_bp = Blueprint("users", __name__)


@users_bp.route("/me/wishlist", methods=["GET"])
@auth_required()
def get_wishlist():
    with get_session() as session:
        items = UserService(session, get_config().security).get_wishlist(g.current_user.id)
    return success_response(items)


@users_bp.route("/me/wishlist/<int:product_id>", methods=["POST"])
@auth_required()
def add_to_wishlist(product_id: int):
    with get_session() as session:
        items = UserService(session, get_config().security).add_to_wishlist(g.current_user.id, product_id)
    return success_response(items, message="Added to wishlist")


@users_bp.route("/me/wishlist/<int:product_id>", methods=["DELETE"])
@auth_required()
def remove_from_wishlist(product_id: int):
    with get_session() as session:
        items = UserService(session, get_config().security).remove_from_wishlist(g.current_user.id, product_id)
    return success_response(items, message="Removed from wishlist")
