from flask import Blueprint, g

from marketplace.db import get_session
from marketplace.routes.schemas import AddCartItemSchema, UpdateCartItemSchema
from marketplace.routes.utils import auth_required, load_body, success_response
from marketplace.services.cart_service import CartService

cart_bp = Blueprint("cart", __name__)

_add_schema = AddCartItemSchema()
_update_schema = UpdateCartItemSchema()


@cart_bp.route("", methods=["GET"])
@auth_required()
def get_cart():
    with get_session() as session:
        cart = CartService(session).get_cart(g.current_user.id)
    return success_response(cart)


@cart_bp.route("/add", methods=["POST"])
@auth_required()
def add_to_cart():
    body = load_body(_add_schema)
    with get_session() as session:
        cart = CartService(session).add_item(g.current_user.id, body["product_id"], body["quantity"])
    return success_response(cart, message="Item added to cart")


@cart_bp.route("/update", methods=["PUT"])
@auth_required()
def update_cart_item():
    body = load_body(_update_schema)
    with get_session() as session:
        cart = CartService(session).update_item(g.current_user.id, body["product_id"], body["quantity"])
    return success_response(cart, message="Cart updated")


@cart_bp.route("/remove/<int:product_id>", methods=["DELETE"])
@auth_required()
def remove_from_cart(product_id: int):
    with get_session() as session:
        cart = CartService(session).remove_item(g.current_user.id, product_id)
    return success_response(cart, message="Item removed from cart")


@cart_bp.route("/clear", methods=["DELETE"])
@auth_required()
def clear_cart():
    with get_session() as session:
        cart = CartService(session).clear_cart(g.current_user.id)
    return success_response(cart, message="Cart cleared")
