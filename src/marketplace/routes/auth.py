import logging

from flask import Blueprint, g

from marketplace.db import get_session
from marketplace.routes.schemas import LoginSchema, RegisterSchema, UpdateProfileSchema
from marketplace.routes.utils import auth_required, get_config, load_body, success_response
from marketplace.services.user_service import UserService

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

_register_schema = RegisterSchema()
_login_schema = LoginSchema()
_profile_schema = UpdateProfileSchema()


@auth_bp.route("/register", methods=["POST"])
def register():
    body = load_body(_register_schema)
    with get_session() as session:
        result = UserService(session, get_config().security).register(
            name=body["name"], email=body["email"], password=body["password"], role=body["role"]
        )
    return success_response(result, message="Account created", status=201)


@auth_bp.route("/login", methods=["POST"])
def login():
    body = load_body(_login_schema)
    with get_session() as session:
        result = UserService(session, get_config().security).login(body["email"], body["password"])
    return success_response(result)


@auth_bp.route("/me", methods=["GET"])
@auth_required()
def get_me():
    with get_session() as session:
        profile = UserService(session, get_config().security).get_profile(g.current_user.id)
    return success_response(profile)


@auth_bp.route("/me", methods=["PUT"])
@auth_required()
def update_me():
    body = load_body(_profile_schema)
    with get_session() as session:
        profile = UserService(session, get_config().security).update_profile(g.current_user.id, body["name"])
    return success_response(profile, message="Profile updated")
