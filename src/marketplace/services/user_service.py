import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.core.config import SecurityConfig
from marketplace.core.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from marketplace.core.security import (
    CurrentUser,
    create_access_token,
    hash_password,
    verify_password,
)
from marketplace.models.user import User
from marketplace.repositories.product_repository import ProductRepository
from marketplace.repositories.user_repository import UserRepository
from marketplace.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


class UserService:
    """
    Account business logic: registration, login, profile and wishlist.

    Admin accounts cannot be created through registration; they are seeded.
    """

    def __init__(self, session: Session, security: SecurityConfig):
        self.session = session
        self.security = security
        self.user_repo = UserRepository(session)
        self.product_repo = ProductRepository(session)

    def _auth_payload(self, user: User) -> Dict[str, Any]:
        return {
            "token": create_access_token(user.id, user.role, self.security),
            "user": user.to_dict(),
        }

    def register(self, name: str, email: str, password: str, role: str = "customer") -> Dict[str, Any]:
        if role not in ("customer", "vendor"):
            raise ValidationError(f"Role {role!r} cannot be self-assigned")

        try:
            email = ValidationUtils.normalize_email(email)
        except ValueError:
            raise ValidationError("Please provide a valid email", [{"field": "email", "message": "invalid email"}])

        if not ValidationUtils.validate_password(password):
            raise ValidationError(
                f"Password must be between {ValidationUtils.MIN_PASSWORD_LENGTH} "
                f"and {ValidationUtils.MAX_PASSWORD_LENGTH} characters"
            )

        if self.user_repo.get_by_email(email) is not None:
            raise ConflictError("User already exists", conflict_field="email")

        user = self.user_repo.add(
            User(
                name=ValidationUtils.sanitize_text(name, 100),
                email=email,
                password_hash=hash_password(password, self.security.password_hash_rounds),
                role=role,
            )
        )
        logger.info(f"Registered {role} {user.id} ({email})")
        return self._auth_payload(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        try:
            email = ValidationUtils.normalize_email(email)
        except ValueError:
            raise UnauthorizedError("Invalid credentials")

        user = self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for {email}")
            raise UnauthorizedError("Invalid credentials")

        return self._auth_payload(user)

    def load_current_user(self, user_id: int) -> CurrentUser:
        user = self.user_repo.get(user_id)
        if user is None:
            raise UnauthorizedError("Not authorized, user no longer exists")
        return CurrentUser(id=user.id, name=user.name, email=user.email, role=user.role)

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        user = self.user_repo.get_by_id(user_id)
        data = user.to_dict()
        data["shop"] = user.shop.to_summary() if user.shop else None
        return data

    def update_profile(self, user_id: int, name: str) -> Dict[str, Any]:
        user = self.user_repo.get_by_id(user_id)
        user.name = ValidationUtils.sanitize_text(name, 100)
        self.session.flush()
        return user.to_dict()

    # ------------------------------------------------------------------ #
    # Wishlist                                                            #
    # ------------------------------------------------------------------ #
    def get_wishlist(self, user_id: int) -> List[Dict[str, Any]]:
        user = self.user_repo.get_by_id(user_id)
        return [p.to_dict() for p in user.wishlist]

    def add_to_wishlist(self, user_id: int, product_id: int) -> List[Dict[str, Any]]:
        user = self.user_repo.get_by_id(user_id)
        product = self.product_repo.get_by_id(product_id)
        if product not in user.wishlist:
            user.wishlist.append(product)
            self.session.flush()
        return [p.to_dict() for p in user.wishlist]

    def remove_from_wishlist(self, user_id: int, product_id: int) -> List[Dict[str, Any]]:
        user = self.user_repo.get_by_id(user_id)
        product = next((p for p in user.wishlist if p.id == product_id), None)
        if product is None:
            raise NotFoundError("Wishlist item for product", product_id)
        user.wishlist.remove(product)
        self.session.flush()
        return [p.to_dict() for p in user.wishlist]
