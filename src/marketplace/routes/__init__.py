from marketplace.routes.analytics import analytics_bp
from marketplace.routes.auth import auth_bp
from marketplace.routes.cart import cart_bp
from marketplace.routes.orders import orders_bp
from marketplace.routes.products import products_bp
from marketplace.routes.shops import shops_bp
from marketplace.routes.users import users_bp

__all__ = ["analytics_bp", "auth_bp", "cart_bp", "orders_bp", "products_bp", "shops_bp", "users_bp"]
