"""
Seed data -- populates the database with realistic development data.

Run with:
    flask --app marketplace seed          # wipe and re-seed
    flask --app marketplace seed --keep   # seed on top of existing rows

Orders go through OrderService so stock, sub-orders and outbox events are
created exactly as a real checkout would create them.
"""

from sqlalchemy import select

from marketplace.core.config import Config
from marketplace.core.security import CurrentUser, hash_password
from marketplace.db import create_all, drop_all, get_session
from marketplace.models import Product, Shop, User
from marketplace.repositories.product_repository import ProductRepository
from marketplace.services.order_service import OrderService

SEED_PASSWORD = "password123"

USERS = [
    {"name": "Admin User", "email": "admin@example.com", "role": "admin"},
    {"name": "Tech Vendor", "email": "vendor1@example.com", "role": "vendor"},
    {"name": "Decor Vendor", "email": "vendor2@example.com", "role": "vendor"},
    {"name": "Fashion Vendor", "email": "vendor3@example.com", "role": "vendor"},
    {"name": "John Doe", "email": "user@example.com", "role": "customer"},
    {"name": "Jane Smith", "email": "jane@example.com", "role": "customer"},
]

SHOPS = [
    {"owner": "vendor1@example.com", "name": "Tech Haven", "description": "Latest gadgets and electronics"},
    {"owner": "vendor2@example.com", "name": "Rustic Home", "description": "Handmade home decor and furniture"},
    {"owner": "vendor3@example.com", "name": "Trend Boutique", "description": "Modern fashion and accessories"},
]

PRODUCTS = {
    "Tech Haven": [
        ("Pro Wireless Mouse", 8999, "High precision wireless gaming mouse", 50, ["electronics", "accessories"]),
        ("Mechanical Keyboard", 12999, "RGB mechanical keyboard with blue switches", 30, ["electronics", "accessories"]),
        ("4K UltraWide Monitor", 49999, "34-inch curved ultrawide monitor", 15, ["electronics", "displays"]),
        ("Noise Cancelling Headphones", 19999, "Active noise cancellation over-ear headphones", 25, ["electronics", "audio"]),
        ("USB-C Docking Station", 7999, "12-in-1 docking station for laptops", 40, ["electronics", "accessories"]),
    ],
    "Rustic Home": [
        ("Ceramic Table Lamp", 4500, "Handcrafted ceramic lamp with linen shade", 20, ["home", "lighting"]),
        ("Wool Throw Blanket", 6500, "Soft merino wool throw blanket", 50, ["home", "textiles"]),
        ("Scented Soy Candle", 1800, "Lavender and eucalyptus scented candle", 100, ["home", "fragrance"]),
        ("Wall Art Trio", 12000, "Set of 3 abstract landscape prints", 10, ["home", "art"]),
        ("Bamboo Coaster Set", 1500, "Set of 6 natural bamboo coasters", 80, ["home", "kitchen"]),
    ],
    "Trend Boutique": [
        ("Organic Cotton Tee", 2500, "Premium soft organic cotton t-shirt", 200, ["fashion", "tops"]),
        ("Denim Jacket", 8500, "Classic blue denim jacket", 40, ["fashion", "outerwear"]),
        ("Leather Crossbody Bag", 11000, "Italian leather crossbody bag", 15, ["fashion", "bags"]),
        ("Silk Scarf", 4000, "100% pure silk floral pattern scarf", 60, ["fashion", "accessories"]),
        ("Aviator Sunglasses", 15000, "Polarized classic aviator sunglasses", 30, ["fashion", "accessories"]),
    ],
}

ADDRESS = {
    "full_name": "John Doe",
    "address": "12 Market Street",
    "city": "Springfield",
    "postal_code": "12345",
    "country": "USA",
    "phone": None,
}

# (buyer email, [(product name, quantity)], target sub-order status)
ORDERS = [
    ("user@example.com", [("Pro Wireless Mouse", 1), ("Scented Soy Candle", 2)], "delivered"),
    ("jane@example.com", [("Leather Crossbody Bag", 1)], "processing"),
    ("user@example.com", [("USB-C Docking Station", 1)], "pending"),
]

_STATUS_PATH = ["processing", "shipped", "delivered"]


def _path_to(target: str):
    if target not in _STATUS_PATH:
        return []
    return _STATUS_PATH[: _STATUS_PATH.index(target) + 1]


def _as_current(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, name=user.name, email=user.email, role=user.role)


def seed(config: Config, wipe: bool = True) -> None:
    if wipe:
        drop_all()
        create_all()
        print("  [+] Database wiped")

    with get_session() as session:
        users = {}
        password_hash = hash_password(SEED_PASSWORD, config.security.password_hash_rounds)
        for data in USERS:
            user = User(password_hash=password_hash, **data)
            session.add(user)
            users[data["email"]] = user
        session.flush()
        print(f"  [+] Users seeded ({len(users)})")

        product_repo = ProductRepository(session)
        for data in SHOPS:
            shop = Shop(
                owner_id=users[data["owner"]].id,
                name=data["name"],
                description=data["description"],
                status="active",
            )
            session.add(shop)
            session.flush()
            for name, price_cents, description, stock, tags in PRODUCTS[shop.name]:
                product = Product(
                    shop_id=shop.id,
                    name=name,
                    description=description,
                    price_cents=price_cents,
                    stock=stock,
                )
                product.shop = shop
                product_repo.set_tags(product, tags)
                session.add(product)
            print(f"  [+] Shop: {shop.name} ({len(PRODUCTS[shop.name])} products)")
        session.flush()
        admin = _as_current(users["admin@example.com"])
        customers = {email: _as_current(u) for email, u in users.items() if u.role == "customer"}
        product_ids = {p.name: p.id for p in session.execute(select(Product)).scalars()}

    for buyer_email, lines, target in ORDERS:
        with get_session() as session:
            buyer = customers[buyer_email]
            service = OrderService(session)
            order_lines = [
                {"product": product_ids[name], "quantity": qty} for name, qty in lines
            ]
            placed = service.place_order(buyer, order_lines, ADDRESS)

            for sub_order in placed.order["sub_orders"]:
                for status in _path_to(target):
                    service.update_sub_order_status(admin, sub_order["id"], status)

            print(f"  [+] Order for {buyer.name}: ${placed.order['total_cents'] / 100:.2f} ({target})")

    print("\nSeed completed successfully.")
    print("Use these credentials:")
    print(f"  Admin:       admin@example.com / {SEED_PASSWORD}")
    print(f"  Tech Vendor: vendor1@example.com / {SEED_PASSWORD}")
    print(f"  Customer:    user@example.com / {SEED_PASSWORD}")
