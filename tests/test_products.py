import pytest

from marketplace.db import get_session
from marketplace.models import Product


@pytest.fixture()
def catalog(shop, make_user, make_shop, make_product):
    """Five products across two shops."""
    other_shop = make_shop(make_user("vendor"), name="Rustic Home")
    return {
        "mouse": make_product(shop, price_cents=8999, stock=50, name="Pro Wireless Mouse", tags=["electronics"]),
        "keyboard": make_product(shop, price_cents=12999, stock=0, name="Mechanical Keyboard", tags=["Electronics"]),
        "monitor": make_product(shop, price_cents=49999, stock=15, name="4K UltraWide Monitor"),
        "lamp": make_product(other_shop, price_cents=4500, stock=20, name="Ceramic Table Lamp", tags=["home"]),
        "candle": make_product(other_shop, price_cents=1800, stock=100, name="Scented Soy Candle", tags=["home"]),
        "other_shop": other_shop,
    }


def names(response):
    return [p["name"] for p in response.get_json()["data"]["items"]]


class TestListProducts:
    def test_cursor_pagination(self, client, catalog):
        first = client.get("/api/products?limit=2").get_json()["data"]

        assert [p["id"] for p in first["items"]] == [catalog["mouse"], catalog["keyboard"]]
        assert first["pagination"] == {"limit": 2, "count": 2, "has_more": True, "next_cursor": catalog["keyboard"]}

        rest = client.get(f"/api/products?limit=10&after={first['pagination']['next_cursor']}").get_json()["data"]
        assert len(rest["items"]) == 3
        assert rest["pagination"]["has_more"] is False
        assert rest["pagination"]["next_cursor"] is None

    def test_search(self, client, catalog):
        assert names(client.get("/api/products?q=wireless")) == ["Pro Wireless Mouse"]

    def test_search_too_short(self, client, catalog):
        assert client.get("/api/products?q=a").status_code == 400

    def test_filter_by_shop(self, client, catalog):
        response = client.get(f"/api/products?shop={catalog['other_shop']}")

        assert names(response) == ["Ceramic Table Lamp", "Scented Soy Candle"]

    def test_filter_by_tag_is_case_insensitive(self, client, catalog):
        assert names(client.get("/api/products?tag=ELECTRONICS")) == ["Pro Wireless Mouse", "Mechanical Keyboard"]

    def test_price_range(self, client, catalog):
        response = client.get("/api/products?min_price_cents=4000&max_price_cents=10000")

        assert names(response) == ["Pro Wireless Mouse", "Ceramic Table Lamp"]

    def test_inverted_price_range(self, client, catalog):
        assert client.get("/api/products?min_price_cents=500&max_price_cents=100").status_code == 400

    def test_in_stock(self, client, catalog):
        assert "Mechanical Keyboard" not in names(client.get("/api/products?in_stock=true"))
        assert names(client.get("/api/products?in_stock=false")) == ["Mechanical Keyboard"]

    def test_limit_bounds(self, client, catalog):
        assert client.get("/api/products?limit=0").status_code == 400
        assert client.get("/api/products?limit=101").status_code == 400


class TestProductDetail:
    def test_get_product(self, client, catalog):
        response = client.get(f"/api/products/{catalog['mouse']}")

        assert response.status_code == 200
        product = response.get_json()["data"]
        assert product["price_cents"] == 8999
        assert product["price_dollars"] == "89.99"
        assert product["shop"]["name"] == "Tech Haven"
        assert product["tags"] == ["electronics"]
        assert product["reviews"] == []

    def test_missing_product(self, client):
        response = client.get("/api/products/12345")

        assert response.status_code == 404
        assert response.get_json()["error"]["message"] == "Product 12345 not found"


class TestVendorProducts:
    def test_vendor_creates_in_own_shop(self, client, vendor, shop):
        response = client.post(
            "/api/products",
            json={"name": "USB-C Docking Station", "price_cents": 7999, "stock": 40, "tags": ["Electronics", "docks"]},
            headers=vendor.headers,
        )

        assert response.status_code == 201
        product = response.get_json()["data"]
        assert product["shop"]["id"] == shop
        assert product["tags"] == ["docks", "electronics"]

    def test_vendor_without_shop(self, client, make_user):
        response = client.post(
            "/api/products", json={"name": "Orphan", "price_cents": 100}, headers=make_user("vendor").headers
        )

        assert response.status_code == 404

    def test_admin_must_name_shop(self, client, admin, shop):
        body = {"name": "Gift Card", "price_cents": 2500}

        assert client.post("/api/products", json=body, headers=admin.headers).status_code == 400
        response = client.post("/api/products", json={**body, "shop_id": shop}, headers=admin.headers)
        assert response.status_code == 201

    def test_customer_cannot_create(self, client, customer):
        response = client.post("/api/products", json={"name": "Nope", "price_cents": 100}, headers=customer.headers)

        assert response.status_code == 403

    def test_negative_price_rejected(self, client, vendor, shop):
        response = client.post("/api/products", json={"name": "Bad", "price_cents": -1}, headers=vendor.headers)

        assert response.status_code == 400

    def test_list_own_products(self, client, vendor, catalog):
        response = client.get("/api/products/vendor", headers=vendor.headers)

        assert [p["name"] for p in response.get_json()["data"]] == [
            "Pro Wireless Mouse",
            "Mechanical Keyboard",
            "4K UltraWide Monitor",
        ]

    def test_owner_updates_product(self, client, vendor, catalog):
        response = client.put(
            f"/api/products/{catalog['mouse']}", json={"price_cents": 7999, "stock": 45}, headers=vendor.headers
        )

        assert response.status_code == 200
        product = response.get_json()["data"]
        assert product["price_cents"] == 7999
        assert product["stock"] == 45
        assert product["name"] == "Pro Wireless Mouse"

    def test_other_vendor_cannot_update_or_delete(self, client, make_user, catalog):
        intruder = make_user("vendor")

        assert client.put(
            f"/api/products/{catalog['mouse']}", json={"price_cents": 1}, headers=intruder.headers
        ).status_code == 403
        assert client.delete(f"/api/products/{catalog['mouse']}", headers=intruder.headers).status_code == 403

    def test_owner_deletes_product(self, client, vendor, catalog):
        response = client.delete(f"/api/products/{catalog['monitor']}", headers=vendor.headers)

        assert response.status_code == 200
        with get_session() as session:
            assert session.get(Product, catalog["monitor"]) is None


class TestReviews:
    def test_review_updates_rating(self, client, make_user, catalog):
        pid = catalog["lamp"]
        for rating in (5, 4):
            response = client.post(
                f"/api/products/{pid}/review", json={"rating": rating, "comment": "Lovely"}, headers=make_user().headers
            )
            assert response.status_code == 201

        product = client.get(f"/api/products/{pid}").get_json()["data"]
        assert product["rating"] == 4.5
        assert product["num_reviews"] == 2
        assert len(product["reviews"]) == 2

    def test_one_review_per_user(self, client, customer, catalog):
        url = f"/api/products/{catalog['lamp']}/review"

        assert client.post(url, json={"rating": 3}, headers=customer.headers).status_code == 201
        assert client.post(url, json={"rating": 5}, headers=customer.headers).status_code == 409

    def test_rating_range(self, client, customer, catalog):
        response = client.post(f"/api/products/{catalog['lamp']}/review", json={"rating": 6}, headers=customer.headers)

        assert response.status_code == 400
