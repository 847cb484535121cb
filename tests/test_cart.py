import pytest


def add(client, user, product_id, quantity=1):
    return client.post("/api/cart/add", json={"productId": product_id, "quantity": quantity}, headers=user.headers)


@pytest.fixture()
def product(shop, make_product):
    return make_product(shop, price_cents=1500, stock=10, name="Wool Throw Blanket")


class TestCart:
    def test_empty_cart_created_on_first_read(self, client, customer):
        response = client.get("/api/cart", headers=customer.headers)

        assert response.status_code == 200
        cart = response.get_json()["data"]
        assert cart["items"] == []
        assert cart["total_cents"] == 0

    def test_add_item(self, client, customer, product):
        response = add(client, customer, product, 2)

        assert response.status_code == 200
        cart = response.get_json()["data"]
        assert cart["items"] == [
            {
                "product": product,
                "name": "Wool Throw Blanket",
                "price_cents": 1500,
                "quantity": 2,
                "stock": 10,
                "line_total_cents": 3000,
            }
        ]
        assert cart["total_cents"] == 3000
        assert cart["total_quantity"] == 2

    def test_adding_again_increments(self, client, customer, product):
        add(client, customer, product, 2)
        cart = add(client, customer, product, 3).get_json()["data"]

        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 5

    def test_cannot_exceed_stock(self, client, customer, product):
        add(client, customer, product, 8)

        response = add(client, customer, product, 3)

        assert response.status_code == 400
        cart = client.get("/api/cart", headers=customer.headers).get_json()["data"]
        assert cart["items"][0]["quantity"] == 8

    def test_unknown_product(self, client, customer):
        assert add(client, customer, 999).status_code == 404

    def test_quantity_must_be_positive(self, client, customer, product):
        assert add(client, customer, product, 0).status_code == 400

    def test_update_quantity(self, client, customer, product):
        add(client, customer, product, 1)

        response = client.put(
            "/api/cart/update", json={"productId": product, "quantity": 4}, headers=customer.headers
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["items"][0]["quantity"] == 4

    def test_update_to_zero_removes(self, client, customer, product):
        add(client, customer, product, 1)

        response = client.put(
            "/api/cart/update", json={"productId": product, "quantity": 0}, headers=customer.headers
        )

        assert response.get_json()["data"]["items"] == []

    def test_update_missing_line(self, client, customer, product):
        response = client.put(
            "/api/cart/update", json={"productId": product, "quantity": 2}, headers=customer.headers
        )

        assert response.status_code == 404

    def test_remove_and_clear(self, client, customer, shop, product, make_product):
        other = make_product(shop)
        add(client, customer, product)
        add(client, customer, other)

        removed = client.delete(f"/api/cart/remove/{product}", headers=customer.headers)
        assert [i["product"] for i in removed.get_json()["data"]["items"]] == [other]

        cleared = client.delete("/api/cart/clear", headers=customer.headers)
        assert cleared.get_json()["data"]["items"] == []

    def test_remove_missing_line(self, client, customer, product):
        assert client.delete(f"/api/cart/remove/{product}", headers=customer.headers).status_code == 404

    def test_carts_are_per_user(self, client, make_user, product):
        first, second = make_user("customer"), make_user("customer")
        add(client, first, product, 2)

        cart = client.get("/api/cart", headers=second.headers).get_json()["data"]

        assert cart["items"] == []

    def test_requires_authentication(self, client):
        assert client.get("/api/cart").status_code == 401
