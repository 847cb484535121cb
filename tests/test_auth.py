from datetime import datetime, timedelta, timezone

import jwt

from marketplace.core.security import hash_password, verify_password


def register(client, **overrides):
    body = {"name": "Jane Smith", "email": "Jane@Example.com", "password": "password123"}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


class TestPasswords:
    def test_hash_roundtrip(self):
        hashed = hash_password("password123", rounds=4)

        assert hashed != "password123"
        assert verify_password("password123", hashed)
        assert not verify_password("password124", hashed)

    def test_malformed_hash(self):
        assert verify_password("password123", "not-a-bcrypt-hash") is False


class TestRegister:
    def test_register_customer(self, client):
        response = register(client)

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["user"]["email"] == "jane@example.com"
        assert data["user"]["role"] == "customer"
        assert "password_hash" not in data["user"]
        assert data["token"]

    def test_register_vendor(self, client):
        response = register(client, role="vendor")

        assert response.get_json()["data"]["user"]["role"] == "vendor"

    def test_cannot_self_register_admin(self, client):
        assert register(client, role="admin").status_code == 400

    def test_duplicate_email(self, client):
        register(client)

        response = register(client, email="jane@example.com")

        assert response.status_code == 409
        assert response.get_json()["error"]["code"] == "CONFLICT"

    def test_invalid_email(self, client):
        assert register(client, email="not-an-email").status_code == 400

    def test_short_password(self, client):
        assert register(client, password="short").status_code == 400


class TestLogin:
    def test_login_and_me(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "JANE@example.com", "password": "password123"})

        assert response.status_code == 200
        token = response.get_json()["data"]["token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.get_json()["data"]["name"] == "Jane Smith"
        assert me.get_json()["data"]["shop"] is None

    def test_wrong_password(self, client):
        register(client)

        response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "wrong-password"})

        assert response.status_code == 401

    def test_unknown_user(self, client):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "password123"})

        assert response.status_code == 401


class TestTokens:
    def test_missing_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.get_json()["error"]["message"] == "Not authorized, no token"

    def test_tampered_token(self, client, customer):
        token = customer.headers["Authorization"] + "x"

        assert client.get("/api/auth/me", headers={"Authorization": token}).status_code == 401

    def test_expired_token(self, client, customer, config):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(customer.id), "role": "customer", "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            config.security.jwt_secret_key,
            algorithm="HS256",
        )

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.get_json()["error"]["message"] == "Token has expired"

    def test_request_id_in_envelope(self, client, customer):
        body = client.get("/api/auth/me", headers=customer.headers).get_json()

        assert body["success"] is True
        assert body["request_id"]
        assert body["timestamp"]


class TestProfile:
    def test_update_name(self, client, customer):
        response = client.put("/api/auth/me", json={"name": "Johnny Doe"}, headers=customer.headers)

        assert response.status_code == 200
        assert response.get_json()["data"]["name"] == "Johnny Doe"


class TestWishlist:
    def test_add_list_remove(self, client, customer, shop, make_product):
        p1 = make_product(shop, name="Silk Scarf")

        added = client.post(f"/api/users/me/wishlist/{p1}", headers=customer.headers)
        assert added.status_code == 200
        assert [p["name"] for p in added.get_json()["data"]] == ["Silk Scarf"]

        # adding twice is a no-op
        client.post(f"/api/users/me/wishlist/{p1}", headers=customer.headers)
        listing = client.get("/api/users/me/wishlist", headers=customer.headers).get_json()["data"]
        assert len(listing) == 1

        removed = client.delete(f"/api/users/me/wishlist/{p1}", headers=customer.headers)
        assert removed.get_json()["data"] == []

    def test_unknown_product(self, client, customer):
        assert client.post("/api/users/me/wishlist/777", headers=customer.headers).status_code == 404

    def test_remove_product_not_in_wishlist(self, client, customer, shop, make_product):
        p1 = make_product(shop)

        response = client.delete(f"/api/users/me/wishlist/{p1}", headers=customer.headers)

        assert response.status_code == 404
        assert response.get_json()["error"]["message"] == f"Wishlist item for product {p1} not found"
