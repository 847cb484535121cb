class TestShops:
    def test_vendor_opens_shop(self, client, vendor):
        response = client.post(
            "/api/shops", json={"name": "Trend Boutique", "description": "Modern fashion"}, headers=vendor.headers
        )

        assert response.status_code == 201
        shop = response.get_json()["data"]
        assert shop["owner_id"] == vendor.id
        assert shop["status"] == "active"

    def test_one_shop_per_vendor(self, client, vendor, shop):
        response = client.post("/api/shops", json={"name": "Second Shop"}, headers=vendor.headers)

        assert response.status_code == 409

    def test_names_are_unique(self, client, make_user, shop):
        response = client.post("/api/shops", json={"name": "Tech Haven"}, headers=make_user("vendor").headers)

        assert response.status_code == 409

    def test_customer_cannot_open_shop(self, client, customer):
        assert client.post("/api/shops", json={"name": "Nope"}, headers=customer.headers).status_code == 403

    def test_list_and_get(self, client, shop, make_product):
        make_product(shop)

        assert [s["name"] for s in client.get("/api/shops").get_json()["data"]] == ["Tech Haven"]
        detail = client.get(f"/api/shops/{shop}").get_json()["data"]
        assert detail["product_count"] == 1

    def test_owner_renames_shop(self, client, vendor, shop):
        response = client.put(f"/api/shops/{shop}", json={"name": "Tech Heaven"}, headers=vendor.headers)

        assert response.status_code == 200
        assert response.get_json()["data"]["name"] == "Tech Heaven"

    def test_owner_cannot_change_status(self, client, vendor, shop):
        response = client.put(f"/api/shops/{shop}", json={"status": "inactive"}, headers=vendor.headers)

        assert response.status_code == 403

    def test_admin_deactivates_shop(self, client, admin, shop):
        response = client.put(f"/api/shops/{shop}", json={"status": "inactive"}, headers=admin.headers)

        assert response.status_code == 200
        assert response.get_json()["data"]["status"] == "inactive"

    def test_other_vendor_cannot_edit(self, client, make_user, shop):
        response = client.put(f"/api/shops/{shop}", json={"name": "Mine Now"}, headers=make_user("vendor").headers)

        assert response.status_code == 403
