from conftest import place_order


class TestVendorAnalytics:
    def test_counts(self, client, customer, vendor, shop, make_user, make_shop, make_product):
        mouse = make_product(shop, price_cents=1000, stock=20)
        keyboard = make_product(shop, price_cents=2500, stock=20)
        make_product(shop, stock=20)
        elsewhere = make_product(make_shop(make_user("vendor")), price_cents=999, stock=20)

        place_order(client, customer, [(mouse, 2), (keyboard, 1), (elsewhere, 4)])
        place_order(client, customer, [(mouse, 1)])
        place_order(client, customer, [(elsewhere, 1)])

        response = client.get("/api/analytics/vendor", headers=vendor.headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["total_products"] == 3
        assert data["total_orders"] == 2
        assert data["total_items_sold"] == 4
        assert data["total_revenue_cents"] == 2 * 1000 + 2500 + 1000
        assert data["orders_by_status"]["pending"] == 2
        assert data["orders_by_status"]["delivered"] == 0

    def test_cancelled_sub_orders_do_not_count_as_revenue(self, client, customer, vendor, shop, make_product):
        p1 = make_product(shop, price_cents=1000)
        order = place_order(client, customer, [(p1, 1)]).get_json()["data"]
        client.put(
            f"/api/orders/{order['sub_orders'][0]['id']}/status", json={"status": "cancelled"}, headers=vendor.headers
        )

        data = client.get("/api/analytics/vendor", headers=vendor.headers).get_json()["data"]

        assert data["total_revenue_cents"] == 0
        assert data["orders_by_status"]["cancelled"] == 1

    def test_vendor_without_shop(self, client, make_user):
        assert client.get("/api/analytics/vendor", headers=make_user("vendor").headers).status_code == 404

    def test_customer_forbidden(self, client, customer):
        assert client.get("/api/analytics/vendor", headers=customer.headers).status_code == 403


class TestAdminAnalytics:
    def test_totals(self, client, admin, customer, shop, make_product):
        p1 = make_product(shop, price_cents=1500)
        make_product(shop)
        place_order(client, customer, [(p1, 2)])

        response = client.get("/api/analytics/admin", headers=admin.headers)

        assert response.status_code == 200
        assert response.get_json()["data"] == {
            "total_revenue_cents": 3000,
            "total_orders": 1,
            "total_shops": 1,
            "total_products": 2,
            "total_users": 3,
        }

    def test_admin_only(self, client, vendor):
        assert client.get("/api/analytics/admin", headers=vendor.headers).status_code == 403
