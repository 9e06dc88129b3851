from models.review import Review


class TestFarmerStats:
    def test_empty_for_farmer_without_products(self, client, other_farmer, auth_headers):
        response = client.get("/api/farmer-stats", headers=auth_headers(other_farmer))

        assert response.status_code == 200
        data = response.json()
        assert data["totals"]["orders"] == 0
        assert data["bestSellers"] == []
        assert data["ratings"] == {"average": None, "totalReviews": 0, "topRated": []}

    def test_sales_and_ratings(
        self, client, db, place_order, customer, other_customer, farmer, listing, product, auth_headers
    ):
        place_order(product, buyer=customer)
        place_order(product, buyer=other_customer, quantity=1)
        db.add_all([
            Review(user_id=customer.id, product_id=product.id, rating=5),
            Review(user_id=other_customer.id, product_id=product.id, rating=3),
        ])
        db.commit()

        response = client.get("/api/farmer-stats", headers=auth_headers(farmer))

        assert response.status_code == 200
        data = response.json()
        totals = data["totals"]
        assert totals["orders"] == 2
        assert totals["preorders"] == 0
        assert totals["itemsSold"] == 3
        assert totals["totalRevenue"] == 10.5
        assert totals["standardRevenue"] == 10.5
        assert totals["avgTicket"] == 5.25
        assert data["bestSellers"] == [{"productId": product.id, "name": "Honey", "quantity": 3, "revenue": 10.5}]
        assert data["ratings"]["average"] == 4.0
        assert data["ratings"]["totalReviews"] == 2
        assert data["ratings"]["topRated"][0]["reviewCount"] == 2

    def test_canceled_items_are_excluded(self, client, place_order, db, customer, farmer, listing, product, auth_headers):
        order_id = place_order(product, buyer=customer).json()["orderId"]
        client.patch(f"/api/checkout/{order_id}/cancel", headers=auth_headers(customer))

        data = client.get("/api/farmer-stats", headers=auth_headers(farmer)).json()

        assert data["totals"]["orders"] == 0
        assert data["totals"]["totalRevenue"] == 0

    def test_customer_is_rejected(self, client, customer, auth_headers):
        response = client.get("/api/farmer-stats", headers=auth_headers(customer))
        assert response.status_code == 403


class TestPublicStats:
    def test_counts(self, client, place_order, customer, farmer, other_farmer, listing, product):
        place_order(product, buyer=customer)

        response = client.get("/api/public-stats")

        assert response.status_code == 200
        assert response.json() == {"farmers": 2, "orders": 1, "preorders": 0}
