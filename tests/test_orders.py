class TestOrderLookup:
    def test_get_by_order_number(self, client, place_order, customer, listing, product):
        created = place_order(product, buyer=customer).json()

        response = client.get(f"/api/orders/{created['orderNumber']}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == created["orderId"]
        assert data["totalPrice"] == 7.0
        assert data["contact"]["email"] == customer.email
        assert data["delivery"]["city"] == "Brno"
        assert data["event"] is None
        assert data["items"][0]["quantity"] == 2

    def test_unknown_order_number(self, client):
        response = client.get("/api/orders/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"message": "Order not found"}
