import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import patch

import pytest
import requests

from core.config import settings
from models.enums import HistoryAction, OrderStatus, PaymentStatus
from models.order import Order
from models.order_history import OrderHistory
from models.payment import Payment
from services import paystack

WEBHOOK_SECRET = "sk_test_market"
CHECKOUT_URL = "https://checkout.paystack.com/abc123"


def _initialized(reference="ref-123"):
    return {
        "status": True,
        "message": "Authorization URL created",
        "data": {"authorization_url": CHECKOUT_URL, "access_code": "abc123", "reference": reference},
    }


def _send_webhook(client, body, secret=WEBHOOK_SECRET):
    payload = json.dumps(body).encode()
    signature = hmac.new(secret.encode(), payload, hashlib.sha512).hexdigest()
    return client.post(
        "/api/checkout/paystack/webhook",
        content=payload,
        headers={"x-paystack-signature": signature, "Content-Type": "application/json"},
    )


def _charge_success(reference="ref-123", amount=700):
    return {"event": "charge.success", "data": {"reference": reference, "amount": amount, "status": "success"}}


@pytest.fixture()
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "PAYSTACK_SECRET_KEY", WEBHOOK_SECRET)


@pytest.fixture()
def order(db, customer, listing, product, place_order):
    return db.get(Order, place_order(product, buyer=customer).json()["orderId"])


@pytest.fixture()
def pending_payment(db, order):
    payment = Payment(order_id=order.id, reference="ref-123", amount=Decimal("7.00"), currency="EUR")
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


class TestPaymentSession:
    """Opening a provider checkout for an order"""

    @patch("services.payments.paystack.initialize_transaction")
    def test_creates_session(self, mock_init, client, db, customer, order):
        mock_init.return_value = _initialized()

        response = client.post("/api/checkout/create-payment-session", json={"orderId": order.id})

        assert response.status_code == 200
        assert response.json() == {"url": CHECKOUT_URL}
        kwargs = mock_init.call_args.kwargs
        assert kwargs["email"] == customer.email
        assert kwargs["amount"] == Decimal("7.00")
        assert kwargs["callback_url"].endswith(f"/payment-success?orderId={order.id}&orderNumber={order.order_number}")
        payment = db.query(Payment).one()
        assert payment.reference == "ref-123"
        assert payment.status == PaymentStatus.INITIALIZED
        assert payment.amount == Decimal("7.00")

    def test_unknown_order(self, client):
        response = client.post("/api/checkout/create-payment-session", json={"orderId": 999})
        assert response.status_code == 404
        assert response.json() == {"message": "Order not found"}

    def test_order_without_price(self, client, db, order):
        order.total_price = Decimal("0")
        db.commit()

        response = client.post("/api/checkout/create-payment-session", json={"orderId": order.id})

        assert response.status_code == 400
        assert response.json() == {"message": "Order has no price"}

    @patch("services.payments.paystack.initialize_transaction")
    def test_provider_unreachable(self, mock_init, client, db, order):
        mock_init.side_effect = requests.ConnectionError("connection refused")

        response = client.post("/api/checkout/create-payment-session", json={"orderId": order.id})

        assert response.status_code == 502
        assert response.json() == {"message": "Failed to create payment session"}
        assert db.query(Payment).count() == 0

    @patch("services.payments.paystack.initialize_transaction")
    def test_provider_refuses(self, mock_init, client, db, order):
        mock_init.return_value = {"status": False, "message": "Currency not supported by merchant"}

        response = client.post("/api/checkout/create-payment-session", json={"orderId": order.id})

        assert response.status_code == 502
        assert db.query(Payment).count() == 0


class TestPaymentLink:
    """The "pay online" link from the confirmation e-mail"""

    @patch("services.payments.paystack.initialize_transaction")
    def test_open_order(self, mock_init, client, order):
        mock_init.return_value = _initialized(reference="ref-link")

        response = client.post(f"/api/checkout/payment-link/{order.id}")

        assert response.status_code == 200
        assert response.json() == {"url": CHECKOUT_URL}

    @patch("services.payments.paystack.initialize_transaction")
    def test_paid_order_is_closed(self, mock_init, client, db, order):
        order.is_paid = True
        db.commit()

        response = client.post(f"/api/checkout/payment-link/{order.id}")

        assert response.status_code == 400
        assert response.json() == {"message": "Order already closed"}
        mock_init.assert_not_called()

    def test_canceled_order_is_closed(self, client, customer, order, auth_headers):
        client.patch(f"/api/checkout/{order.id}/cancel", headers=auth_headers(customer))

        response = client.post(f"/api/checkout/payment-link/{order.id}")

        assert response.status_code == 400
        assert response.json() == {"message": "Order already closed"}

    def test_unknown_order(self, client):
        response = client.post("/api/checkout/payment-link/999")
        assert response.status_code == 404


class TestPaystackWebhook:
    """Provider notifications about completed charges"""

    def test_charge_success_marks_order_paid(
        self, client, db, customer, order, pending_payment, webhook_secret, sent_emails
    ):
        response = _send_webhook(client, _charge_success())

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db.refresh(order)
        assert order.is_paid is True
        assert order.status == OrderStatus.COMPLETED
        assert order.history[-1].action == HistoryAction.ORDER_UPDATED
        assert order.history[-1].message == "Payment confirmed via Paystack"
        db.refresh(pending_payment)
        assert pending_payment.status == PaymentStatus.SUCCESS
        assert sent_emails[-1]["to"] == customer.email
        assert sent_emails[-1]["subject"] == f"Payment received for order #{order.order_number[:8]}"
        assert "Amount paid: 7.00 EUR" in sent_emails[-1]["body"]

    def test_redelivered_event_is_applied_once(self, client, db, order, pending_payment, webhook_secret, sent_emails):
        _send_webhook(client, _charge_success())
        emails_after_first = len(sent_emails)

        response = _send_webhook(client, _charge_success())

        assert response.status_code == 200
        updates = (
            db.query(OrderHistory)
            .filter(OrderHistory.order_id == order.id, OrderHistory.action == HistoryAction.ORDER_UPDATED)
            .count()
        )
        assert updates == 1
        assert len(sent_emails) == emails_after_first

    def test_bad_signature_is_rejected(self, client, db, order, pending_payment, webhook_secret):
        response = _send_webhook(client, _charge_success(), secret="someone-else")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid webhook signature"}
        db.refresh(order)
        assert order.is_paid is False

    def test_unsigned_request_without_secret_configured(self, client, db, order, pending_payment):
        response = client.post("/api/checkout/paystack/webhook", json=_charge_success())

        assert response.status_code == 400
        db.refresh(order)
        assert order.is_paid is False

    def test_amount_mismatch_leaves_order_unpaid(self, client, db, order, pending_payment, webhook_secret):
        response = _send_webhook(client, _charge_success(amount=100))

        assert response.status_code == 200
        db.refresh(order)
        db.refresh(pending_payment)
        assert order.is_paid is False
        assert order.status == OrderStatus.PENDING
        assert pending_payment.status == PaymentStatus.FAILED

    def test_other_events_are_acknowledged(self, client, db, order, pending_payment, webhook_secret):
        response = _send_webhook(client, {"event": "transfer.success", "data": {"reference": "ref-123"}})

        assert response.status_code == 200
        db.refresh(order)
        assert order.is_paid is False

    def test_unknown_reference_is_acknowledged(self, client, db, order, pending_payment, webhook_secret):
        response = _send_webhook(client, _charge_success(reference="ref-unknown"))

        assert response.status_code == 200
        db.refresh(order)
        assert order.is_paid is False


class TestVerifyPayment:
    """Buyer returns from the provider's checkout page"""

    @patch("services.payments.paystack.verify_transaction")
    def test_successful_charge(self, mock_verify, client, db, customer, order, pending_payment, sent_emails):
        mock_verify.return_value = {"status": True, "data": {"status": "success", "reference": "ref-123", "amount": 700}}

        response = client.post("/api/checkout/payment/verify", json={"reference": "ref-123"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["isPaid"] is True
        assert data["amount"] == 7.0
        assert data["orderId"] == order.id
        mock_verify.assert_called_once_with("ref-123")
        assert sent_emails[-1]["to"] == customer.email

    @patch("services.payments.paystack.verify_transaction")
    def test_abandoned_checkout(self, mock_verify, client, db, order, pending_payment):
        mock_verify.return_value = {"status": True, "data": {"status": "abandoned", "reference": "ref-123"}}

        response = client.post("/api/checkout/payment/verify", json={"reference": "ref-123"})

        assert response.status_code == 200
        assert response.json()["status"] == "abandoned"
        assert response.json()["isPaid"] is False
        db.refresh(order)
        assert order.status == OrderStatus.PENDING

    @patch("services.payments.paystack.verify_transaction")
    def test_unknown_reference(self, mock_verify, client):
        response = client.post("/api/checkout/payment/verify", json={"reference": "ref-missing"})

        assert response.status_code == 404
        assert response.json() == {"message": "Payment not found"}
        mock_verify.assert_not_called()


class TestPaystackClient:
    def test_minor_units(self):
        assert paystack.to_minor_units(Decimal("7.00")) == 700
        assert paystack.to_minor_units(0.1) == 10

    def test_signature(self, webhook_secret):
        payload = b'{"event": "charge.success"}'
        good = hmac.new(WEBHOOK_SECRET.encode(), payload, hashlib.sha512).hexdigest()

        assert paystack.verify_signature(payload, good) is True
        assert paystack.verify_signature(payload, "0" * 128) is False
        assert paystack.verify_signature(payload, None) is False

    @patch("services.paystack.requests.post")
    def test_initialize_sends_amount_in_minor_units(self, mock_post):
        mock_post.return_value.json.return_value = _initialized()

        paystack.initialize_transaction("a@example.com", Decimal("7.35"), reference="ref-1")

        body = mock_post.call_args.kwargs["json"]
        assert body["amount"] == 735
        assert body["currency"] == settings.PAYMENT_CURRENCY
        assert body["reference"] == "ref-1"
