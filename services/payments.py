"""Card payments for orders through Paystack.

An order becomes paid only when the provider reports a successful charge for
one of its payment references, either through the signed webhook or through
an explicit verify call made by the payment-success page. Both paths go
through ``record_successful_charge`` and are safe to repeat.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests
from sqlalchemy.orm import Session

from core.config import settings
from core.db import transaction
from models.enums import HistoryAction, OrderStatus, PaymentStatus
from models.order import Order
from models.payment import Payment
from services import paystack
from services.errors import BusinessRuleError, NotFoundError, PaymentProviderError
from services.orders import append_history, to_decimal

logger = logging.getLogger(__name__)

CHARGE_SUCCESS_EVENT = "charge.success"


@dataclass
class PaymentResult:
    payment: Payment
    order: Order
    newly_paid: bool = False


def _return_url(order: Order) -> str:
    return f"{settings.FRONTEND_URL}/payment-success?orderId={order.id}&orderNumber={order.order_number}"


def start_payment(db: Session, order_id: int) -> str:
    """Open a provider checkout for the order's current total and return its URL."""
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.is_paid or order.status == OrderStatus.CANCELED:
        raise BusinessRuleError("Order already closed")
    amount = to_decimal(order.total_price)
    if amount <= 0:
        raise BusinessRuleError("Order has no price")
    if not order.contact_email:
        raise BusinessRuleError("Order has no contact e-mail")

    try:
        resp = paystack.initialize_transaction(
            email=order.contact_email,
            amount=amount,
            callback_url=_return_url(order),
            metadata={"order_id": order.id, "order_number": order.order_number},
        )
    except requests.RequestException as e:
        logger.error("Paystack initialize failed for order %s: %s", order.id, e)
        raise PaymentProviderError("Failed to create payment session") from e

    data = resp.get("data") or {}
    reference = data.get("reference")
    url = data.get("authorization_url")
    if not resp.get("status") or not reference or not url:
        logger.error("Paystack refused to initialize order %s: %s", order.id, resp.get("message"))
        raise PaymentProviderError("Failed to create payment session")

    with transaction(db):
        db.add(
            Payment(
                order_id=order.id,
                provider="paystack",
                reference=reference,
                amount=amount,
                currency=settings.PAYMENT_CURRENCY,
                status=PaymentStatus.INITIALIZED,
                raw_response=resp,
            )
        )

    logger.info("Payment %s started for order %s (%s %s)", reference, order.order_number, amount, settings.PAYMENT_CURRENCY)
    return url


def _lock_payment(db: Session, reference: str) -> tuple[Order, Payment]:
    order_id = db.query(Payment.order_id).filter(Payment.reference == reference).scalar()
    if order_id is None:
        raise NotFoundError("Payment not found")
    order = db.query(Order).filter(Order.id == order_id).with_for_update().populate_existing().one()
    payment = db.query(Payment).filter(Payment.reference == reference).with_for_update().populate_existing().one()
    return order, payment


def record_successful_charge(db: Session, reference: str, charge: Dict[str, Any]) -> PaymentResult:
    order, payment = _lock_payment(db, reference)
    result = PaymentResult(payment=payment, order=order)

    with transaction(db):
        payment.raw_response = charge
        expected = paystack.to_minor_units(payment.amount)
        if charge.get("amount") != expected:
            payment.status = PaymentStatus.FAILED
            logger.warning(
                "Charge %s amount %s does not match expected %s; order %s left unpaid",
                reference, charge.get("amount"), expected, order.order_number,
            )
            return result

        payment.status = PaymentStatus.SUCCESS
        if order.is_paid:
            return result

        order.is_paid = True
        if order.status == OrderStatus.CANCELED:
            logger.warning("Order %s was paid after it had been canceled", order.order_number)
        else:
            order.status = OrderStatus.COMPLETED
        append_history(db, order, HistoryAction.ORDER_UPDATED, "Payment confirmed via Paystack")
        result.newly_paid = True

    logger.info("Order %s paid (reference %s)", order.order_number, reference)
    return result


def verify_payment(db: Session, reference: str) -> PaymentResult:
    """Ask the provider for the outcome of a payment the buyer just returned from."""
    if db.query(Payment.id).filter(Payment.reference == reference).scalar() is None:
        raise NotFoundError("Payment not found")
    try:
        resp = paystack.verify_transaction(reference)
    except requests.RequestException as e:
        logger.error("Paystack verify failed for %s: %s", reference, e)
        raise PaymentProviderError("Unable to verify payment") from e

    data = resp.get("data") or {}
    if resp.get("status") and data.get("status") == PaymentStatus.SUCCESS:
        return record_successful_charge(db, reference, data)

    order, payment = _lock_payment(db, reference)
    with transaction(db):
        payment.raw_response = resp
        if payment.status != PaymentStatus.SUCCESS:
            payment.status = data.get("status") or PaymentStatus.FAILED
    return PaymentResult(payment=payment, order=order)


def handle_webhook(db: Session, payload: bytes, signature: str | None) -> PaymentResult | None:
    """Apply a Paystack webhook delivery. Returns None when nothing was recorded."""
    if not paystack.verify_signature(payload, signature):
        raise BusinessRuleError("Invalid webhook signature")
    try:
        event = json.loads(payload)
    except ValueError:
        event = None
    if not isinstance(event, dict):
        raise BusinessRuleError("Invalid webhook payload")

    if event.get("event") != CHARGE_SUCCESS_EVENT:
        logger.info("Ignoring Paystack event %s", event.get("event"))
        return None

    charge = event.get("data") or {}
    reference = charge.get("reference")
    if not reference:
        logger.error("Paystack %s event without a reference", CHARGE_SUCCESS_EVENT)
        return None
    try:
        return record_successful_charge(db, reference, charge)
    except NotFoundError:
        logger.error("Paystack webhook for unknown payment %s", reference)
        return None
