from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from core.db import get_db
from schemas.payment import PaymentLinkOut, PaymentOut, PaymentSessionIn, PaymentVerifyIn
from services import notifications
from services.payments import handle_webhook, start_payment, verify_payment

router = APIRouter(prefix="/api/checkout", tags=["payments"])


@router.post("/create-payment-session", response_model=PaymentLinkOut)
def create_payment_session(data: PaymentSessionIn, db: Session = Depends(get_db)):
    return PaymentLinkOut(url=start_payment(db, data.order_id))


@router.post("/payment-link/{order_id}", response_model=PaymentLinkOut)
def payment_link(order_id: int, db: Session = Depends(get_db)):
    """Fresh checkout URL for the "pay online" link in the order confirmation"""
    return PaymentLinkOut(url=start_payment(db, order_id))


@router.post("/payment/verify", response_model=PaymentOut)
def confirm_payment(data: PaymentVerifyIn, db: Session = Depends(get_db)):
    result = verify_payment(db, data.reference)
    if result.newly_paid:
        notifications.notify_payment_succeeded(result.order)
    return PaymentOut(
        reference=result.payment.reference,
        status=result.payment.status,
        amount=result.payment.amount,
        currency=result.payment.currency,
        order_id=result.order.id,
        is_paid=result.order.is_paid,
    )


@router.post("/paystack/webhook")
async def paystack_webhook(request: Request, db: Session = Depends(get_db)):
    # The signature covers the raw body, so it is read before any parsing
    payload = await request.body()
    result = await run_in_threadpool(handle_webhook, db, payload, request.headers.get("x-paystack-signature"))
    if result is not None and result.newly_paid:
        await run_in_threadpool(notifications.notify_payment_succeeded, result.order)
    return {"received": True}
