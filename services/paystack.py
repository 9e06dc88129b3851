import hashlib
import hmac
import uuid
from decimal import Decimal
from typing import Any, Dict

import requests

from core.config import settings


PAYSTACK_BASE_URL = "https://api.paystack.co"


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
        "Content-Type": "application/json",
    }


def to_minor_units(amount) -> int:
    """Paystack amounts are integers in the currency's subunit (cents)."""
    return int(round(Decimal(str(amount)) * 100))


def initialize_transaction(
    email: str,
    amount: Decimal,
    currency: str | None = None,
    reference: str | None = None,
    callback_url: str | None = None,
    metadata: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    payload = {
        "email": email,
        "amount": to_minor_units(amount),
        "currency": currency or settings.PAYMENT_CURRENCY,
        "reference": reference or str(uuid.uuid4()),
    }
    if callback_url:
        payload["callback_url"] = callback_url
    if metadata:
        payload["metadata"] = metadata

    resp = requests.post(f"{PAYSTACK_BASE_URL}/transaction/initialize", json=payload, headers=_headers(), timeout=20)
    resp.raise_for_status()
    return resp.json()


def verify_transaction(reference: str) -> Dict[str, Any]:
    resp = requests.get(f"{PAYSTACK_BASE_URL}/transaction/verify/{reference}", headers=_headers(), timeout=20)
    resp.raise_for_status()
    return resp.json()


def verify_signature(payload: bytes, signature: str | None) -> bool:
    """Check the ``x-paystack-signature`` header: HMAC-SHA512 of the raw body keyed by the secret."""
    if not signature or not settings.PAYSTACK_SECRET_KEY:
        return False
    expected = hmac.new(settings.PAYSTACK_SECRET_KEY.encode(), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)
