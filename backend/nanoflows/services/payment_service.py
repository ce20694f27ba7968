"""
RAZORPAY PAYMENT INTEGRATION
============================
Thin wrapper around the Razorpay SDK.

Flow:
1. Student clicks Buy -> /payments/create-order -> Razorpay order_id
2. Frontend opens Razorpay checkout with order_id
3. Frontend calls /payments/verify with the checkout result
4. Signature is checked here before the course is unlocked
"""

from typing import Any, Dict, Optional
import asyncio
import hashlib
import hmac

import razorpay

from nanoflows.core.config import settings
from nanoflows.core.exceptions import PaymentGatewayError, PaymentNotConfiguredError
from nanoflows.core.logging_config import logger


def rupees_to_paise(amount: float) -> int:
    return int(round(float(amount) * 100))


class PaymentService:

    def __init__(self):
        self._client: Optional[razorpay.Client] = None

    @property
    def is_configured(self) -> bool:
        return settings.payments_enabled

    @property
    def key_id(self) -> str:
        return settings.RAZORPAY_KEY_ID

    @property
    def client(self) -> razorpay.Client:
        if not self.is_configured:
            raise PaymentNotConfiguredError()
        if self._client is None:
            self._client = razorpay.Client(
                auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
            )
        return self._client

    async def create_order(self, amount: int, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a Razorpay order (amount in paise).

        Raises PaymentNotConfiguredError without keys and PaymentGatewayError
        when Razorpay rejects the call.
        """
        client = self.client
        order_data = {
            "amount": amount,
            "currency": settings.PAYMENT_CURRENCY,
            "receipt": receipt[:40],  # Razorpay caps receipts at 40 chars
            "notes": notes or {},
        }

        try:
            # SDK is synchronous, keep it off the event loop
            loop = asyncio.get_running_loop()
            order = await loop.run_in_executor(None, client.order.create, order_data)
        except Exception as e:
            logger.error(f"[Payment] Razorpay order creation failed: {e}")
            raise PaymentGatewayError() from e

        logger.info(f"[Payment] Created Razorpay order {order.get('id')} for {amount} paise")
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256(key_secret, "<order_id>|<payment_id>") == signature"""
        if not self.is_configured:
            raise PaymentNotConfiguredError()

        message = f"{order_id}|{payment_id}"
        expected = hmac.new(
            settings.RAZORPAY_KEY_SECRET.encode('utf-8'),
            message.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected, signature or "")


payment_service = PaymentService()
