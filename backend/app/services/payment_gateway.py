"""
Razorpay gateway wrapper for maintenance bill collection.

The Razorpay SDK is synchronous (requests based); calls are run in the
default thread pool so the event loop is never blocked.
"""

import asyncio
import hashlib
import hmac
from typing import Any, Dict, Optional

import razorpay

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError, PaymentNotConfiguredError
from app.core.logging_config import logger


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class PaymentGateway:
    """Thin async facade over razorpay.Client"""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        self.currency = currency or settings.PAYMENT_CURRENCY
        self._client: Optional[razorpay.Client] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @property
    def client(self) -> razorpay.Client:
        if not self.is_configured:
            raise PaymentNotConfiguredError()
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    async def _call(self, operation: str, func, *args) -> Dict[str, Any]:
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, func, *args)
        except Exception as e:
            logger.error(f"[Razorpay] {operation} failed: {type(e).__name__}: {e}")
            gateway_status = getattr(e, "status_code", None)
            if "authentication" in str(e).lower():
                raise PaymentGatewayError(
                    "Payment gateway authentication failed. Please check Razorpay credentials.",
                    gateway_status=gateway_status,
                )
            raise PaymentGatewayError(f"Payment gateway error: {e}", gateway_status=gateway_status)

    async def create_order(
        self,
        amount_paise: int,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a Razorpay order (amount in paise)"""
        order_data = {
            "amount": amount_paise,
            "currency": self.currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes or {},
        }
        client = self.client
        order = await self._call("order.create", lambda: client.order.create(data=order_data))
        logger.info(f"[Razorpay] Created order {order.get('id')} for receipt {receipt}")
        return order

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        """Fetch a payment entity from the gateway"""
        client = self.client
        return await self._call("payment.fetch", client.payment.fetch, payment_id)

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checkout signature: HMAC-SHA256(order_id|payment_id, key_secret)"""
        if not (self.key_secret and order_id and payment_id and signature):
            return False
        expected = _hmac_sha256(self.key_secret, f"{order_id}|{payment_id}".encode())
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """Webhook signature: HMAC-SHA256(raw body, webhook_secret)"""
        if not self.webhook_secret or not signature:
            return False
        expected = _hmac_sha256(self.webhook_secret, body)
        return hmac.compare_digest(expected, signature)


_payment_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the shared gateway"""
    global _payment_gateway
    if _payment_gateway is None:
        _payment_gateway = PaymentGateway()
    return _payment_gateway
