"""
Razorpay gateway
File: skillcerts/payments/gateway.py

The SDK is synchronous; order creation runs in a worker thread and is
bounded by a timeout so a slow gateway never hangs a request.
"""

import asyncio
import hashlib
import hmac
import logging

import razorpay
import requests

from skillcerts.config import Settings
from skillcerts.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of "<order_id>|<payment_id>" keyed by the key secret"""
    message = f"{order_id}|{payment_id}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str, timeout: float = 10.0):
        self.key_id = key_id
        self._key_secret = key_secret
        self.timeout = timeout
        self._client = razorpay.Client(auth=(key_id, key_secret))

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(settings.razorpay_key_id, settings.razorpay_key_secret, settings.gateway_timeout_seconds)

    async def create_order(self, amount: int, currency: str, receipt: str, notes: dict) -> dict:
        """Create a Razorpay order; amount is in minor units (paise)"""
        order_data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._client.order.create, data=order_data),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error("Razorpay order creation timed out after %ss (receipt %s)", self.timeout, receipt)
            raise ServiceUnavailableError("Payment gateway timed out. Please retry.")
        except razorpay.errors.BadRequestError as e:
            logger.error("Razorpay rejected order %s: %s", receipt, e)
            raise ServiceUnavailableError("Payment gateway rejected the order. Please retry.")
        except (razorpay.errors.ServerError, razorpay.errors.GatewayError) as e:
            logger.error("Razorpay unavailable for order %s: %s", receipt, e)
            raise ServiceUnavailableError("Payment gateway unavailable. Please retry.")
        except requests.exceptions.RequestException as e:
            logger.error("Razorpay unreachable for order %s: %s", receipt, e)
            raise ServiceUnavailableError("Payment gateway unreachable. Please retry.")

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time comparison against the expected signature"""
        expected = compute_signature(self._key_secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode(), signature.encode())
