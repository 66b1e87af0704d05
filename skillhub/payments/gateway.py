"""
Razorpay gateway calls.

The SDK is synchronous (requests under the hood), so each call runs in a worker
thread and is bounded by an explicit timeout.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import razorpay

from skillhub import config
from skillhub.errors import ConfigurationError, OrderServiceError, ServiceTimeout, VerificationFailed

logger = logging.getLogger(__name__)


class GatewayUnavailable(Exception):
    """Transport-level failure talking to Razorpay"""


class RazorpayGateway:
    def __init__(self, key_id: str, key_secret: str, timeout: float = config.GATEWAY_TIMEOUT_SECONDS):
        if not key_id or not key_secret:
            raise ConfigurationError()
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self.client = razorpay.Client(auth=(key_id, key_secret))

    async def _call(self, func, *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise ServiceTimeout("Razorpay did not respond in time")

    async def create_order(self, order_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await self._call(self.client.order.create, data=order_data)
        except ServiceTimeout:
            raise
        except (razorpay.errors.BadRequestError, razorpay.errors.GatewayError, razorpay.errors.ServerError) as e:
            logger.error(f"❌ Razorpay order creation rejected: {e}")
            raise OrderServiceError(f"Failed to create Razorpay order: {e}")
        except Exception as e:
            logger.error(f"❌ Razorpay order creation failed: {e}", exc_info=True)
            raise GatewayUnavailable(str(e)) from e

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        try:
            return await self._call(self.client.payment.fetch, payment_id)
        except ServiceTimeout:
            raise
        except razorpay.errors.BadRequestError as e:
            raise VerificationFailed(f"Invalid payment ID: {e}")
        except Exception as e:
            logger.error(f"❌ Razorpay payment fetch failed: {e}", exc_info=True)
            raise GatewayUnavailable(str(e)) from e


def get_gateway() -> Optional[RazorpayGateway]:
    """Dependency: gateway built from the current credentials, None when they are missing"""
    if not config.RAZORPAY_KEY_ID or not config.RAZORPAY_KEY_SECRET:
        return None
    return RazorpayGateway(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET)
