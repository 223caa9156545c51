"""
HTTP client for the Razorpay payment gateway.

Talks to the Razorpay REST API with basic auth (key id / key secret) and
verifies checkout signatures locally.
"""
import hashlib
import hmac
import logging
import random
import re
import time
from typing import Any, Dict, Optional

import httpx

from ..config import RazorpaySettings
from ..exceptions import (
    NotFoundError,
    PaymentUnavailableError,
    SignatureFormatError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TIMEOUT = 10.0  # seconds
SIGNATURE_PATTERN = re.compile(r"[0-9a-fA-F]{64}")  # hex SHA-256 digest


def generate_receipt() -> str:
    return f"receipt_{int(time.time() * 1000)}_{random.randint(0, 9999)}"


class PaymentGateway:
    """Razorpay orders, payments, refunds and signature verification."""

    def __init__(self, settings: RazorpaySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport
        if settings.is_configured:
            logger.info("Razorpay configured successfully")
        else:
            logger.warning(
                "Razorpay credentials not configured or using placeholder values. "
                "Payment functionality will be disabled."
            )

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _ensure_configured(self) -> None:
        if not self._settings.is_configured:
            raise PaymentUnavailableError()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send an authenticated request to the Razorpay API.

        Raises:
            NotFoundError: If Razorpay answers 404
            UpstreamError: On any other error response or network failure
        """
        self._ensure_configured()
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.api_url,
                auth=(self._settings.key_id, self._settings.key_secret),
                timeout=TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Razorpay request {method} {path} failed: {e}")
            raise UpstreamError(f"Razorpay service error: {e}")

        if response.status_code == 404:
            raise NotFoundError(f"Razorpay resource not found: {path}")
        if response.status_code >= 400:
            description = _error_description(response)
            logger.error(f"Razorpay API error on {method} {path}: HTTP {response.status_code} {description}")
            raise UpstreamError(f"Razorpay API Error: {description}")
        return response.json()

    async def create_order(self, amount: float, currency: str = "INR", receipt: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a payment order.

        Args:
            amount: Amount in the smallest currency unit (paise for INR)
            currency: ISO currency code
            receipt: Merchant receipt reference; generated if omitted

        Returns:
            Dict with orderId, amount, currency, receipt, status and created_at
        """
        if not amount or amount <= 0:
            raise ValidationError("Invalid amount. Amount must be greater than zero.")
        self._ensure_configured()

        payload = {
            "amount": int(round(amount)),
            "currency": currency,
            "receipt": receipt or generate_receipt(),
        }
        logger.debug(f"Creating Razorpay order {payload}")
        order = await self._request("POST", "/orders", json=payload)
        logger.info(f"Created Razorpay order {order.get('id')}")
        return {
            "orderId": order.get("id"),
            "amount": order.get("amount"),
            "currency": order.get("currency"),
            "receipt": order.get("receipt"),
            "status": order.get("status"),
            "created_at": order.get("created_at"),
        }

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check a checkout signature: HMAC-SHA256 of "order_id|payment_id" keyed with the key secret.

        Returns:
            True if the signature matches

        Raises:
            SignatureFormatError: If the signature is not a 64 character hex string
        """
        self._ensure_configured()
        if not SIGNATURE_PATTERN.fullmatch(signature):
            raise SignatureFormatError()
        supplied = bytes.fromhex(signature)

        expected = hmac.new(
            self._settings.key_secret.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).digest()
        is_valid = hmac.compare_digest(expected, supplied)
        logger.debug(f"Signature for order {order_id} payment {payment_id} valid: {is_valid}")
        return is_valid

    async def fetch_order(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/orders/{order_id}")

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}")

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[int] = None,
        notes: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Refund a captured payment, fully or partially.

        Args:
            payment_id: Razorpay payment id
            amount: Partial amount in paise; the full payment is refunded if omitted
            notes: Free-form key/value notes stored with the refund
        """
        payload: Dict[str, Any] = {}
        if amount:
            payload["amount"] = amount
        if notes:
            payload["notes"] = notes
        refund = await self._request("POST", f"/payments/{payment_id}/refund", json=payload)
        logger.info(f"Refunded payment {payment_id} (refund {refund.get('id')})")
        return refund


def _error_description(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["description"]
    except (ValueError, KeyError, TypeError):
        return response.text
