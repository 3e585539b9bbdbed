"""
Payment Gateway Protocol and the PortOne (Toss Pay) implementation.

The interactive checkout itself (a hosted payment window) happens outside
this process; PortOneGateway builds the request and hands it to an injected
checkout bridge that returns the gateway's raw response.
"""

import secrets
import string
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from urllib.parse import quote, urlencode

from structlog import get_logger

from vibing.config import settings

logger = get_logger(__name__)

CURRENCY_KRW = "CURRENCY_KRW"
PAY_METHOD_EASY_PAY = "EASY_PAY"
CHECKOUT_EXPIRY = timedelta(minutes=15)
NO_RESPONSE_MESSAGE = "No response from payment service"

_BASE36 = string.digits + string.ascii_lowercase

CheckoutBridge = Callable[[dict[str, Any]], Awaitable[dict[str, Any] | None]]


def generate_payment_id(now_ms: int | None = None) -> str:
    """payment-<epoch ms>-<9 random base36 chars>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"payment-{now_ms}-{suffix}"


def order_name_for(title: str) -> str:
    return f"{title} - Vibing Marketplace"


@dataclass(frozen=True)
class PaymentRequest:
    """A single checkout for one product, amount already in KRW."""

    payment_id: str
    order_name: str
    amount_krw: int
    customer_email: str
    customer_name: str = "Test User"
    customer_phone: str | None = None


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of either checkout phase."""

    success: bool
    payment_id: str | None = None
    transaction_id: str | None = None
    amount: int | None = None
    status: str | None = None
    error_code: str | None = None
    error_message: str | None = None


class PaymentGateway(Protocol):
    """Anything that can take a customer through an interactive payment."""

    async def request_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Run the interactive payment.

        Returns:
            A successful result carrying the gateway payment id, or a failed
            result carrying the gateway's error code and message. Never raises
            for a declined or abandoned payment.
        """
        ...


class PortOneGateway:
    """PortOne v2 checkout over EASY_PAY (Toss Pay) in KRW."""

    def __init__(
        self,
        checkout: CheckoutBridge,
        store_id: str | None = None,
        channel_key: str | None = None,
        origin: str | None = None,
    ) -> None:
        self.checkout = checkout
        self.store_id = store_id or settings.portone_store_id
        self.channel_key = channel_key or settings.portone_channel_key
        self.origin = (origin or settings.app_origin).rstrip("/")

    def redirect_url(self, request: PaymentRequest) -> str:
        query = urlencode(
            {
                "payment_id": request.payment_id,
                "order_name": request.order_name,
                "amount": request.amount_krw,
                "customer_email": request.customer_email,
            },
            quote_via=quote,
        )
        return f"{self.origin}/purchase/success?{query}"

    def build_checkout(self, request: PaymentRequest, now: datetime | None = None) -> dict[str, Any]:
        now = now or datetime.now(UTC)
        customer: dict[str, str] = {
            "customerId": request.customer_email,
            "fullName": request.customer_name,
            "email": request.customer_email,
        }
        if request.customer_phone:
            customer["phoneNumber"] = request.customer_phone

        return {
            "storeId": self.store_id,
            "channelKey": self.channel_key,
            "paymentId": request.payment_id,
            "orderName": request.order_name,
            "totalAmount": request.amount_krw,
            "currency": CURRENCY_KRW,
            "payMethod": PAY_METHOD_EASY_PAY,
            "customer": customer,
            "redirectUrl": self.redirect_url(request),
            "noticeUrls": [f"{self.origin}/api/payments/webhook"],
            "bypass": {
                "tosspay_v2": {
                    "expiredTime": (now + CHECKOUT_EXPIRY).strftime("%Y-%m-%d %H:%M:%S"),
                    "cashReceiptTradeOption": "GENERAL",
                }
            },
        }

    async def request_payment(self, request: PaymentRequest) -> PaymentResult:
        logger.info(
            "requesting_portone_payment",
            payment_id=request.payment_id,
            amount_krw=request.amount_krw,
        )
        response = await self.checkout(self.build_checkout(request))
        return self.interpret_response(request, response)

    @staticmethod
    def interpret_response(
        request: PaymentRequest, response: dict[str, Any] | None
    ) -> PaymentResult:
        if response is None:
            logger.warning("portone_no_response", payment_id=request.payment_id)
            return PaymentResult(success=False, error_message=NO_RESPONSE_MESSAGE)

        if response.get("code") is not None:
            logger.warning(
                "portone_payment_failed",
                payment_id=request.payment_id,
                code=response.get("code"),
                message=response.get("message"),
            )
            return PaymentResult(
                success=False,
                error_code=str(response["code"]),
                error_message=response.get("message"),
            )

        # The gateway echoes no amount; report what was charged.
        return PaymentResult(
            success=True,
            payment_id=response.get("paymentId", request.payment_id),
            transaction_id=response.get("txId"),
            amount=request.amount_krw,
            status="completed",
        )
