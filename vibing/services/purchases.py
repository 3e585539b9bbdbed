"""
Purchase Manager Store.

Checkout is a two-phase handshake:
1. The payment gateway takes the customer through an interactive payment.
2. The API verifies that payment server-side and records the purchase.

Neither phase is retried. A failure in either phase ends the purchase with a
failed PaymentResult and a message in self.error.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from structlog import get_logger

from vibing.api.client import ApiClient
from vibing.api.purchases import PaymentsApi, PurchasesApi
from vibing.catalog import PURCHASE_SORT_OPTIONS, PURCHASE_STATUS_FILTERS
from vibing.exceptions import (
    ApiError,
    DisputeNotAllowedError,
    InputValidationError,
    PaymentError,
)
from vibing.formatting import calculate_total
from vibing.models.api import (
    DownloadLink,
    LicenseKey,
    Pagination,
    Product,
    PurchaseCheck,
    PurchaseHistoryItem,
    PurchaseInfo,
    PurchaseStats,
)
from vibing.observability.metrics import metrics
from vibing.observability.tracing import get_tracer
from vibing.services.payment_gateway import (
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
    generate_payment_id,
    order_name_for,
)
from vibing.services.store import Store

logger = get_logger(__name__)
tracer = get_tracer(__name__)

MIN_DISPUTE_REASON = 10
MAX_DISPUTE_REASON = 500

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _purchase_date(item: PurchaseHistoryItem) -> datetime:
    # Naive timestamps are taken as UTC so they compare with aware ones.
    value = item.purchase_date
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


_SORT_KEYS: dict[str, tuple[Callable[[PurchaseHistoryItem], Any], bool]] = {
    "newest": (_purchase_date, True),
    "oldest": (_purchase_date, False),
    "price-high": (lambda item: item.price, True),
    "price-low": (lambda item: item.price, False),
    "product-name": (lambda item: item.product.title.casefold(), False),
}


class PurchaseManager(Store):
    def __init__(self, client: ApiClient, gateway: PaymentGateway | None = None) -> None:
        super().__init__()
        self.purchases_api = PurchasesApi(client)
        self.payments_api = PaymentsApi(client)
        self.gateway = gateway

        self.processing = False
        self.is_purchased = False
        self.last_purchase: PurchaseInfo | None = None
        self.error: str | None = None

        self.history: list[PurchaseHistoryItem] = []
        self.pagination = Pagination()
        self.loading = False
        self.status_filter = "all"
        self.sort_by = "newest"

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def purchase(
        self,
        product: Product,
        customer_email: str,
        customer_name: str = "Test User",
    ) -> PaymentResult:
        """
        Buy one product: gateway payment, then server verification.

        Args:
            product: Product being bought (price in USD)
            customer_email: Email passed to the gateway and the verifier
            customer_name: Name shown on the gateway checkout

        Returns:
            The verification result on success, otherwise the failed
            result of whichever phase failed
        """
        amount_krw = calculate_total(product.price)
        request = PaymentRequest(
            payment_id=generate_payment_id(),
            order_name=order_name_for(product.title),
            amount_krw=amount_krw,
            customer_email=customer_email,
            customer_name=customer_name,
        )

        self.processing = True
        self.is_purchased = False
        self.error = None
        self._notify()

        with tracer.start_as_current_span("purchase") as span:
            span.set_attribute("product.id", product.id)
            span.set_attribute("payment.id", request.payment_id)
            span.set_attribute("payment.amount_krw", amount_krw)
            try:
                logger.info(
                    "purchase_started",
                    product_id=product.id,
                    payment_id=request.payment_id,
                    amount_krw=amount_krw,
                )
                try:
                    if self.gateway is None:
                        raise PaymentError("No payment gateway configured")
                    gateway_result = await self.gateway.request_payment(request)
                except PaymentError as exc:
                    gateway_result = PaymentResult(
                        success=False, error_code=exc.code, error_message=exc.message
                    )

                metrics.record_payment("initiate", gateway_result.success)
                if not gateway_result.success:
                    span.set_attribute("payment.outcome", "gateway_failed")
                    return self._fail(gateway_result, "Payment failed")

                return await self._verify(
                    gateway_result.payment_id or request.payment_id,
                    request.order_name,
                    amount_krw,
                    customer_email,
                )
            finally:
                self.processing = False
                self._notify()

    async def verify_returned_payment(
        self,
        payment_id: str,
        order_name: str | None = None,
        amount: int | None = None,
        customer_email: str | None = None,
    ) -> PaymentResult:
        """Second phase alone, for a customer returning from the gateway redirect."""
        self.processing = True
        self.error = None
        self._notify()
        try:
            return await self._verify(payment_id, order_name, amount, customer_email)
        finally:
            self.processing = False
            self._notify()

    async def _verify(
        self,
        payment_id: str,
        order_name: str | None,
        amount: int | None,
        customer_email: str | None,
    ) -> PaymentResult:
        try:
            verification = await self.payments_api.verify(
                payment_id, order_name, amount, customer_email
            )
        except ApiError as exc:
            metrics.record_payment("verify", False)
            return self._fail(
                PaymentResult(success=False, error_code=exc.code, error_message=exc.message),
                "Payment verification failed",
            )

        verified_amount = int(verification.amount) if verification.amount is not None else amount
        if not verification.verified:
            metrics.record_payment("verify", False)
            return self._fail(
                PaymentResult(
                    success=False,
                    payment_id=verification.payment_id or payment_id,
                    amount=verified_amount,
                    status=verification.status,
                ),
                "Payment verification failed",
            )

        metrics.record_payment("verify", True, verified_amount)
        self.is_purchased = True
        self.last_purchase = verification.purchase
        logger.info(
            "purchase_verified",
            payment_id=payment_id,
            purchase_id=verification.purchase.id if verification.purchase else None,
        )

        try:
            await self.load_history()
        except ApiError as exc:
            logger.warning("history_refresh_after_purchase_failed", error=exc.message)

        return PaymentResult(
            success=True,
            payment_id=verification.payment_id or payment_id,
            amount=verified_amount,
            status=verification.status,
        )

    def _fail(self, result: PaymentResult, fallback: str) -> PaymentResult:
        self.error = result.error_message or fallback
        metrics.record_error("payment")
        logger.warning(
            "purchase_failed",
            error=self.error,
            error_code=result.error_code,
            payment_id=result.payment_id,
        )
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def load_history(self, page: int = 1, limit: int = 10) -> list[PurchaseHistoryItem]:
        self.loading = True
        self._notify()
        try:
            response = await self.purchases_api.history(page, limit)
        finally:
            self.loading = False
        self.history = response.purchases
        self.pagination = response.pagination
        self._notify()
        return self.history

    def set_status_filter(self, status: str) -> None:
        if status not in PURCHASE_STATUS_FILTERS:
            raise InputValidationError("status_filter", f"Unknown status filter: {status}")
        self.status_filter = status
        self._notify()

    def set_sort(self, sort_by: str) -> None:
        if sort_by not in {option.value for option in PURCHASE_SORT_OPTIONS}:
            raise InputValidationError("sort_by", f"Unknown sort option: {sort_by}")
        self.sort_by = sort_by
        self._notify()

    @property
    def filtered_history(self) -> list[PurchaseHistoryItem]:
        """Loaded history with the status filter and sort order applied."""
        items = self.history
        if self.status_filter != "all":
            items = [item for item in items if item.status == self.status_filter]
        key, reverse = _SORT_KEYS[self.sort_by]
        return sorted(items, key=key, reverse=reverse)

    def get_purchase(self, purchase_id: str) -> PurchaseHistoryItem | None:
        for item in self.history:
            if item.id == purchase_id:
                return item
        return None

    # ------------------------------------------------------------------
    # Post-purchase actions
    # ------------------------------------------------------------------

    async def request_dispute(self, purchase_id: str, reason: str) -> None:
        reason = reason.strip()
        if len(reason) < MIN_DISPUTE_REASON:
            raise InputValidationError(
                "reason", f"Dispute reason must be at least {MIN_DISPUTE_REASON} characters"
            )
        if len(reason) > MAX_DISPUTE_REASON:
            raise InputValidationError(
                "reason", f"Dispute reason must be at most {MAX_DISPUTE_REASON} characters"
            )

        item = self.get_purchase(purchase_id)
        if item is not None and not item.can_request_dispute:
            raise DisputeNotAllowedError(purchase_id)

        await self.purchases_api.request_dispute(purchase_id, reason)
        logger.info("dispute_requested", purchase_id=purchase_id)
        await self.load_history(self.pagination.current_page or 1)

    async def get_download_link(self, purchase_id: str) -> DownloadLink:
        return await self.purchases_api.download_link(purchase_id)

    async def generate_license(self, purchase_id: str) -> LicenseKey:
        license_key = await self.purchases_api.generate_license(purchase_id)
        item = self.get_purchase(purchase_id)
        if item is not None:
            item.license_key = license_key.license_key
            self._notify()
        return license_key

    async def get_stats(self) -> PurchaseStats:
        return await self.purchases_api.stats()

    async def check_purchase(self, product_id: str) -> PurchaseCheck:
        return await self.purchases_api.check(product_id)

    def reset(self) -> None:
        """Clear checkout state (not history)."""
        self.processing = False
        self.is_purchased = False
        self.last_purchase = None
        self.error = None
        self._notify()
