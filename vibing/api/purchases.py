"""
Purchase endpoints: /purchase/* and /payments/verify/*
"""

from vibing.api.client import ApiClient
from vibing.models.api import (
    DownloadLink,
    LicenseKey,
    PaymentVerification,
    PurchaseCheck,
    PurchaseHistoryResponse,
    PurchaseStats,
)


class PurchasesApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def history(self, page: int = 1, limit: int = 10) -> PurchaseHistoryResponse:
        body = await self.client.get("/purchase/history", params={"page": page, "limit": limit})
        return PurchaseHistoryResponse.model_validate(body or {})

    async def download_link(self, purchase_id: str) -> DownloadLink:
        body = await self.client.get(f"/purchase/{purchase_id}/download")
        return DownloadLink.model_validate(body)

    async def generate_license(self, purchase_id: str) -> LicenseKey:
        body = await self.client.post(f"/purchase/{purchase_id}/generate-license")
        return LicenseKey.model_validate(body)

    async def stats(self) -> PurchaseStats:
        body = await self.client.get("/purchase/stats")
        return PurchaseStats.model_validate((body or {}).get("stats", {}))

    async def check(self, product_id: str) -> PurchaseCheck:
        body = await self.client.get(f"/purchase/check/{product_id}")
        return PurchaseCheck.model_validate(body or {})

    async def request_dispute(self, purchase_id: str, reason: str) -> None:
        await self.client.post(f"/purchase/{purchase_id}/dispute", {"reason": reason})


class PaymentsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def verify(
        self,
        payment_id: str,
        order_name: str | None = None,
        amount: int | None = None,
        customer_email: str | None = None,
    ) -> PaymentVerification:
        """Second phase of checkout: the server confirms the gateway payment."""
        params: dict[str, str] = {}
        if order_name:
            params["orderName"] = order_name
        if amount:
            params["amount"] = str(amount)
        if customer_email:
            params["customerEmail"] = customer_email
        body = await self.client.post(f"/payments/verify/{payment_id}", params=params or None)
        return PaymentVerification.model_validate(body or {})
