"""
Seller endpoints: /seller/*
"""

from vibing.api.client import ApiClient
from vibing.models.api import Pagination, SalesResponse, SellerDashboard, SellerProduct


class SellerApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def dashboard(self) -> SellerDashboard:
        body = await self.client.get("/seller/dashboard")
        return SellerDashboard.model_validate(body or {})

    async def products(
        self, page: int = 1, limit: int = 10, status: str | None = None
    ) -> tuple[list[SellerProduct], Pagination]:
        params: dict[str, str | int] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        body = await self.client.get("/seller/products", params=params) or {}
        products = [SellerProduct.model_validate(p) for p in body.get("products") or []]
        return products, Pagination.model_validate(body.get("pagination") or {})

    async def sales(self, page: int = 1, limit: int = 10) -> SalesResponse:
        body = await self.client.get("/seller/sales", params={"page": page, "limit": limit})
        return SalesResponse.model_validate(body or {})
