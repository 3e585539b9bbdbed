"""
Admin endpoints: /admin/*
"""

from typing import Any

from vibing.api.client import ApiClient
from vibing.models.api import AdminStats, DisputedPurchase, Product, User, UserRole


def _unwrap_list(body: Any, key: str) -> list:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        return body.get(key) or []
    return []


class AdminApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def stats(self) -> AdminStats:
        body = await self.client.get("/admin/stats") or {}
        return AdminStats.model_validate(body.get("stats", body))

    async def users(self) -> list[User]:
        body = await self.client.get("/admin/users")
        return [User.model_validate(u) for u in _unwrap_list(body, "users")]

    async def update_user_role(self, user_id: str, role: UserRole) -> User:
        body = await self.client.put(f"/admin/users/{user_id}/role", {"role": role.value})
        return User.model_validate(body.get("user", body))

    async def delete_user(self, user_id: str) -> None:
        await self.client.delete(f"/admin/users/{user_id}")

    async def products(self) -> list[Product]:
        body = await self.client.get("/admin/products")
        return [Product.model_validate(p) for p in _unwrap_list(body, "products")]

    async def update_product_status(self, product_id: str, status: str) -> Product:
        body = await self.client.put(f"/admin/products/{product_id}/status", {"status": status})
        return Product.model_validate(body.get("product", body))

    async def delete_product(self, product_id: str) -> None:
        await self.client.delete(f"/admin/products/{product_id}")

    async def disputes(self) -> list[DisputedPurchase]:
        body = await self.client.get("/admin/disputes")
        return [DisputedPurchase.model_validate(d) for d in _unwrap_list(body, "disputes")]

    async def process_dispute(self, dispute_id: str) -> None:
        await self.client.put(f"/admin/disputes/{dispute_id}/process")

    async def resolve_dispute(self, dispute_id: str, resolution: str, refund: bool) -> None:
        await self.client.put(
            f"/admin/disputes/{dispute_id}/resolve",
            {"resolution": resolution, "refund": refund},
        )
