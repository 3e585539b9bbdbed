"""
Product endpoints: /products*
"""

from vibing.api.client import ApiClient
from vibing.models.api import CategoryCount, Product, ProductsResponse
from vibing.models.domain import ProductQuery


class ProductsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def search(self, query: ProductQuery) -> ProductsResponse:
        body = await self.client.get("/products", params=query.to_params())
        return ProductsResponse.model_validate(body or {})

    async def get(self, product_id: str) -> Product:
        body = await self.client.get(f"/products/{product_id}")
        return Product.model_validate(body.get("product", body))

    async def create(self, payload: dict) -> Product:
        body = await self.client.post("/products", payload)
        return Product.model_validate(body.get("product", body))

    async def update(self, product_id: str, payload: dict) -> Product:
        body = await self.client.put(f"/products/{product_id}", payload)
        return Product.model_validate(body.get("product", body))

    async def delete(self, product_id: str) -> None:
        await self.client.delete(f"/products/{product_id}")

    async def categories(self) -> list[CategoryCount]:
        body = await self.client.get("/products/categories")
        items = body.get("categories", []) if isinstance(body, dict) else body or []
        return [CategoryCount.model_validate(item) for item in items]
