"""
Product Catalog Store.

Filter, sort and pagination selection plus the current page of listings.
Every real filter change resets to page 1 and issues exactly one fetch.
Fetches are numbered; starting a new one cancels the one in flight, and a
response whose number is not the latest is discarded.
"""

import asyncio

from structlog import get_logger

from vibing.api.client import ApiClient
from vibing.api.products import ProductsApi
from vibing.catalog import DEFAULT_SORT, get_price_filter, sort_values
from vibing.config import settings
from vibing.exceptions import ApiError, InputValidationError
from vibing.models.api import CategoryCount, Pagination, Product, ProductsResponse
from vibing.models.domain import ProductQuery
from vibing.services.store import Store

logger = get_logger(__name__)


class ProductCatalog(Store):
    def __init__(self, client: ApiClient, per_page: int | None = None) -> None:
        super().__init__()
        self.products_api = ProductsApi(client)

        self.category = "all"
        self.sort = DEFAULT_SORT
        self.price_filter = "all"
        self.search_query = ""
        self.page = 1
        self.per_page = per_page or settings.products_per_page

        self.products: list[Product] = []
        self.pagination = Pagination()
        self.loading = False
        self.error: str | None = None

        self._generation = 0
        self._inflight: asyncio.Task[ProductsResponse] | None = None

    @property
    def total_pages(self) -> int:
        return self.pagination.total_pages

    def current_query(self) -> ProductQuery:
        band = get_price_filter(self.price_filter)
        return ProductQuery(
            category=self.category,
            search=self.search_query.strip(),
            min_price=band.min,
            max_price=band.max,
            sort_by=self.sort,
            page=self.page,
            limit=self.per_page,
        )

    async def set_filters(
        self,
        *,
        category: str | None = None,
        sort: str | None = None,
        price_filter: str | None = None,
        search: str | None = None,
    ) -> bool:
        """
        Apply any subset of filter changes as one update.

        Returns True when something changed (and a fetch was issued).
        """
        if sort is not None and sort not in sort_values():
            raise InputValidationError("sort", f"Unknown sort option: {sort}")
        if price_filter is not None:
            try:
                get_price_filter(price_filter)
            except KeyError:
                raise InputValidationError(
                    "price_filter", f"Unknown price filter: {price_filter}"
                ) from None

        changes = {
            "category": category,
            "sort": sort,
            "price_filter": price_filter,
            "search_query": search,
        }
        changed = False
        for attr, value in changes.items():
            if value is not None and getattr(self, attr) != value:
                setattr(self, attr, value)
                changed = True

        if not changed:
            return False

        self.page = 1
        await self.refresh()
        return True

    async def set_category(self, category: str) -> bool:
        return await self.set_filters(category=category)

    async def set_sort(self, sort: str) -> bool:
        return await self.set_filters(sort=sort)

    async def set_price_filter(self, price_filter: str) -> bool:
        return await self.set_filters(price_filter=price_filter)

    async def set_search(self, query: str) -> bool:
        return await self.set_filters(search=query)

    async def set_page(self, page: int) -> None:
        if page < 1:
            raise InputValidationError("page", f"Page must be >= 1: {page}")
        self.page = page
        await self.refresh()

    async def refresh(self) -> ProductsResponse | None:
        """
        Fetch the current query.

        Returns the applied response, or None when this fetch was superseded
        or failed (the failure message is kept in self.error).
        """
        self._generation += 1
        generation = self._generation

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        query = self.current_query()
        self.loading = True
        self._notify()

        task = asyncio.create_task(self.products_api.search(query))
        self._inflight = task
        try:
            response = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug("product_fetch_superseded", generation=generation)
                return None
            logger.debug("product_fetch_cancelled", generation=generation)
            self.loading = False
            self._notify()
            raise
        except ApiError as exc:
            if generation == self._generation:
                logger.error("product_fetch_failed", error=exc.message, status=exc.status_code)
                self.error = exc.message
                self.loading = False
                self._notify()
            return None

        if generation != self._generation:
            logger.debug("stale_product_response_discarded", generation=generation)
            return None

        self.products = response.products
        self.pagination = response.pagination
        self.error = None
        self.loading = False
        self._notify()
        return response

    async def get_product(self, product_id: str) -> Product:
        return await self.products_api.get(product_id)

    async def get_categories(self) -> list[CategoryCount]:
        return await self.products_api.categories()
