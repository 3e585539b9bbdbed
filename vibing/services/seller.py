"""
Seller Workspace Store.

Publishing is three steps against three endpoints:
1. Upload the cover image (/upload/image)
2. Create the product with the returned image URL (POST /products)
3. Attach each ZIP archive to the new product (/upload/product-files)

Drafts and archives are validated locally before step 1 so a bad file does
not leave a half-published product behind.
"""

from dataclasses import dataclass, field

from structlog import get_logger

from vibing.api.client import ApiClient
from vibing.api.products import ProductsApi
from vibing.api.seller import SellerApi
from vibing.api.uploads import UploadsApi, validate_archive
from vibing.catalog import category_ids
from vibing.exceptions import InputValidationError
from vibing.models.api import (
    Pagination,
    Product,
    Sale,
    SellerDashboard,
    SellerProduct,
    StoredFile,
)
from vibing.models.domain import LocalFile, ProductDraft
from vibing.services.store import Store

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishedProduct:
    product: Product
    files: list[StoredFile] = field(default_factory=list)


def validate_draft(draft: ProductDraft) -> None:
    if not draft.title.strip():
        raise InputValidationError("title", "Title is required")
    if not draft.description.strip():
        raise InputValidationError("description", "Description is required")
    try:
        draft.price_value()
    except ValueError as exc:
        raise InputValidationError("price", str(exc)) from None
    if draft.category == "all" or draft.category not in category_ids():
        raise InputValidationError("category", f"Unknown category: {draft.category}")


class SellerWorkspace(Store):
    def __init__(self, client: ApiClient) -> None:
        super().__init__()
        self.seller_api = SellerApi(client)
        self.products_api = ProductsApi(client)
        self.uploads_api = UploadsApi(client)

        self.dashboard: SellerDashboard | None = None
        self.products: list[SellerProduct] = []
        self.products_pagination = Pagination()
        self.sales: list[Sale] = []
        self.sales_pagination = Pagination()
        self.publishing = False
        self.error: str | None = None

    async def publish(self, draft: ProductDraft) -> PublishedProduct:
        """
        Publish a new product.

        Returns:
            The created product (status as the API reports it, normally
            pending review) and the stored archive files
        """
        validate_draft(draft)
        for archive in draft.archives:
            validate_archive(LocalFile.from_path(archive))

        self.publishing = True
        self.error = None
        self._notify()
        try:
            image_url = None
            if draft.image is not None:
                image_url = (await self.uploads_api.upload_image(draft.image)).image_url

            product = await self.products_api.create(draft.to_payload(image_url))
            logger.info("product_created", product_id=product.id, status=product.status)

            files: list[StoredFile] = []
            for archive in draft.archives:
                try:
                    uploaded = await self.uploads_api.upload_product_file(product.id, archive)
                except Exception as exc:
                    logger.error(
                        "product_file_upload_failed",
                        product_id=product.id,
                        filename=archive.name,
                        error=str(exc),
                    )
                    raise
                files.append(uploaded.file)

            return PublishedProduct(product=product, files=files)
        except Exception as exc:
            self.error = str(exc)
            raise
        finally:
            self.publishing = False
            self._notify()

    async def update_product(self, product_id: str, draft: ProductDraft) -> Product:
        validate_draft(draft)
        image_url = None
        if draft.image is not None:
            image_url = (await self.uploads_api.upload_image(draft.image)).image_url
        product = await self.products_api.update(product_id, draft.to_payload(image_url))
        logger.info("product_updated", product_id=product_id)
        return product

    async def delete_product(self, product_id: str) -> None:
        await self.products_api.delete(product_id)
        self.products = [p for p in self.products if p.id != product_id]
        logger.info("product_deleted", product_id=product_id)
        self._notify()

    async def load_dashboard(self) -> SellerDashboard:
        self.dashboard = await self.seller_api.dashboard()
        self._notify()
        return self.dashboard

    async def list_products(
        self, page: int = 1, status: str | None = None, limit: int = 10
    ) -> list[SellerProduct]:
        self.products, self.products_pagination = await self.seller_api.products(
            page, limit, status
        )
        self._notify()
        return self.products

    async def list_sales(self, page: int = 1, limit: int = 10) -> list[Sale]:
        response = await self.seller_api.sales(page, limit)
        self.sales = response.sales
        self.sales_pagination = response.pagination
        self._notify()
        return self.sales
