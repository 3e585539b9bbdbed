"""
Admin Console Store.

Platform statistics, user and product moderation, and dispute handling.
Local lists are updated from each response so no reload is needed.
"""

from structlog import get_logger

from vibing.api.admin import AdminApi
from vibing.api.client import ApiClient
from vibing.exceptions import InputValidationError
from vibing.models.api import (
    AdminStats,
    DisputedPurchase,
    Product,
    ProductStatus,
    PurchaseStatus,
    User,
    UserRole,
)
from vibing.services.store import Store

logger = get_logger(__name__)

MIN_RESOLUTION_LENGTH = 10
MAX_RESOLUTION_LENGTH = 1000


class AdminConsole(Store):
    def __init__(self, client: ApiClient) -> None:
        super().__init__()
        self.admin_api = AdminApi(client)
        self.stats = AdminStats()
        self.users: list[User] = []
        self.products: list[Product] = []
        self.disputes: list[DisputedPurchase] = []

    async def load_stats(self) -> AdminStats:
        self.stats = await self.admin_api.stats()
        self._notify()
        return self.stats

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def load_users(self) -> list[User]:
        self.users = await self.admin_api.users()
        self._notify()
        return self.users

    async def update_user_role(self, user_id: str, role: UserRole) -> User:
        user = await self.admin_api.update_user_role(user_id, role)
        self.users = [user if u.id == user_id else u for u in self.users]
        logger.info("user_role_updated", user_id=user_id, role=role.value)
        self._notify()
        return user

    async def delete_user(self, user_id: str) -> None:
        await self.admin_api.delete_user(user_id)
        self.users = [u for u in self.users if u.id != user_id]
        logger.info("user_deleted", user_id=user_id)
        self._notify()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def load_products(self) -> list[Product]:
        self.products = await self.admin_api.products()
        self._notify()
        return self.products

    @property
    def pending_products(self) -> list[Product]:
        return [p for p in self.products if p.status == ProductStatus.PENDING.value]

    async def approve_product(self, product_id: str) -> Product:
        return await self._set_product_status(product_id, ProductStatus.ACTIVE)

    async def reject_product(self, product_id: str) -> Product:
        return await self._set_product_status(product_id, ProductStatus.REJECTED)

    async def _set_product_status(self, product_id: str, status: ProductStatus) -> Product:
        product = await self.admin_api.update_product_status(product_id, status.value)
        self.products = [product if p.id == product_id else p for p in self.products]
        logger.info("product_status_updated", product_id=product_id, status=status.value)
        self._notify()
        return product

    async def delete_product(self, product_id: str) -> None:
        await self.admin_api.delete_product(product_id)
        self.products = [p for p in self.products if p.id != product_id]
        logger.info("product_deleted_by_admin", product_id=product_id)
        self._notify()

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    async def load_disputes(self) -> list[DisputedPurchase]:
        self.disputes = await self.admin_api.disputes()
        self._notify()
        return self.disputes

    async def process_dispute(self, dispute_id: str) -> None:
        """Move a dispute under platform review."""
        await self.admin_api.process_dispute(dispute_id)
        for dispute in self.disputes:
            if dispute.id == dispute_id:
                dispute.status = PurchaseStatus.DISPUTE_PROCESSING.value
        logger.info("dispute_processing", dispute_id=dispute_id)
        self._notify()

    async def resolve_dispute(self, dispute_id: str, resolution: str, refund: bool) -> None:
        resolution = resolution.strip()
        if len(resolution) < MIN_RESOLUTION_LENGTH:
            raise InputValidationError(
                "resolution",
                f"Resolution must be at least {MIN_RESOLUTION_LENGTH} characters",
            )
        if len(resolution) > MAX_RESOLUTION_LENGTH:
            raise InputValidationError(
                "resolution",
                f"Resolution must be at most {MAX_RESOLUTION_LENGTH} characters",
            )

        await self.admin_api.resolve_dispute(dispute_id, resolution, refund)
        self.disputes = [d for d in self.disputes if d.id != dispute_id]
        logger.info("dispute_resolved", dispute_id=dispute_id, refund=refund)
        self._notify()
