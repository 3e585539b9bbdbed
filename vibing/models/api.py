"""
API Models - Pydantic models for request/response payloads.

The backend speaks camelCase JSON; models expose snake_case attributes and
serialize back to camelCase with model_dump(by_alias=True).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every payload exchanged with the storefront API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict:
        """Serialize to the camelCase JSON body the API expects."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserRole(str, Enum):
    """User role enumeration."""

    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class ProductStatus(str, Enum):
    """Product review status enumeration."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"


class PurchaseStatus(str, Enum):
    """Purchase status strings the server is known to return."""

    COMPLETED = "completed"
    CONFIRMED = "confirmed"
    DISPUTE_REQUESTED = "dispute_requested"
    DISPUTE_PROCESSING = "dispute_processing"
    DISPUTE_RESOLVED = "dispute_resolved"
    REFUNDED = "refunded"
    FAILED = "failed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class Pagination(ApiModel):
    current_page: int = 1
    total_pages: int = 0
    total_items: int = 0
    items_per_page: int = 0


# ============================================================================
# Auth Models
# ============================================================================


class User(ApiModel):
    """Account as returned by /auth/* and /admin/users."""

    id: str
    email: str
    name: str = ""
    role: UserRole = UserRole.BUYER
    phone: str | None = None
    phone_verified: bool = False
    created_at: datetime | None = None
    avatar: str | None = None
    is_active: bool = True

    @property
    def can_sell(self) -> bool:
        return self.role in (UserRole.SELLER, UserRole.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class LoginCredentials(ApiModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupData(ApiModel):
    """POST /auth/signup request body."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=2, max_length=100)
    role: UserRole = UserRole.BUYER
    phone: str = ""
    phone_verified: bool = False


class AuthResponse(ApiModel):
    user: User
    token: str
    refresh_token: str | None = None


class TokenResponse(ApiModel):
    token: str
    refresh_token: str | None = None


class VerificationCodeResponse(ApiModel):
    message: str = ""
    request_id: str | None = None
    code: str | None = None


# ============================================================================
# Product Models
# ============================================================================


class Product(ApiModel):
    """Marketplace listing. Prices are in USD."""

    id: str
    title: str
    description: str = ""
    price: float = 0.0
    image_url: str = ""
    author: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    download_url: str | None = None
    demo_url: str | None = None
    github_url: str | None = None
    documentation: str | None = None
    version: str = ""
    file_size: str | None = None
    downloads: int = 0
    rating: float = 0.0
    reviews: int = 0
    is_premium: bool = False
    is_active: bool = True
    status: str | None = None
    seller_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductsResponse(ApiModel):
    products: list[Product] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class CategoryCount(ApiModel):
    id: str
    name: str = ""
    count: int = 0


# ============================================================================
# Purchase Models
# ============================================================================


class PurchasedProduct(ApiModel):
    id: str = ""
    title: str = ""
    image_url: str = ""
    author: str = ""


class PurchaseHistoryItem(ApiModel):
    """
    One row of /purchase/history.

    status is kept as the raw server string; the dispute and auto-confirm
    fields are server-computed and displayed as given.
    """

    id: str
    purchase_date: datetime | None = None
    price: float = 0.0
    status: str = PurchaseStatus.PENDING.value
    display_status: str | None = None
    order_id: str = ""
    payment_method: str = ""
    can_request_dispute: bool = False
    days_until_auto_confirm: int | None = None
    dispute_reason: str | None = None
    download_url: str | None = None
    license_key: str | None = None
    product: PurchasedProduct = Field(default_factory=PurchasedProduct)


class PurchaseHistoryResponse(ApiModel):
    purchases: list[PurchaseHistoryItem] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class DownloadLink(ApiModel):
    download_url: str
    expires_at: datetime | None = None
    file_size: str | None = None


class LicenseKey(ApiModel):
    license_key: str
    message: str = ""


class PurchaseStats(ApiModel):
    total_purchases: int = 0
    completed_purchases: int = 0
    total_spent: float = 0.0


class PurchaseCheck(ApiModel):
    purchased: bool = False
    purchase_id: str | None = None
    license_key: str | None = None
    download_url: str | None = None


class PurchaseProductRef(ApiModel):
    id: str = ""
    title: str = ""


class PurchaseInfo(ApiModel):
    """Purchase summary attached to a successful payment verification."""

    id: str
    order_id: str = ""
    status: str = ""
    download_url: str | None = None
    license_key: str | None = None
    product: PurchaseProductRef = Field(default_factory=PurchaseProductRef)


class PaymentVerification(ApiModel):
    verified: bool = False
    payment_id: str | None = None
    amount: float | None = None
    status: str | None = None
    purchase: PurchaseInfo | None = None


# ============================================================================
# Chat Models
# ============================================================================


class ChatMessage(ApiModel):
    id: str
    text: str = ""
    sender_id: str = ""
    sender_name: str = ""
    sender_role: str = UserRole.BUYER.value
    timestamp: datetime | None = None
    is_read: bool = False
    message_type: MessageType = MessageType.TEXT
    image_url: str | None = None


class LastMessage(ApiModel):
    text: str = ""
    timestamp: datetime | None = None
    sender_id: str = ""


class Conversation(ApiModel):
    """
    Conversation summary from /chat/conversations.

    messages is client-side only: the list endpoint never returns it, and
    merges keep whatever history has already been loaded.
    """

    id: str
    other_user_id: str = ""
    other_user_name: str = ""
    product_id: str | None = None
    product_name: str | None = None
    unread_count: int = 0
    updated_at: datetime | None = None
    last_message: LastMessage | None = None
    messages: list[ChatMessage] = Field(default_factory=list, exclude=True)


class ConversationsResponse(ApiModel):
    conversations: list[Conversation] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class MessagesResponse(ApiModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class CreateConversationRequest(ApiModel):
    seller_id: str = Field(..., min_length=1)
    seller_name: str = ""
    product_id: str | None = None
    product_name: str | None = None


class CreatedConversation(ApiModel):
    id: str
    buyer_id: str = ""
    seller_id: str = ""
    product_id: str | None = None
    product_name: str | None = None


# ============================================================================
# Review Models
# ============================================================================


class ReviewAuthor(ApiModel):
    id: str = ""
    username: str | None = None
    email: str = ""
    avatar: str | None = None


class Review(ApiModel):
    id: str
    product_id: str = ""
    user_id: str = ""
    rating: int = Field(0, ge=0, le=5)
    comment: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: ReviewAuthor | None = None


class ReviewsResponse(ApiModel):
    reviews: list[Review] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    has_more: bool = False


class CreateReviewRequest(ApiModel):
    product_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)


# ============================================================================
# Seller / Admin Models
# ============================================================================


class SellerStats(ApiModel):
    total_revenue: float = 0.0
    total_sales: int = 0
    total_products: int = 0
    avg_rating: float = 0.0


class SellerProduct(ApiModel):
    id: str
    title: str = ""
    category: str = ""
    price: float = 0.0
    sales: int = 0
    revenue: float = 0.0
    views: int = 0
    downloads: int = 0
    status: str = ProductStatus.PENDING.value
    created_at: datetime | None = None


class SellerDashboard(ApiModel):
    stats: SellerStats = Field(default_factory=SellerStats)
    products: list[SellerProduct] = Field(default_factory=list)


class Sale(ApiModel):
    id: str
    order_id: str = ""
    price: float = 0.0
    payment_method: str = ""
    purchase_date: datetime | None = None
    product: PurchasedProduct = Field(default_factory=PurchasedProduct)


class SalesResponse(ApiModel):
    sales: list[Sale] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class AdminStats(ApiModel):
    total_users: int = 0
    total_products: int = 0
    total_sales: int = 0
    total_revenue: float = 0.0
    monthly_growth: float = 0.0
    pending_products: int = 0


class DisputeParty(ApiModel):
    id: str = ""
    email: str = ""
    name: str = ""


class DisputeProduct(ApiModel):
    id: str = ""
    title: str = ""
    author: str = ""


class DisputedPurchase(ApiModel):
    id: str
    order_id: str = ""
    price: float = 0.0
    status: str = PurchaseStatus.DISPUTE_REQUESTED.value
    display_status: str | None = None
    dispute_reason: str = ""
    dispute_requested_at: datetime | None = None
    should_platform_intervene: bool = False
    platform_intervention_at: datetime | None = None
    user: DisputeParty = Field(default_factory=DisputeParty)
    product: DisputeProduct = Field(default_factory=DisputeProduct)


# ============================================================================
# Upload Models
# ============================================================================


class UploadedImage(ApiModel):
    image_url: str
    message: str = ""


class StoredFile(ApiModel):
    filename: str = ""
    url: str = ""
    size: int = 0


class UploadedFile(ApiModel):
    file: StoredFile
    message: str = ""
