"""
Static storefront options: categories, sort orders and price bands.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CategoryOption:
    id: str
    name: str
    icon: str


@dataclass(frozen=True)
class SortOption:
    value: str
    label: str


@dataclass(frozen=True)
class PriceFilter:
    """Price band in USD; None bounds are open."""

    value: str
    label: str
    min: float | None = None
    max: float | None = None


CATEGORIES: tuple[CategoryOption, ...] = (
    CategoryOption("all", "All Categories", "Grid3X3"),
    CategoryOption("libraries", "Libraries & Frameworks", "Package"),
    CategoryOption("cli-tools", "CLI Tools", "Terminal"),
    CategoryOption("web-templates", "Web Templates", "Globe"),
    CategoryOption("mobile", "Mobile Apps", "Smartphone"),
    CategoryOption("desktop", "Desktop Apps", "Monitor"),
    CategoryOption("design", "Design Assets", "Palette"),
    CategoryOption("database", "Database Tools", "Database"),
    CategoryOption("ai-ml", "AI & Machine Learning", "Brain"),
    CategoryOption("security", "Security Tools", "Shield"),
)

SORT_OPTIONS: tuple[SortOption, ...] = (
    SortOption("newest", "Newest First"),
    SortOption("oldest", "Oldest First"),
    SortOption("price-low", "Price: Low to High"),
    SortOption("price-high", "Price: High to Low"),
    SortOption("popular", "Most Popular"),
    SortOption("rating", "Highest Rated"),
    SortOption("downloads", "Most Downloaded"),
)

PRICE_FILTERS: tuple[PriceFilter, ...] = (
    PriceFilter("all", "All Prices"),
    PriceFilter("free", "Free", 0, 0),
    PriceFilter("under-10", "Under $10", 0, 10),
    PriceFilter("10-50", "$10 - $50", 10, 50),
    PriceFilter("50-100", "$50 - $100", 50, 100),
    PriceFilter("over-100", "Over $100", 100),
)

PURCHASE_STATUS_FILTERS: tuple[str, ...] = (
    "all",
    "completed",
    "confirmed",
    "dispute_requested",
    "dispute_processing",
    "dispute_resolved",
    "pending",
    "failed",
    "refunded",
    "cancelled",
)

PURCHASE_SORT_OPTIONS: tuple[SortOption, ...] = (
    SortOption("newest", "최신순"),
    SortOption("oldest", "오래된순"),
    SortOption("price-high", "가격 높은순"),
    SortOption("price-low", "가격 낮은순"),
    SortOption("product-name", "제품명순"),
)

DEFAULT_SORT = "newest"


def category_ids() -> set[str]:
    return {c.id for c in CATEGORIES}


def sort_values() -> set[str]:
    return {s.value for s in SORT_OPTIONS}


def get_price_filter(value: str) -> PriceFilter:
    """Look up a price band; raises KeyError for unknown values."""
    for price_filter in PRICE_FILTERS:
        if price_filter.value == value:
            return price_filter
    raise KeyError(value)
