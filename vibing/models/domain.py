"""
Domain Models - Client-side values using dataclasses.

Immutable where they describe a request; validated on construction.
"""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ProductQuery:
    """Immutable product-listing query; one instance per fetch."""

    category: str = "all"
    search: str = ""
    min_price: float | None = None
    max_price: float | None = None
    sort_by: str | None = None
    page: int = 1
    limit: int = 12

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"Page must be >= 1: {self.page}")
        if self.limit < 1:
            raise ValueError(f"Limit must be >= 1: {self.limit}")

    def to_params(self) -> dict[str, str]:
        """Query-string parameters, omitting unset filters and category 'all'."""
        params: dict[str, str] = {}
        if self.category and self.category != "all":
            params["category"] = self.category
        if self.search:
            params["search"] = self.search
        if self.min_price is not None:
            params["minPrice"] = _format_number(self.min_price)
        if self.max_price is not None:
            params["maxPrice"] = _format_number(self.max_price)
        if self.sort_by:
            params["sortBy"] = self.sort_by
        params["page"] = str(self.page)
        params["limit"] = str(self.limit)
        return params


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


@dataclass(frozen=True)
class LocalFile:
    """A file on disk about to be uploaded."""

    path: Path
    content_type: str
    size: int

    @classmethod
    def from_path(cls, path: str | Path) -> "LocalFile":
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"No such file: {p}")
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(
            path=p,
            content_type=content_type or "application/octet-stream",
            size=p.stat().st_size,
        )

    @property
    def name(self) -> str:
        return self.path.name

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass
class ProductDraft:
    """Seller-side product form."""

    title: str
    description: str
    price: str
    category: str
    tags: list[str] = field(default_factory=list)
    image: Path | None = None
    archives: list[Path] = field(default_factory=list)

    def price_value(self) -> float:
        try:
            value = float(self.price)
        except (TypeError, ValueError):
            raise ValueError(f"Price must be a number: {self.price!r}") from None
        if value < 0:
            raise ValueError(f"Price cannot be negative: {value}")
        return value

    def to_payload(self, image_url: str | None = None) -> dict:
        payload: dict = {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "price": self.price_value(),
            "category": self.category,
            "tags": [t.strip() for t in self.tags if t.strip()],
        }
        if image_url:
            payload["imageUrl"] = image_url
        return payload


@dataclass(frozen=True)
class StatusBadge:
    """Display label and tone for a status string."""

    text: str
    tone: str  # default, destructive, outline


@dataclass
class VerificationState:
    phone: str
    expires_at: datetime | None = None
    code: str = ""
    is_verified: bool = False
