"""
Price, date and status formatting for display.

Listing prices are USD; checkout charges KRW at a fixed rate plus a flat
processing fee.
"""

import math
from datetime import datetime

from vibing.models.domain import StatusBadge

PROCESSING_FEE = 1290  # KRW
USD_TO_KRW_RATE = 1300


def convert_usd_to_krw(usd_price: float) -> int:
    """Convert a USD price to whole won; halves round up, never to even."""
    return math.floor(usd_price * USD_TO_KRW_RATE + 0.5)


def calculate_total(product_price_usd: float) -> int:
    """Checkout total in KRW: converted price plus processing fee."""
    return convert_usd_to_krw(product_price_usd) + PROCESSING_FEE


def format_price(price_krw: int) -> str:
    return f"₩{price_krw:,}"


_STATUS_BADGES: dict[str, StatusBadge] = {
    "completed": StatusBadge("구매완료", "default"),
    "confirmed": StatusBadge("구매확정", "default"),
    "dispute_requested": StatusBadge("이의제기중", "default"),
    "dispute_processing": StatusBadge("플랫폼 검토중", "default"),
    "dispute_resolved": StatusBadge("이의제기 완료", "default"),
    "pending": StatusBadge("결제대기", "default"),
    "failed": StatusBadge("결제실패", "destructive"),
    "refunded": StatusBadge("환불완료", "outline"),
    "cancelled": StatusBadge("취소됨", "outline"),
    "active": StatusBadge("Active", "default"),
    "approved": StatusBadge("Approved", "default"),
    "rejected": StatusBadge("Rejected", "default"),
}


def status_badge(status: str) -> StatusBadge:
    """Badge for a purchase or product status; unknown statuses show as-is."""
    return _STATUS_BADGES.get(status, StatusBadge(status, "outline"))


def format_datetime(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")
