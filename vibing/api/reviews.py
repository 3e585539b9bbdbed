"""
Review endpoints: /reviews/*
"""

from vibing.api.client import ApiClient
from vibing.exceptions import ApiError
from vibing.models.api import CreateReviewRequest, Review, ReviewsResponse


class ReviewsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def for_product(self, product_id: str, page: int = 1, limit: int = 10) -> ReviewsResponse:
        body = await self.client.get(
            f"/reviews/product/{product_id}", params={"page": page, "limit": limit}
        )
        return ReviewsResponse.model_validate(body or {})

    async def mine_for_product(self, product_id: str) -> Review | None:
        """The current user's review, or None when they have not written one."""
        try:
            body = await self.client.get(f"/reviews/user/product/{product_id}")
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        if not body:
            return None
        return Review.model_validate(body.get("review", body))

    async def create(self, request: CreateReviewRequest) -> Review:
        body = await self.client.post("/reviews", request.to_payload())
        return Review.model_validate(body.get("review", body))

    async def update(self, review_id: str, changes: dict) -> Review:
        body = await self.client.put(f"/reviews/{review_id}", changes)
        return Review.model_validate(body.get("review", body))

    async def delete(self, review_id: str) -> None:
        await self.client.delete(f"/reviews/{review_id}")

    async def can_review(self, product_id: str) -> bool:
        body = await self.client.get(f"/reviews/can-review/{product_id}")
        return bool((body or {}).get("canReview", False))

    async def rating_distribution(self, product_id: str) -> dict[int, int]:
        body = await self.client.get(f"/reviews/product/{product_id}/rating-distribution")
        distribution = (body or {}).get("distribution", body or {})
        return {int(rating): int(count) for rating, count in distribution.items()}
