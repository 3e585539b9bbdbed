"""
Review Manager Store.

Reviews for one product at a time, plus the current user's own review.
Submissions are validated locally; a rejected review never reaches the API.
"""

from structlog import get_logger

from vibing.api.client import ApiClient
from vibing.api.reviews import ReviewsApi
from vibing.exceptions import InputValidationError
from vibing.models.api import CreateReviewRequest, Review
from vibing.services.store import Store

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000


def validate_review(rating: int, comment: str) -> str:
    """Return the trimmed comment, or raise InputValidationError."""
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InputValidationError("rating", "Please select a rating")
    comment = comment.strip()
    if not comment:
        raise InputValidationError("comment", "Please enter a review comment")
    if len(comment) > MAX_COMMENT_LENGTH:
        raise InputValidationError(
            "comment", f"Review must be at most {MAX_COMMENT_LENGTH} characters"
        )
    return comment


class ReviewManager(Store):
    def __init__(self, client: ApiClient) -> None:
        super().__init__()
        self.reviews_api = ReviewsApi(client)
        self.product_id: str | None = None
        self.reviews: list[Review] = []
        self.total = 0
        self.has_more = False
        self.my_review: Review | None = None
        self.loading = False
        self.error: str | None = None

    async def list_reviews(self, product_id: str, page: int = 1, limit: int = 10) -> list[Review]:
        """Load a page of reviews; page > 1 appends to what is loaded."""
        self.loading = True
        self._notify()
        try:
            response = await self.reviews_api.for_product(product_id, page, limit)
        finally:
            self.loading = False

        if page > 1 and product_id == self.product_id:
            known = {r.id for r in self.reviews}
            self.reviews = [*self.reviews, *(r for r in response.reviews if r.id not in known)]
        else:
            self.reviews = response.reviews
        self.product_id = product_id
        self.total = response.total
        self.has_more = response.has_more
        self._notify()
        return self.reviews

    async def get_my_review(self, product_id: str) -> Review | None:
        self.my_review = await self.reviews_api.mine_for_product(product_id)
        self._notify()
        return self.my_review

    async def can_review(self, product_id: str) -> bool:
        return await self.reviews_api.can_review(product_id)

    async def rating_distribution(self, product_id: str) -> dict[int, int]:
        """Counts per star, with every rating 1..5 present."""
        counts = await self.reviews_api.rating_distribution(product_id)
        return {rating: counts.get(rating, 0) for rating in range(MIN_RATING, MAX_RATING + 1)}

    async def submit_review(self, product_id: str, rating: int, comment: str) -> Review:
        comment = validate_review(rating, comment)
        review = await self.reviews_api.create(
            CreateReviewRequest(product_id=product_id, rating=rating, comment=comment)
        )
        logger.info("review_submitted", product_id=product_id, review_id=review.id, rating=rating)
        self.my_review = review
        if product_id == self.product_id:
            self.reviews = [review, *self.reviews]
            self.total += 1
        self._notify()
        return review

    async def update_review(self, review_id: str, rating: int, comment: str) -> Review:
        comment = validate_review(rating, comment)
        review = await self.reviews_api.update(review_id, {"rating": rating, "comment": comment})
        self.reviews = [review if r.id == review_id else r for r in self.reviews]
        if self.my_review is not None and self.my_review.id == review_id:
            self.my_review = review
        self._notify()
        return review

    async def delete_review(self, review_id: str) -> None:
        await self.reviews_api.delete(review_id)
        before = len(self.reviews)
        self.reviews = [r for r in self.reviews if r.id != review_id]
        self.total -= before - len(self.reviews)
        if self.my_review is not None and self.my_review.id == review_id:
            self.my_review = None
        logger.info("review_deleted", review_id=review_id)
        self._notify()
