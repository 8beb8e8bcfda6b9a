import logging
from typing import List, Tuple

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.domain.models.product import Rating, utcnow
from app.domain.services.constants import MAX_SCORE, MIN_SCORE

logger = logging.getLogger(__name__)


class RatingService:
    """Rating upsert and aggregate reads; one Rating per (user, product)."""

    def __init__(self, ratings, products):
        self.ratings = ratings
        self.products = products

    async def submit_rating(self, user_id: str, product_id: str, score: float) -> Rating:
        """
        Create the user's rating for a product, or overwrite its score and
        refresh its timestamp if one already exists.
        """
        if not (MIN_SCORE <= score <= MAX_SCORE):
            raise InvalidInputError(
                f"score must be between {MIN_SCORE:g} and {MAX_SCORE:g}",
                details={"score": score},
            )
        if await self.products.get_by_id(product_id) is None:
            raise NotFoundError("product", product_id)

        existing = await self.ratings.find_by_user_and_product(user_id, product_id)
        if existing is not None:
            updated = existing.model_copy(update={"score": score, "created_at": utcnow()})
            await self.ratings.update(updated)
            logger.info("rating updated id=%s user_id=%s product_id=%s score=%s", updated.id, user_id, product_id, score)
            return updated

        rating = Rating(user_id=user_id, product_id=product_id, score=score)
        await self.ratings.create(rating)
        logger.info("rating created id=%s user_id=%s product_id=%s score=%s", rating.id, user_id, product_id, score)
        return rating

    async def delete_rating(self, rating_id: str, acting_user: str) -> None:
        rating = await self.ratings.get_by_id(rating_id)
        if rating is None:
            raise NotFoundError("rating", rating_id)
        if rating.user_id != acting_user:
            raise ForbiddenError("Only the author can delete a rating", details={"rating_id": rating_id})
        await self.ratings.delete(rating_id)
        logger.info("rating deleted id=%s user_id=%s", rating_id, acting_user)

    async def average(self, product_id: str) -> Tuple[float, int]:
        return await self.ratings.get_average_and_count(product_id)

    async def ratings_for_user(self, user_id: str) -> List[Rating]:
        return await self.ratings.get_by_user(user_id)
