# app/domain/repositories/rating_repo.py

from __future__ import annotations
from typing import Optional, List, Tuple
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.product import Rating


class RatingRepo:
    """
    Ratings in the 'ratings' collection.
    (user_id, product_id) uniqueness is enforced by RatingService's upsert,
    not by a unique index.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "ratings"):
        self.col = db[collection_name]

    async def create(self, rating: Rating) -> None:
        await self.col.insert_one(rating.model_dump())

    async def update(self, rating: Rating) -> bool:
        res = await self.col.update_one(
            {"id": rating.id},
            {"$set": {"score": rating.score, "created_at": rating.created_at}},
        )
        return res.matched_count > 0

    async def delete(self, rating_id: str) -> bool:
        res = await self.col.delete_one({"id": rating_id})
        return res.deleted_count > 0

    async def get_by_id(self, rating_id: str) -> Optional[Rating]:
        doc = await self.col.find_one({"id": rating_id}, {"_id": 0})
        return Rating.model_validate(doc) if doc else None

    async def find_by_user_and_product(self, user_id: str, product_id: str) -> Optional[Rating]:
        doc = await self.col.find_one({"user_id": user_id, "product_id": product_id}, {"_id": 0})
        return Rating.model_validate(doc) if doc else None

    async def get_average_and_count(self, product_id: str) -> Tuple[float, int]:
        """Mean score and number of ratings; (0.0, 0) for an unrated product."""
        pipeline = [
            {"$match": {"product_id": product_id}},
            {"$group": {"_id": None, "average": {"$avg": "$score"}, "count": {"$sum": 1}}},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=1)
        if not docs:
            return 0.0, 0
        return float(docs[0].get("average") or 0.0), int(docs[0].get("count") or 0)

    async def get_by_user(self, user_id: str) -> List[Rating]:
        cursor = self.col.find({"user_id": user_id}, {"_id": 0}).sort("created_at", -1)
        return [Rating.model_validate(doc) async for doc in cursor]

    async def get_rated_product_ids(self, user_id: str) -> List[str]:
        ids: List[str] = await self.col.distinct("product_id", {"user_id": user_id})
        return ids or []
