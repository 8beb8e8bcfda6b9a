# app/domain/repositories/user_repo.py

from __future__ import annotations
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.product import OwnerSummary

# Only the public profile; email and password hash never leave the users collection
_PUBLIC_FIELDS = {"_id": 0, "id": 1, "name": 1, "image_url": 1, "verified": 1, "premium_until": 1}


class UserRepo:
    """Read-only view over the user service's 'users' collection."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "users"):
        self.col = db[collection_name]

    async def get_demographics(self, user_id: str) -> Optional[OwnerSummary]:
        doc = await self.col.find_one({"id": user_id}, _PUBLIC_FIELDS)
        return OwnerSummary.model_validate(doc) if doc else None
