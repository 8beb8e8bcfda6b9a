# app/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Optional, List, Iterable
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.product import Product

_PROJ = {"_id": 0}


class ProductRepo:
    """
    Product store backed by the 'products' collection.
    Documents are keyed by the string `id` minted in the domain model; Mongo's
    own `_id` is never exposed.
    Write methods accept an optional Motor session so they can join a
    multi-document transaction.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def create(self, product: Product, *, session=None) -> None:
        await self.col.insert_one(product.model_dump(), session=session)

    async def update(self, product: Product, *, session=None) -> bool:
        """Full replace by id (same end state on retry). False if the id is unknown."""
        res = await self.col.replace_one({"id": product.id}, product.model_dump(), session=session)
        return res.matched_count > 0

    async def delete(self, product_id: str, *, session=None) -> bool:
        res = await self.col.delete_one({"id": product_id}, session=session)
        return res.deleted_count > 0

    async def get_by_id(self, product_id: str, *, session=None) -> Optional[Product]:
        doc = await self.col.find_one({"id": product_id}, _PROJ, session=session)
        return Product.model_validate(doc) if doc else None

    async def get_by_ids(self, ids: List[str]) -> List[Product]:
        """Unordered batch fetch; unknown ids are simply absent from the result."""
        if not ids:
            return []
        cursor = self.col.find({"id": {"$in": list(ids)}}, _PROJ)
        return [Product.model_validate(doc) async for doc in cursor]

    # ----- Paginated reads -----------------------------------------------------

    async def get_by_user(self, user_id: str, count: int, offset: int) -> List[Product]:
        cursor = (
            self.col.find({"user_id": user_id}, _PROJ)
            .sort("created_at", -1)
            .skip(offset)
            .limit(count)
        )
        return [Product.model_validate(doc) async for doc in cursor]

    async def get_by_status(self, status: str, limit: int, offset: int) -> List[Product]:
        cursor = (
            self.col.find({"status": status}, _PROJ)
            .sort("created_at", -1)
            .skip(offset)
            .limit(limit)
        )
        return [Product.model_validate(doc) async for doc in cursor]

    async def get_random(self, count: int, offset: int) -> List[Product]:
        """
        Random-looking but stable pages: products are ordered by the
        `shuffle_key` drawn at creation, so page N never overlaps page N+1.
        """
        cursor = (
            self.col.find({}, _PROJ)
            .sort([("shuffle_key", 1), ("id", 1)])
            .skip(offset)
            .limit(count)
        )
        return [Product.model_validate(doc) async for doc in cursor]

    async def sample(self, count: int, exclude: Iterable[str] = ()) -> List[Product]:
        """True random sample ($sample) used for fallback fill."""
        if count <= 0:
            return []
        pipeline = []
        excluded = list(exclude)
        if excluded:
            pipeline.append({"$match": {"id": {"$nin": excluded}}})
        pipeline += [
            {"$sample": {"size": count}},
            {"$project": _PROJ},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=count)
        return [Product.model_validate(doc) for doc in docs]
