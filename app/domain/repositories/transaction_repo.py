# app/domain/repositories/transaction_repo.py

from __future__ import annotations
from typing import List
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.product import Transaction


class TransactionRepo:
    """
    Append-only ledger over the 'transactions' collection.
    No update/delete: a transaction is immutable once written.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "transactions"):
        self.col = db[collection_name]

    async def create(self, transaction: Transaction, *, session=None) -> None:
        await self.col.insert_one(transaction.model_dump(), session=session)

    async def get_by_product(self, item_id: str) -> List[Transaction]:
        """Ledger for one product, newest first."""
        cursor = self.col.find({"item_id": item_id}, {"_id": 0}).sort("created_at", -1)
        return [Transaction.model_validate(doc) async for doc in cursor]

    async def get_by_image_refs(self, refs: List[str]) -> List[Transaction]:
        if not refs:
            return []
        cursor = self.col.find({"image_url": {"$in": list(refs)}}, {"_id": 0})
        return [Transaction.model_validate(doc) async for doc in cursor]
