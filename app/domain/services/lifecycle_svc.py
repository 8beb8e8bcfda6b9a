# app/domain/services/lifecycle_svc.py
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional, Tuple

from redis.exceptions import RedisError

from app.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from app.domain.models.product import Product, Transaction, TransactionAction
from app.domain.services.constants import STATUS_FOR_ACTION
from app.utils.ids import new_id
from app.utils.locks import RedisLock

logger = logging.getLogger(__name__)


def parse_action(action) -> TransactionAction:
    try:
        return TransactionAction(action)
    except ValueError:
        raise InvalidInputError(
            f"Unknown transaction action: {action!r}",
            details={"allowed": [a.value for a in TransactionAction]},
        )


def status_for(action) -> str:
    """Product status after a transaction with `action`."""
    return STATUS_FOR_ACTION[parse_action(action)].value


class ProductLifecycleManager:
    """
    Appends transactions to a product's ledger and moves the product through
    its status machine (see STATUS_FOR_ACTION).

    The ledger append and the product update happen inside one write boundary:
      - a Redis lock keyed on the product id serializes concurrent writers
        (skipped when Redis is not configured or unreachable);
      - a MongoDB multi-document transaction makes both writes all-or-nothing
        (only when `use_transactions` is on; requires a replica set).
    """

    def __init__(
        self,
        products,
        ledger,
        images,
        *,
        redis=None,
        mongo_client=None,
        use_transactions: bool = False,
        lock_ttl: int = 10,
    ):
        self.products = products
        self.ledger = ledger
        self.images = images
        self.redis = redis
        self.mongo_client = mongo_client
        self.use_transactions = use_transactions
        self.lock_ttl = lock_ttl

    @asynccontextmanager
    async def write_boundary(self, product_id: str):
        lock = await self._lock(product_id)
        try:
            if self.use_transactions and self.mongo_client is not None:
                async with await self.mongo_client.start_session() as session:
                    async with session.start_transaction():
                        yield session
            else:
                yield None
        finally:
            if lock is not None:
                try:
                    await lock.release()
                except RedisError as e:
                    logger.warning("lifecycle lock release error product_id=%s err=%s", product_id, e)

    async def _lock(self, product_id: str) -> Optional[RedisLock]:
        if self.redis is None:
            return None
        lock = RedisLock(self.redis, f"product:{product_id}", ttl=self.lock_ttl)
        try:
            acquired = await lock.acquire_wait(timeout=self.lock_ttl)
        except RedisError as e:
            logger.warning("lifecycle lock unavailable product_id=%s err=%s (continuing unlocked)", product_id, e)
            return None
        if not acquired:
            raise ConflictError(
                "Another transaction on this product is in progress",
                details={"product_id": product_id},
            )
        return lock

    async def _store_image(self, transaction_id: str, image_data: Optional[str]) -> Optional[str]:
        if not image_data:
            return None
        return await asyncio.to_thread(self.images.put, f"{transaction_id}.jpg", image_data)

    async def _discard_image(self, key: Optional[str]) -> None:
        if key is None:
            return
        try:
            await asyncio.to_thread(self.images.delete, key)
        except OSError as e:
            logger.warning("lifecycle orphan image left key=%s err=%s", key, e)

    async def record_transaction(
        self,
        product_id: str,
        acting_user: str,
        action,
        description: str = "",
        price: Optional[float] = None,
        image_data: Optional[str] = None,
    ) -> Tuple[Transaction, Product]:
        """
        Append a transaction and apply its effect on the product:
        owner becomes the acting user, price follows the transaction when
        given, status follows the action.
        """
        t0 = time.perf_counter()
        act = parse_action(action)
        if price is not None and price < 0:
            raise InvalidInputError("price must not be negative", details={"price": price})

        logger.info("record_transaction start product_id=%s user_id=%s action=%s", product_id, acting_user, act.value)
        txn_id = new_id()
        # Stored before the boundary; removed again if the writes fail
        image_key = await self._store_image(txn_id, image_data)
        try:
            async with self.write_boundary(product_id) as session:
                product = await self.products.get_by_id(product_id, session=session)
                if product is None:
                    raise NotFoundError("product", product_id)

                transaction = Transaction(
                    id=txn_id,
                    item_id=product.id,
                    user_id=acting_user,
                    action=act,
                    description=description,
                    image_url=image_key,
                    price=price,
                )

                changes = {"user_id": acting_user, "status": STATUS_FOR_ACTION[act].value}
                if price is not None:
                    changes["price"] = price
                updated = product.model_copy(update=changes)

                await self.ledger.create(transaction, session=session)
                await self.products.update(updated, session=session)
        except Exception:
            await self._discard_image(image_key)
            raise

        logger.info(
            "record_transaction done product_id=%s txn_id=%s status=%s->%s total_time=%.3fs",
            product_id, txn_id, product.status, updated.status, time.perf_counter() - t0,
        )
        return transaction, updated

    async def create_product(
        self,
        owner_id: str,
        *,
        name: str,
        description: str = "",
        price: float = 0.0,
        category: str = "",
        sub_category: str = "",
        image_data: Optional[str] = None,
    ) -> Tuple[Product, Transaction]:
        """New `available` product plus its initial `submitted` transaction."""
        if price < 0:
            raise InvalidInputError("price must not be negative", details={"price": price})
        product = Product(
            user_id=owner_id,
            name=name,
            description=description,
            price=price,
            category=category,
            sub_category=sub_category,
        )
        txn_id = new_id()
        image_key = await self._store_image(txn_id, image_data)
        transaction = Transaction(
            id=txn_id,
            item_id=product.id,
            user_id=owner_id,
            action=TransactionAction.SUBMITTED,
            description=description,
            image_url=image_key,
        )
        try:
            async with self.write_boundary(product.id) as session:
                await self.products.create(product, session=session)
                await self.ledger.create(transaction, session=session)
        except Exception:
            await self._discard_image(image_key)
            raise

        logger.info("create_product done product_id=%s owner=%s", product.id, owner_id)
        return product, transaction

    async def delete_product(self, product_id: str, acting_user: str) -> None:
        """Owner-only delete; the ledger and ratings are left untouched."""
        async with self.write_boundary(product_id) as session:
            product = await self.products.get_by_id(product_id, session=session)
            if product is None:
                raise NotFoundError("product", product_id)
            if product.user_id != acting_user:
                raise ForbiddenError("Only the owner can delete a product", details={"product_id": product_id})
            await self.products.delete(product_id, session=session)
        logger.info("delete_product done product_id=%s", product_id)
