import logging
import time
from typing import List

from pymongo.errors import PyMongoError

from app.core.errors import NotFoundError
from app.core.identity import Viewer
from app.domain.models.product import EnrichedProduct, Product

logger = logging.getLogger(__name__)


class ProductAggregateView:
    """
    Builds the externally visible EnrichedProduct.

    Reads per product:
      1) the transaction ledger, newest first;
      2) the rating aggregate (average 0 / count 0 when unrated);
      3) the viewer's own score (0 when absent or anonymous);
      4) the owner summary, which is mandatory.
    Any failing read fails the whole assembly.
    """

    def __init__(self, products, ledger, ratings, users):
        self.products = products
        self.ledger = ledger
        self.ratings = ratings
        self.users = users

    async def get(self, product_id: str, viewer: Viewer) -> EnrichedProduct:
        product = await self.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("product", product_id)
        return await self.enrich(product, viewer)

    async def enrich(self, product: Product, viewer: Viewer) -> EnrichedProduct:
        t0 = time.perf_counter()
        transactions = await self.ledger.get_by_product(product.id)
        average, count = await self.ratings.get_average_and_count(product.id)

        own_score = 0.0
        if viewer.authenticated:
            mine = await self.ratings.find_by_user_and_product(viewer.user_id, product.id)
            own_score = mine.score if mine else 0.0

        owner = await self.users.get_demographics(product.user_id)
        if owner is None:
            raise NotFoundError("user", product.user_id)

        logger.debug(
            "enrich product_id=%s txns=%s ratings=%s time=%.3fs",
            product.id, len(transactions), count, time.perf_counter() - t0,
        )
        return EnrichedProduct(
            id=product.id,
            user=owner,
            name=product.name,
            description=product.description,
            price=product.price,
            category=product.category,
            sub_category=product.sub_category,
            status=product.status,
            created_at=product.created_at,
            transactions=transactions,
            rating_average=average,
            rating_count=count,
            rating=own_score,
        )

    async def enrich_many(self, products: List[Product], viewer: Viewer) -> List[EnrichedProduct]:
        """List variant: a product whose assembly fails is dropped, not the list."""
        out: List[EnrichedProduct] = []
        for p in products:
            try:
                out.append(await self.enrich(p, viewer))
            except NotFoundError as e:
                logger.warning("enrich dropped product_id=%s reason=%s", p.id, e.message)
            except PyMongoError as e:
                logger.error("enrich dropped product_id=%s mongo error=%s", p.id, e)
        return out
