# app/domain/services/aggregator_svc.py
import logging
import time
from typing import Awaitable, Callable, Iterable, List, Optional

from redis.exceptions import RedisError

from app.core.errors import InvalidInputError, UpstreamUnavailableError
from app.core.identity import Viewer
from app.domain.models.product import CandidateSource, EnrichedProduct, Product, RecommendationCandidate
from app.domain.repositories.reco_cache_repo import RecoCacheRepo
from app.domain.services.constants import FINAL_K

logger = logging.getLogger(__name__)


def page_offset(count: int, page: int) -> int:
    """offset = (page - 1) * count, rejecting non-positive values."""
    if count <= 0 or page <= 0:
        raise InvalidInputError(
            "count/limit and page must be positive integers",
            details={"count": count, "page": page},
        )
    return (page - 1) * count


def dedupe_candidates(
    candidates: Iterable[RecommendationCandidate],
    target: Optional[int] = None,
    exclude: Iterable[str] = (),
) -> List[RecommendationCandidate]:
    """First occurrence of each product id wins; order kept, optionally capped at `target`."""
    seen = set(exclude)
    out: List[RecommendationCandidate] = []
    for c in candidates:
        if c.product_id in seen:
            continue
        seen.add(c.product_id)
        out.append(c)
        if target is not None and len(out) >= target:
            break
    return out


class RecommendationAggregator:
    """
    Recommendation lists with a guaranteed fallback.

    Pipeline for the live sources (content / collaborative / item):
      1) attempt the live source (Redis cache, then the scoring service);
      2) drop duplicate and excluded ids, keeping gateway order;
      3) hydrate into products (unknown ids are skipped), then truncate to the
         target size and measure the shortfall;
      4) fill it from a random sample that excludes what is already selected;
      5) enrich each product (failed items are dropped).
    A failing scoring service yields an empty live stage, never an error.
    """

    def __init__(
        self,
        products,
        ledger,
        gateway,
        view,
        *,
        ratings=None,
        target_size: int = FINAL_K,
        redis=None,
        cache_ttl: int = 600,
        cache_prefix: str = "reco",
    ):
        self.products = products
        self.ledger = ledger
        self.gateway = gateway
        self.view = view
        self.ratings = ratings
        self.target_size = target_size
        self.cache = RecoCacheRepo(redis, key_prefix=cache_prefix) if redis is not None else None
        self.cache_ttl = cache_ttl

    # ---- stage 1: live source ---------------------------------------------

    async def _attempt_live(
        self,
        source: CandidateSource,
        subject: str,
        fetch: Callable[[], Awaitable[List[RecommendationCandidate]]],
    ) -> List[RecommendationCandidate]:
        key = self.cache.key(source.value, subject, self.target_size) if self.cache else None
        if key:
            try:
                if cached := await self.cache.get(key):
                    logger.info("aggregator cache_hit source=%s subject=%s items=%s", source.value, subject, len(cached))
                    return cached
            except RedisError as e:
                logger.warning("aggregator redis.get error key=%s err=%s", key, e)

        t0 = time.perf_counter()
        try:
            live = await fetch()
        except UpstreamUnavailableError as e:
            logger.warning(
                "aggregator live source failed source=%s subject=%s err=%s time=%.3fs (falling back to random)",
                source.value, subject, e.message, time.perf_counter() - t0,
            )
            return []
        logger.info("aggregator live ok source=%s subject=%s items=%s", source.value, subject, len(live))

        if key and live:
            try:
                await self.cache.set(key, live, ttl=self.cache_ttl)
            except RedisError as e:
                logger.warning("aggregator redis.set error key=%s err=%s", key, e)
        return live

    # ---- stages 2-5 --------------------------------------------------------

    async def _fill(self, selected: List[Product], exclude: Iterable[str] = ()) -> List[Product]:
        shortfall = self.target_size - len(selected)
        if shortfall <= 0:
            return selected[: self.target_size]

        excluded = {p.id for p in selected} | set(exclude)
        fill: List[Product] = []
        for p in await self.products.sample(shortfall, exclude=excluded):
            if p.id in excluded:
                continue
            excluded.add(p.id)
            fill.append(p)
        logger.info("aggregator fill live=%s shortfall=%s filled=%s", len(selected), shortfall, len(fill))
        return selected + fill[:shortfall]

    async def _hydrate(self, ids: List[str]) -> List[Product]:
        found = {p.id: p for p in await self.products.get_by_ids(ids)}
        missing = [pid for pid in ids if pid not in found]
        if missing:
            logger.info("aggregator skipped unknown product ids n=%s ids=%s", len(missing), missing[:10])
        return [found[pid] for pid in ids if pid in found]

    async def _run(
        self,
        source: CandidateSource,
        subject: str,
        fetch: Optional[Callable[[], Awaitable[List[RecommendationCandidate]]]],
        viewer: Viewer,
        exclude: Iterable[str] = (),
    ) -> List[EnrichedProduct]:
        t0 = time.perf_counter()
        exclude = set(exclude)
        live = await self._attempt_live(source, subject, fetch) if fetch is not None else []
        # Uncapped: unknown ids are only discovered at hydration
        live = dedupe_candidates(live, exclude=exclude)
        selected = (await self._hydrate([c.product_id for c in live]))[: self.target_size]
        products = await self._fill(selected, exclude=exclude)
        enriched = await self.view.enrich_many(products, viewer)
        logger.info(
            "aggregator done source=%s live=%s items=%s total_time=%.3fs",
            source.value, len(live), len(enriched), time.perf_counter() - t0,
        )
        return enriched

    # ---- live-backed lists -------------------------------------------------

    async def by_content(self, image_ref: str, viewer: Viewer) -> List[EnrichedProduct]:
        if not image_ref:
            raise InvalidInputError("image_url is required", details={"field": "image_url"})

        async def fetch() -> List[RecommendationCandidate]:
            matches = await self.gateway.content_based(image_ref)
            return await self._resolve_images([(m.name, m.score) for m in matches])

        return await self._run(CandidateSource.CONTENT, image_ref, fetch, viewer)

    async def _resolve_images(self, matches) -> List[RecommendationCandidate]:
        """Image names -> product ids through the ledger, in match order."""
        if not matches:
            return []
        txns = await self.ledger.get_by_image_refs([name for name, _ in matches])
        item_for_image = {t.image_url: t.item_id for t in txns}
        return [
            RecommendationCandidate(product_id=item_for_image[name], source=CandidateSource.CONTENT, score=score)
            for name, score in matches
            if name in item_for_image
        ]

    async def by_collaborative(self, viewer: Viewer) -> List[EnrichedProduct]:
        if not viewer.authenticated:
            logger.info("aggregator collaborative anonymous viewer -> random sample")
            return await self._run(CandidateSource.COLLABORATIVE, "anonymous", None, viewer)

        return await self._run(
            CandidateSource.COLLABORATIVE,
            viewer.user_id,
            lambda: self.gateway.collaborative(viewer.user_id),
            viewer,
        )

    async def by_item(self, product_id: str, viewer: Viewer) -> List[EnrichedProduct]:
        return await self._run(
            CandidateSource.ITEM,
            product_id,
            lambda: self.gateway.item_based(product_id),
            viewer,
            exclude=[product_id],
        )

    async def random(self, viewer: Viewer) -> List[EnrichedProduct]:
        return await self._run(CandidateSource.RANDOM, "-", None, viewer)

    # ---- deterministic paginated reads ------------------------------------

    async def random_page(self, count: int, page: int, viewer: Viewer) -> List[EnrichedProduct]:
        products = await self.products.get_random(count, page_offset(count, page))
        return await self.view.enrich_many(products, viewer)

    async def by_status(self, status: str, limit: int, page: int, viewer: Viewer) -> List[EnrichedProduct]:
        products = await self.products.get_by_status(status, limit, page_offset(limit, page))
        return await self.view.enrich_many(products, viewer)

    async def by_user(self, user_id: str, count: int, page: int, viewer: Viewer) -> List[EnrichedProduct]:
        products = await self.products.get_by_user(user_id, count, page_offset(count, page))
        return await self.view.enrich_many(products, viewer)

    async def rated_by(self, user_id: str, viewer: Viewer) -> List[EnrichedProduct]:
        ids = await self.ratings.get_rated_product_ids(user_id)
        products = await self._hydrate(ids)
        return await self.view.enrich_many(products, viewer)
