# app/api/deps.py
from fastapi import Depends
from app.core.config import Settings, get_settings
from app.db.http import get_http_client
from app.db.mongo import get_client, get_db
from app.db.redis import get_redis
from app.domain.repositories.image_repo import LocalImageStore
from app.domain.repositories.product_repo import ProductRepo
from app.domain.repositories.rating_repo import RatingRepo
from app.domain.repositories.transaction_repo import TransactionRepo
from app.domain.repositories.user_repo import UserRepo
from app.domain.services.aggregator_svc import RecommendationAggregator
from app.domain.services.lifecycle_svc import ProductLifecycleManager
from app.domain.services.product_view_svc import ProductAggregateView
from app.domain.services.rating_svc import RatingService
from app.domain.services.reco_gateway import RecommendationGateway

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    return db

# Redis client or None (callers degrade without it)
def redis_dep():
    return get_redis()


def get_product_view(db = Depends(mongo_db)) -> ProductAggregateView:
    return ProductAggregateView(ProductRepo(db), TransactionRepo(db), RatingRepo(db), UserRepo(db))


def get_aggregator(
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
    view: ProductAggregateView = Depends(get_product_view),
    settings: Settings = Depends(get_settings),
) -> RecommendationAggregator:
    gateway = RecommendationGateway(
        get_http_client(),
        content_url=settings.RECO_CONTENT_URL,
        collab_url=settings.RECO_COLLAB_URL,
        timeout_s=settings.RECO_TIMEOUT_S,
    )
    return RecommendationAggregator(
        ProductRepo(db),
        TransactionRepo(db),
        gateway,
        view,
        ratings=RatingRepo(db),
        target_size=settings.RECO_TARGET_SIZE,
        redis=redis,
        cache_ttl=settings.reco_cache_ttl,
        cache_prefix=settings.reco_cache_prefix,
    )


def get_lifecycle(
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
    settings: Settings = Depends(get_settings),
) -> ProductLifecycleManager:
    return ProductLifecycleManager(
        ProductRepo(db),
        TransactionRepo(db),
        LocalImageStore(settings.IMAGE_DIR),
        redis=redis,
        mongo_client=get_client(),
        use_transactions=settings.MONGO_TRANSACTIONS,
        lock_ttl=settings.reco_lock_ttl,
    )


def get_rating_service(db = Depends(mongo_db)) -> RatingService:
    return RatingService(RatingRepo(db), ProductRepo(db))
