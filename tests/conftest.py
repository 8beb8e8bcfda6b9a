"""Shared fixtures: in-memory versions of the store and gateway contracts."""

import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from app.core.errors import UpstreamUnavailableError
from app.core.identity import Viewer
from app.domain.models.product import OwnerSummary, Product, Rating, Transaction
from app.domain.services.aggregator_svc import RecommendationAggregator
from app.domain.services.lifecycle_svc import ProductLifecycleManager
from app.domain.services.product_view_svc import ProductAggregateView
from app.domain.services.rating_svc import RatingService
from app.utils.ids import new_id


class FakeProductRepo:
    def __init__(self, products=()):
        self.items: Dict[str, Product] = {p.id: p for p in products}
        self.calls: List[tuple] = []

    async def create(self, product, *, session=None):
        self.items[product.id] = product

    async def update(self, product, *, session=None):
        if product.id not in self.items:
            return False
        self.items[product.id] = product
        return True

    async def delete(self, product_id, *, session=None):
        return self.items.pop(product_id, None) is not None

    async def get_by_id(self, product_id, *, session=None):
        return self.items.get(product_id)

    async def get_by_ids(self, ids):
        # Reverse order on purpose: the real store gives no ordering guarantee
        return [self.items[i] for i in reversed(ids) if i in self.items]

    def _page(self, products, count, offset):
        return products[offset:offset + count]

    async def get_by_user(self, user_id, count, offset):
        self.calls.append(("get_by_user", count, offset))
        mine = sorted((p for p in self.items.values() if p.user_id == user_id), key=lambda p: p.created_at, reverse=True)
        return self._page(mine, count, offset)

    async def get_by_status(self, status, limit, offset):
        self.calls.append(("get_by_status", limit, offset))
        matching = sorted((p for p in self.items.values() if p.status == status), key=lambda p: p.created_at, reverse=True)
        return self._page(matching, limit, offset)

    async def get_random(self, count, offset):
        self.calls.append(("get_random", count, offset))
        ordered = sorted(self.items.values(), key=lambda p: (p.shuffle_key, p.id))
        return self._page(ordered, count, offset)

    async def sample(self, count, exclude=()):
        excluded = set(exclude)
        pool = [p for p in self.items.values() if p.id not in excluded]
        return random.sample(pool, min(count, len(pool)))


class FakeLedger:
    def __init__(self):
        self.items: List[Transaction] = []

    async def create(self, transaction, *, session=None):
        self.items.append(transaction)

    async def get_by_product(self, item_id):
        return sorted((t for t in self.items if t.item_id == item_id), key=lambda t: t.created_at, reverse=True)

    async def get_by_image_refs(self, refs):
        wanted = set(refs)
        return [t for t in self.items if t.image_url in wanted]


class FakeRatingRepo:
    def __init__(self):
        self.items: Dict[str, Rating] = {}

    async def create(self, rating):
        self.items[rating.id] = rating

    async def update(self, rating):
        self.items[rating.id] = rating

    async def delete(self, rating_id):
        return self.items.pop(rating_id, None) is not None

    async def get_by_id(self, rating_id):
        return self.items.get(rating_id)

    async def find_by_user_and_product(self, user_id, product_id):
        for r in self.items.values():
            if r.user_id == user_id and r.product_id == product_id:
                return r
        return None

    async def get_average_and_count(self, product_id):
        scores = [r.score for r in self.items.values() if r.product_id == product_id]
        if not scores:
            return 0.0, 0
        return sum(scores) / len(scores), len(scores)

    async def get_by_user(self, user_id):
        return [r for r in self.items.values() if r.user_id == user_id]

    async def get_rated_product_ids(self, user_id):
        return [r.product_id for r in self.items.values() if r.user_id == user_id]


class FakeUserRepo:
    """Every user exists unless listed in `missing`."""

    def __init__(self, missing=()):
        self.missing = set(missing)

    async def get_demographics(self, user_id):
        if user_id in self.missing:
            return None
        return OwnerSummary(id=user_id, name=f"user-{user_id[:4]}")


class FakeImageStore:
    def __init__(self):
        self.saved: Dict[str, str] = {}

    def put(self, key, image_data):
        self.saved[key] = image_data
        return key

    def delete(self, key):
        self.saved.pop(key, None)


class FakeGateway:
    """Returns canned candidates per source, or raises when `fail` is set."""

    def __init__(self, collaborative=(), item=(), content=(), fail=False):
        self.results = {"collaborative": list(collaborative), "item": list(item), "content": list(content)}
        self.fail = fail
        self.calls: List[tuple] = []

    def _answer(self, source, subject):
        self.calls.append((source, subject))
        if self.fail:
            raise UpstreamUnavailableError(source, "connection refused")
        return self.results[source]

    async def collaborative(self, user_id):
        return self._answer("collaborative", user_id)

    async def item_based(self, product_id):
        return self._answer("item", product_id)

    async def content_based(self, image_ref):
        return self._answer("content", image_ref)


class FakeRedis:
    """Just enough of redis.asyncio for the reco cache and the write lock."""

    def __init__(self):
        self.store: Dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


def make_products(n: int, owner: Optional[str] = None, status: str = "available") -> List[Product]:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        Product(
            user_id=owner or new_id(),
            name=f"item {i}",
            price=10.0 + i,
            category="clothing",
            status=status,
            created_at=base + timedelta(minutes=i),
        )
        for i in range(n)
    ]


@pytest.fixture
def catalog():
    return make_products(20)


@pytest.fixture
def products(catalog):
    return FakeProductRepo(catalog)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def ratings():
    return FakeRatingRepo()


@pytest.fixture
def users():
    return FakeUserRepo()


@pytest.fixture
def images():
    return FakeImageStore()


@pytest.fixture
def viewer():
    return Viewer(user_id=new_id())


@pytest.fixture
def view(products, ledger, ratings, users):
    return ProductAggregateView(products, ledger, ratings, users)


@pytest.fixture
def rating_service(ratings, products):
    return RatingService(ratings, products)


@pytest.fixture
def lifecycle(products, ledger, images):
    return ProductLifecycleManager(products, ledger, images)


@pytest.fixture
def make_aggregator(products, ledger, ratings, view):
    def _make(gateway=None, **kw):
        return RecommendationAggregator(products, ledger, gateway or FakeGateway(), view, ratings=ratings, **kw)
    return _make


@pytest.fixture
def fake_redis():
    return FakeRedis()
