# app/api/v1/routers/products.py
from fastapi import APIRouter, Depends, Query
from typing import Annotated, Optional
import time
import logging

from app.api.deps import get_aggregator, get_lifecycle, get_product_view
from app.api.v1.schemas.marketplace import PaginatedProductListOut, ProductIn, ProductListOut, ProductOut
from app.core.identity import Viewer, require_viewer, resolve_viewer
from app.domain.models.product import ProductStatus
from app.domain.services.aggregator_svc import RecommendationAggregator
from app.domain.services.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.domain.services.lifecycle_svc import ProductLifecycleManager
from app.domain.services.product_view_svc import ProductAggregateView
from app.utils.ids import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])

ViewerDep = Annotated[Viewer, Depends(resolve_viewer)]
AuthDep = Annotated[Viewer, Depends(require_viewer)]
AggregatorDep = Annotated[RecommendationAggregator, Depends(get_aggregator)]

# Pagination params are validated by page_offset (400 on <= 0), not by Query bounds
CountQ = Annotated[int, Query(le=MAX_PAGE_SIZE)]
PageQ = Annotated[int, Query()]


@router.get("/products", response_model=ProductOut)
async def get_product(
    viewer: ViewerDep,
    id: Optional[str] = Query(None, description="Product id"),
    view: ProductAggregateView = Depends(get_product_view),
):
    product_id = parse_id(id, field="id")
    start_time = time.perf_counter()
    product = await view.get(product_id, viewer)
    logger.info("Response: get_product product_id=%s elapsed_time=%.4fs", product_id, time.perf_counter() - start_time)
    return {"product": product}


@router.post("/products", response_model=ProductOut, status_code=201)
async def create_product(
    body: ProductIn,
    viewer: AuthDep,
    lifecycle: ProductLifecycleManager = Depends(get_lifecycle),
    view: ProductAggregateView = Depends(get_product_view),
):
    """Create a product owned by the caller, with its initial `submitted` transaction."""
    product, _ = await lifecycle.create_product(
        viewer.user_id,
        name=body.name,
        description=body.description,
        price=body.price,
        category=body.category,
        sub_category=body.sub_category,
        image_data=body.image_data,
    )
    return {"product": await view.enrich(product, viewer)}


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    viewer: AuthDep,
    lifecycle: ProductLifecycleManager = Depends(get_lifecycle),
):
    pid = parse_id(product_id, field="product_id")
    await lifecycle.delete_product(pid, viewer.user_id)
    return {"message": "Product deleted successfully"}


# ---- recommendation lists ---------------------------------------------------

@router.get("/products/content-based", response_model=ProductListOut)
async def content_based(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    image_url: Optional[str] = Query(None, description="Reference image name"),
):
    """
    Products visually similar to a reference image.
    Pipeline: scoring service → image names resolved through the ledger → random fill → enrich.
    """
    logger.info("Request: content_based image_url=%s", image_url)
    start_time = time.perf_counter()
    products = await aggregator.by_content(image_url or "", viewer)
    logger.info("Response: content_based count=%s elapsed_time=%.4fs", len(products), time.perf_counter() - start_time)
    return {"products": products}


@router.get("/products/collaborative", response_model=ProductListOut)
async def collaborative(viewer: ViewerDep, aggregator: AggregatorDep):
    """Personalized list for the caller; anonymous callers get a random sample."""
    logger.info("Request: collaborative user_id=%s", viewer.user_id)
    start_time = time.perf_counter()
    products = await aggregator.by_collaborative(viewer)
    logger.info("Response: collaborative count=%s elapsed_time=%.4fs", len(products), time.perf_counter() - start_time)
    return {"products": products}


@router.get("/products/item-based", response_model=ProductListOut)
async def item_based(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    product_id: Optional[str] = Query(None),
):
    pid = parse_id(product_id, field="product_id")
    logger.info("Request: item_based product_id=%s", pid)
    start_time = time.perf_counter()
    products = await aggregator.by_item(pid, viewer)
    logger.info("Response: item_based count=%s elapsed_time=%.4fs", len(products), time.perf_counter() - start_time)
    return {"products": products}


@router.get("/products/random", response_model=ProductListOut)
async def random_products(viewer: ViewerDep, aggregator: AggregatorDep):
    return {"products": await aggregator.random(viewer)}


@router.get("/products/random/paginated", response_model=PaginatedProductListOut)
async def random_paginated(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    count: CountQ = DEFAULT_PAGE_SIZE,
    page: PageQ = 1,
):
    """Stable random order (shuffle key drawn at creation), so pages do not overlap."""
    products = await aggregator.random_page(count, page, viewer)
    return {"products": products, "page": page, "count": count, "total": len(products)}


@router.get("/products/status", response_model=ProductListOut)
async def products_by_status(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    status: ProductStatus = Query(...),
    limit: CountQ = DEFAULT_PAGE_SIZE,
    page: PageQ = 1,
):
    return {"products": await aggregator.by_status(status.value, limit, page, viewer)}


@router.get("/products/user", response_model=ProductListOut)
async def products_by_user(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    user_id: Optional[str] = Query(None),
    count: CountQ = DEFAULT_PAGE_SIZE,
    page: PageQ = 1,
):
    uid = parse_id(user_id, field="user_id")
    return {"products": await aggregator.by_user(uid, count, page, viewer)}


@router.get("/products/rated", response_model=ProductListOut)
async def products_rated_by(
    viewer: ViewerDep,
    aggregator: AggregatorDep,
    user_id: Optional[str] = Query(None),
):
    uid = parse_id(user_id, field="user_id")
    return {"products": await aggregator.rated_by(uid, viewer)}
