# app/api/v1/routers/ratings.py
from fastapi import APIRouter, Depends
from typing import Annotated
import logging

from app.api.deps import get_rating_service
from app.api.v1.schemas.marketplace import RatingAverageOut, RatingIn, RatingListOut, RatingOut
from app.core.identity import Viewer, require_viewer
from app.domain.services.rating_svc import RatingService
from app.utils.ids import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ratings"])

RatingsDep = Annotated[RatingService, Depends(get_rating_service)]


@router.post("/ratings", response_model=RatingOut)
async def submit_rating(
    body: RatingIn,
    viewer: Annotated[Viewer, Depends(require_viewer)],
    ratings: RatingsDep,
):
    """Upsert: a second rating from the same user replaces the first."""
    pid = parse_id(body.product_id, field="product_id")
    rating = await ratings.submit_rating(viewer.user_id, pid, body.score)
    return {"rating": rating}


@router.delete("/ratings/{rating_id}")
async def delete_rating(
    rating_id: str,
    viewer: Annotated[Viewer, Depends(require_viewer)],
    ratings: RatingsDep,
):
    rid = parse_id(rating_id, field="rating_id")
    await ratings.delete_rating(rid, viewer.user_id)
    return {"message": "Rating deleted successfully"}


@router.get("/ratings/user/{user_id}", response_model=RatingListOut)
async def ratings_for_user(user_id: str, ratings: RatingsDep):
    uid = parse_id(user_id, field="user_id")
    return {"ratings": await ratings.ratings_for_user(uid)}


@router.get("/ratings/product/{product_id}/average", response_model=RatingAverageOut)
async def rating_average(product_id: str, ratings: RatingsDep):
    pid = parse_id(product_id, field="product_id")
    average, count = await ratings.average(pid)
    return {"average": average, "count": count}
