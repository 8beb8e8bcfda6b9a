# app/domain/services/reco_gateway.py
"""
HTTP client for the external scoring service.

Three calls, one contract: return candidates in the order the service sent
them, or raise UpstreamUnavailableError. Transport errors, timeouts, non-200
answers, malformed JSON and non-UUID identifiers are all the same failure.
"""
from __future__ import annotations
from typing import Any, Dict, List
import logging
import time

import httpx
from pydantic import BaseModel, ValidationError

from app.core.errors import UpstreamUnavailableError
from app.domain.models.product import CandidateSource, RecommendationCandidate
from app.utils.ids import try_parse_id

logger = logging.getLogger(__name__)


class ImageMatch(BaseModel):
    name: str
    score: float = 0.0


class RecommendationGateway:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        content_url: str,
        collab_url: str,
        timeout_s: float = 2.0,
    ):
        self.client = client
        self.content_url = content_url
        self.collab_url = collab_url
        self.timeout = httpx.Timeout(timeout_s)

    async def _call(self, source: str, method: str, url: str, **kw) -> Any:
        if not url:
            raise UpstreamUnavailableError(source, "endpoint not configured")
        t0 = time.perf_counter()
        try:
            resp = await self.client.request(method, url, timeout=self.timeout, **kw)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(source, f"timeout: {e!r}")
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(source, f"transport: {e!r}")
        dt = time.perf_counter() - t0

        if resp.status_code != 200:
            raise UpstreamUnavailableError(source, f"status {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamUnavailableError(source, f"malformed json: {e}")
        logger.info("reco_gateway %s ok status=%s time=%.3fs", source, resp.status_code, dt)
        return payload

    @staticmethod
    def _scored_ids(source: CandidateSource, scores: Any) -> List[RecommendationCandidate]:
        """{productID: score} -> candidates, keeping the service's key order."""
        if not isinstance(scores, dict):
            raise UpstreamUnavailableError(source.value, "malformed payload: expected an object of scores")
        items: List[RecommendationCandidate] = []
        for raw_id, score in scores.items():
            pid = try_parse_id(raw_id)
            if pid is None:
                raise UpstreamUnavailableError(source.value, f"invalid product id: {raw_id!r}")
            try:
                items.append(RecommendationCandidate(product_id=pid, source=source, score=float(score)))
            except (TypeError, ValueError):
                raise UpstreamUnavailableError(source.value, f"invalid score for {raw_id!r}")
        return items

    async def content_based(self, image_ref: str) -> List[ImageMatch]:
        """POST {filename} -> [{name, score}]; names are image references."""
        payload = await self._call(
            CandidateSource.CONTENT.value, "POST", self.content_url, json={"filename": image_ref}
        )
        if not isinstance(payload, list):
            raise UpstreamUnavailableError(CandidateSource.CONTENT.value, "malformed payload: expected a list")
        try:
            return [ImageMatch.model_validate(x) for x in payload]
        except ValidationError as e:
            raise UpstreamUnavailableError(CandidateSource.CONTENT.value, f"malformed payload: {e.error_count()} errors")

    async def collaborative(self, user_id: str) -> List[RecommendationCandidate]:
        """GET ?user_id= -> {user_id, recommendations: {productID: score}}"""
        payload: Dict[str, Any] = await self._call(
            CandidateSource.COLLABORATIVE.value, "GET", self.collab_url, params={"user_id": user_id}
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(CandidateSource.COLLABORATIVE.value, "malformed payload")
        return self._scored_ids(CandidateSource.COLLABORATIVE, payload.get("recommendations"))

    async def item_based(self, product_id: str) -> List[RecommendationCandidate]:
        """GET ?product_id= -> {product_id, similar_items: {productID: score}}"""
        payload: Dict[str, Any] = await self._call(
            CandidateSource.ITEM.value, "GET", self.collab_url, params={"product_id": product_id}
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(CandidateSource.ITEM.value, "malformed payload")
        return self._scored_ids(CandidateSource.ITEM, payload.get("similar_items"))
