"""Tests for the scoring-service client, using httpx.MockTransport."""

import json

import httpx
import pytest

from app.core.errors import UpstreamUnavailableError
from app.domain.services.reco_gateway import RecommendationGateway
from app.utils.ids import new_id

CONTENT_URL = "http://content.test/recommend"
COLLAB_URL = "http://collab.test/recommend"


def _gateway(handler, **kw):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    opts = {"content_url": CONTENT_URL, "collab_url": COLLAB_URL}
    opts.update(kw)
    return RecommendationGateway(client, **opts)


async def test_collaborative_keeps_service_order():
    a, b, c = new_id(), new_id(), new_id()
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"user_id": "u", "recommendations": {b: 0.9, a: 0.5, c: 0.1}})

    user = new_id()
    out = await _gateway(handler).collaborative(user)

    assert [x.product_id for x in out] == [b, a, c]
    assert [x.score for x in out] == [0.9, 0.5, 0.1]
    assert seen["params"] == {"user_id": user}


async def test_item_based_reads_similar_items():
    a = new_id()

    def handler(request):
        assert request.url.params["product_id"]
        return httpx.Response(200, json={"product_id": "p", "similar_items": {a: 0.7}})

    out = await _gateway(handler).item_based(new_id())
    assert [x.product_id for x in out] == [a]
    assert out[0].source == "item"


async def test_content_based_posts_filename():
    def handler(request):
        assert request.method == "POST"
        assert json.loads(request.content) == {"filename": "query.jpg"}
        return httpx.Response(200, json=[{"name": "a.jpg", "score": 0.9}, {"name": "b.jpg", "score": 0.4}])

    out = await _gateway(handler).content_based("query.jpg")
    assert [m.name for m in out] == ["a.jpg", "b.jpg"]


async def test_non_200_is_a_failure():
    gateway = _gateway(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(UpstreamUnavailableError):
        await gateway.collaborative(new_id())


async def test_malformed_json_is_a_failure():
    gateway = _gateway(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(UpstreamUnavailableError):
        await gateway.item_based(new_id())


async def test_non_uuid_id_fails_the_whole_call():
    def handler(request):
        return httpx.Response(200, json={"recommendations": {new_id(): 0.9, "not-a-uuid": 0.5}})

    with pytest.raises(UpstreamUnavailableError):
        await _gateway(handler).collaborative(new_id())


async def test_timeout_is_a_failure():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(UpstreamUnavailableError) as exc:
        await _gateway(handler).collaborative(new_id())
    assert exc.value.details["source"] == "collaborative"


async def test_transport_error_is_a_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailableError):
        await _gateway(handler).content_based("x.jpg")


async def test_unconfigured_endpoint_is_a_failure():
    gateway = _gateway(lambda request: httpx.Response(200, json=[]), content_url="")
    with pytest.raises(UpstreamUnavailableError):
        await gateway.content_based("x.jpg")
