"""Tests for the FastAPI endpoints.

Services are wired to the in-memory fakes through dependency overrides, so
no MongoDB, Redis or scoring service is needed (the lifespan never runs).
"""

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_aggregator, get_lifecycle, get_product_view, get_rating_service
from app.main import app
from app.utils.ids import new_id

from conftest import FakeGateway


@pytest.fixture
def client(view, lifecycle, rating_service, make_aggregator):
    gateway = FakeGateway(fail=True)
    app.dependency_overrides[get_product_view] = lambda: view
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_rating_service] = lambda: rating_service
    app.dependency_overrides[get_aggregator] = lambda: make_aggregator(gateway)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user_id=None):
    return {"X-User-ID": user_id or new_id()}


def test_get_product(client, catalog):
    response = client.get(f"/products?id={catalog[0].id}")

    assert response.status_code == 200
    product = response.json()["product"]
    assert product["id"] == catalog[0].id
    assert product["user"]["id"] == catalog[0].user_id
    assert product["rating_count"] == 0


def test_get_product_with_malformed_id(client):
    response = client.get("/products?id=not-a-uuid")

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation_error"


def test_get_unknown_product(client):
    response = client.get(f"/products?id={new_id()}")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["category"] == "not_found"
    assert error["details"]["kind"] == "product"


def test_transaction_requires_identity(client, catalog):
    response = client.post(f"/transactions/{catalog[0].id}", json={"action": "sold"})

    assert response.status_code == 401
    assert response.json()["error"]["category"] == "unauthenticated"


def test_malformed_identity_is_anonymous(client, catalog):
    response = client.post(f"/transactions/{catalog[0].id}", json={"action": "sold"}, headers={"X-User-ID": "admin"})
    assert response.status_code == 401


def test_sale_transaction(client, products, catalog):
    buyer = new_id()
    response = client.post(
        f"/transactions/{catalog[0].id}",
        json={"action": "sold", "description": "resold item", "price": 50},
        headers=_auth(buyer),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "sold"
    assert body["transaction"]["action"] == "sold"
    assert body["transaction"]["price"] == 50
    assert products.items[catalog[0].id].user_id == buyer


def test_unknown_action_is_rejected(client, catalog):
    response = client.post(f"/transactions/{catalog[0].id}", json={"action": "donated"}, headers=_auth())

    assert response.status_code == 400
    assert "allowed" in response.json()["error"]["details"]


def test_create_and_delete_product(client, products):
    owner = new_id()
    response = client.post("/products", json={"name": "wool coat", "price": 25.0}, headers=_auth(owner))

    assert response.status_code == 201
    product = response.json()["product"]
    assert product["status"] == "available"
    assert [t["action"] for t in product["transactions"]] == ["submitted"]

    forbidden = client.delete(f"/products/{product['id']}", headers=_auth())
    assert forbidden.status_code == 403

    deleted = client.delete(f"/products/{product['id']}", headers=_auth(owner))
    assert deleted.status_code == 200
    assert product["id"] not in products.items


def test_collaborative_falls_back_when_scorer_is_down(client):
    response = client.get("/products/collaborative", headers=_auth())

    assert response.status_code == 200
    ids = [p["id"] for p in response.json()["products"]]
    assert len(ids) == len(set(ids)) == 10


def test_random_paginated(client, products):
    response = client.get("/products/random/paginated?count=10&page=2")

    assert response.status_code == 200
    body = response.json()
    assert (body["page"], body["count"], body["total"]) == (2, 10, 10)
    assert products.calls[-1] == ("get_random", 10, 10)


@pytest.mark.parametrize("query", ["count=0&page=1", "count=10&page=0", "count=abc"])
def test_random_paginated_rejects_bad_pagination(client, query):
    response = client.get(f"/products/random/paginated?{query}")

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation_error"


def test_products_by_status(client, products):
    response = client.get("/products/status?status=sold&limit=5&page=3")

    assert response.status_code == 200
    assert products.calls[-1] == ("get_by_status", 5, 10)


def test_products_by_unknown_status(client):
    response = client.get("/products/status?status=lost")
    assert response.status_code == 400


def test_rating_roundtrip(client, catalog):
    user = new_id()
    pid = catalog[0].id
    client.post("/ratings", json={"product_id": pid, "score": 4.0}, headers=_auth(user))
    response = client.post("/ratings", json={"product_id": pid, "score": 2.0}, headers=_auth(user))
    assert response.status_code == 200

    average = client.get(f"/ratings/product/{pid}/average").json()
    assert average == {"average": 2.0, "count": 1}

    mine = client.get(f"/ratings/user/{user}").json()["ratings"]
    assert [r["score"] for r in mine] == [2.0]


def test_rating_out_of_range(client, catalog):
    response = client.post("/ratings", json={"product_id": catalog[0].id, "score": 9}, headers=_auth())
    assert response.status_code == 400


def test_delete_rating_by_someone_else(client, catalog):
    author = new_id()
    rating = client.post("/ratings", json={"product_id": catalog[0].id, "score": 3}, headers=_auth(author)).json()["rating"]

    response = client.delete(f"/ratings/{rating['id']}", headers=_auth())
    assert response.status_code == 403
