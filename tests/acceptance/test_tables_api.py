from __future__ import annotations

import pytest

from conftest import PREFIX, project_headers

pytestmark = [pytest.mark.acceptance]

TABLE = f"{PREFIX}/tables/products"


def test_products_end_to_end(client, signup):
    headers = signup("p1")

    r = client.post(TABLE, json={"name": "Laptop", "price": 1500, "category": "electronics"}, headers=headers)
    assert r.status_code == 201, r.text
    laptop = r.json()
    assert laptop["_id"] and laptop["createdAt"]

    r = client.post(
        f"{TABLE}/bulk",
        json=[{"name": "Mouse", "price": 25, "category": "electronics"}, {"name": "Novel", "price": 12, "category": "books"}],
        headers=headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["inserted"] == 2

    r = client.get(TABLE, params={"price_gte": 20, "_sort": "price", "_order": "desc"}, headers=headers)
    assert r.status_code == 200
    assert [d["name"] for d in r.json()] == ["Laptop", "Mouse"]
    assert r.headers["X-Total-Count"] == "2"

    r = client.get(f"{TABLE}/{laptop['_id']}", headers=headers)
    assert r.json()["name"] == "Laptop"

    r = client.put(f"{TABLE}/{laptop['_id']}", json={"name": "Laptop Pro", "price": 2000, "category": "electronics"}, headers=headers)
    assert r.json() == {"modified": 1}

    r = client.patch(TABLE, params={"category": "electronics"}, json={"onSale": True}, headers=headers)
    assert r.json() == {"modified": 2}

    r = client.post(f"{TABLE}/_count", json={"onSale": True}, headers=headers)
    assert r.json() == {"count": 2}

    r = client.delete(f"{TABLE}/{laptop['_id']}", headers=headers)
    assert r.json() == {"deleted": 1}
    r = client.get(f"{TABLE}/{laptop['_id']}", headers=headers)
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"

    r = client.delete(TABLE, params={"category": "books"}, headers=headers)
    assert r.json() == {"deleted": 1}

    r = client.post(f"{TABLE}/_folders", headers=headers)
    assert r.status_code == 201
    assert r.json() == {"folder": "products"}


def test_pagination_headers_match_count(client, signup):
    headers = signup("p1")
    client.post(f"{TABLE}/bulk", json=[{"name": f"item{i}", "price": i} for i in range(15)], headers=headers)

    r = client.get(TABLE, params={"_page": 2, "_limit": 10, "_sort": "price"}, headers=headers)
    assert [d["price"] for d in r.json()] == [10, 11, 12, 13, 14]
    assert r.headers["X-Total-Count"] == "15"
    assert r.headers["X-Page"] == "2"
    assert r.headers["X-Limit"] == "10"

    count = client.post(f"{TABLE}/_count", json={}, headers=headers).json()["count"]
    assert count == 15

    first = client.get(TABLE, params={"_sort": "price"}, headers=headers).json()
    assert len(first) == 10


def test_validation_errors_are_400(client, signup):
    headers = signup("p1")
    r = client.post(TABLE, json={"price": -1}, headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert {e["field"].split(".")[0] for e in body["errors"]} >= {"name", "price"}

    r = client.post(TABLE, json=["not", "an", "object"], headers=headers)
    assert r.status_code == 400

    r = client.get(TABLE, params={"_limit": 0}, headers=headers)
    assert r.status_code == 400


def test_large_integer_filters_match_exactly(client, signup):
    headers = signup("p1")
    client.post(TABLE, json={"name": "big", "sku": 9007199254740993}, headers=headers)
    client.post(TABLE, json={"name": "near", "sku": 9007199254740992}, headers=headers)
    r = client.get(TABLE, params={"sku": "9007199254740993"}, headers=headers)
    assert r.headers["X-Total-Count"] == "1"
    assert r.json()[0]["name"] == "big"


def test_non_finite_numbers_are_rejected(client, signup):
    headers = {**signup("p1"), "Content-Type": "application/json"}
    r = client.post(TABLE, content='{"name": "w", "weight": NaN}', headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert client.post(f"{TABLE}/_count", json={}, headers=headers).json() == {"count": 0}


def test_bulk_with_one_bad_document_inserts_nothing(client, signup):
    headers = signup("p1")
    r = client.post(f"{TABLE}/bulk", json=[{"name": "ok"}, {"name": "bad", "category": "toys"}], headers=headers)
    assert r.status_code == 400
    assert [e["index"] for e in r.json()["errors"]] == [1]
    assert client.post(f"{TABLE}/_count", json={}, headers=headers).json() == {"count": 0}


def test_reserved_table_names_are_rejected(client, signup):
    headers = signup("p1")
    r = client.get(f"{PREFIX}/tables/_users", headers=headers)
    assert r.status_code == 400


def test_auth_is_required(client, signup):
    r = client.get(TABLE, headers=project_headers("p1"))
    assert r.status_code == 401
    r = client.get(TABLE, headers=project_headers("p1", "garbage"))
    assert r.status_code == 403


def test_unauthenticated_requests_do_not_create_projects(client, data_dir):
    assert client.get(TABLE, headers=project_headers("ghost")).status_code == 401
    r = client.get(TABLE, headers=project_headers("ghost", "garbage"))
    assert r.status_code == 403
    assert r.json()["code"] == "TOKEN_INVALID"
    assert client.get(f"{PREFIX}/storage/files", headers=project_headers("ghost")).status_code == 401
    assert not (data_dir / "ghost").exists()


def test_missing_project_header_is_400(client, signup):
    headers = signup("p1")
    del headers["X-Project-Name"]
    r = client.get(TABLE, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_PROJECT"


@pytest.mark.tenancy
def test_projects_are_isolated(client, signup):
    h1 = signup("p1")
    h2 = signup("p2")
    client.post(TABLE, json={"name": "Secret plan"}, headers=h1)
    assert client.get(TABLE, headers=h2).json() == []

    # a p1 token does not open p2
    crossed = {**h1, "X-Project-Name": "p2"}
    assert client.get(TABLE, headers=crossed).status_code == 403


def test_ping(client):
    r = client.get("/ping")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
