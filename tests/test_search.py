import pytest

from khidmaty.services import search as search_svc


@pytest.fixture()
def catalog(db):
    db.put("services/s1", {
        "status": "approved", "title": "Plumbing repairs", "city": "Tripoli", "category": "Plumbing",
        "price": 50, "createdAt": 1_000, "images": [{"url": "https://img.example/s1.jpg"}],
    })
    db.put("services/s2", {
        "status": "approved", "title": "Night plumbing", "city": "Benghazi", "category": "Plumbing", "createdAt": 3_000,
    })
    db.put("services/s3", {"status": "pending", "title": "Plumbing (pending)", "city": "Tripoli", "createdAt": 5_000})
    db.put("sale_items/i1", {
        "status": "approved", "title": "Used sink", "city": "Tripoli", "tags": ["plumbing", "home"],
        "rating": 4.5, "createdAt": 2_000,
    })
    db.put("sale_items/i2", {"status": "approved", "title": "Sofa", "trade": {"tradeFor": "plumbing tools"}, "createdAt": 500})
    db.put("users/p1", {"role": "provider", "displayName": "Plumbing Pros", "city": "Tripoli", "createdAt": 10})
    db.put("users/p2", {"role": "seeker", "displayName": "Plumbing fan", "createdAt": 20})


def test_search_requires_q(client):
    resp = client.get("/search")
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_request", "detail": "Missing required query param: q"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_search_rejects_long_q(client):
    resp = client.get("/search", params={"q": "x" * 121})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "q must be 1..120 characters"


def test_search_all_types_in_order(client, catalog):
    body = client.get("/search", params={"q": "plumbing"}).json()
    assert body["query"] == "plumbing"
    assert body["total"] == 5
    assert [(r["type"], r["id"]) for r in body["results"]] == [
        ("service", "s2"),
        ("service", "s1"),
        ("item", "i1"),
        ("item", "i2"),
        ("provider", "p1"),
    ]
    s1 = body["results"][1]
    assert s1["thumb"] == "https://img.example/s1.jpg"
    assert s1["priceFrom"] == 50
    assert body["results"][2]["category"] == "plumbing"
    assert body["results"][2]["rating"] == 4.5


def test_search_filters_by_city_and_type(client, catalog):
    body = client.get("/search", params={"q": "plumbing", "city": "طرابلس", "type": "services"}).json()
    assert [r["id"] for r in body["results"]] == ["s1"]

    providers = client.get("/search", params={"q": "pros", "type": "PROVIDERS"}).json()
    assert [r["title"] for r in providers["results"]] == ["Plumbing Pros"]


def test_search_paginates(client, catalog):
    body = client.get("/search", params={"q": "plumbing", "page": "2", "limit": "2"}).json()
    assert body["page"] == 2 and body["limit"] == 2
    assert body["total"] == 5
    assert [r["id"] for r in body["results"]] == ["i1", "i2"]


def test_search_clamps_paging(client, catalog):
    body = client.get("/search", params={"q": "plumbing", "page": "0", "limit": "500"}).json()
    assert body["page"] == 1
    assert body["limit"] == 50


def test_search_falls_back_without_index(client, db, catalog):
    db.unindexed_order_by.add("services")
    body = client.get("/search", params={"q": "plumbing", "type": "services"}).json()
    assert [r["id"] for r in body["results"]] == ["s2", "s1"]


def test_search_preflight(client):
    resp = client.options("/search")
    assert resp.status_code == 204
    assert "GET" in resp.headers["Access-Control-Allow-Methods"]


def test_item_matching_uses_tokens():
    row = {"title": "Kids bicycle", "tags": ["sport"]}
    assert search_svc.match_item(row, "blue bicycle")
    assert search_svc.match_item(row, "SPORT")
    assert not search_svc.match_item(row, "a car")


def test_fetch_limit():
    assert search_svc.fetch_limit(1) == 80
    assert search_svc.fetch_limit(50) == 500
    assert search_svc.fetch_limit(5000) == 800
    assert search_svc.fetch_limit(5000, hi=600) == 600
