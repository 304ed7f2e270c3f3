import httpx
import pytest

from khidmaty.integrations import nominatim


@pytest.fixture()
def osm(monkeypatch):
    state = {"calls": [], "status": 200, "fail": False, "html": False}

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"].append(request)
        if state["fail"]:
            raise httpx.ConnectTimeout("timed out", request=request)
        if state["status"] != 200:
            return httpx.Response(state["status"], json={"error": "busy"})
        if state["html"]:
            return httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"})
        if request.url.path == "/reverse":
            return httpx.Response(200, json={"display_name": f"Martyrs Square ({request.url.params['accept-language']})"})
        return httpx.Response(200, json=[{"display_name": request.url.params["q"], "lat": "32.9", "lon": "13.18"}])

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        nominatim,
        "_client",
        lambda: httpx.AsyncClient(base_url="https://osm.test", transport=transport),
    )
    nominatim.clear_cache()
    yield state
    nominatim.clear_cache()


def test_reverse_requires_coordinates(client):
    resp = client.get("/geocode/reverse", params={"lat": "32.9"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_request", "detail": "lat and lng required"}


def test_reverse_is_cached_per_language(client, osm):
    params = {"lat": "32.8872", "lng": "13.1913", "lang": "ar-LY"}
    assert client.get("/geocode/reverse", params=params).json() == {"displayName": "Martyrs Square (ar)"}
    client.get("/geocode/reverse", params=params)
    assert len(osm["calls"]) == 1

    english = client.get("/geocode/reverse", params={**params, "lang": "en"}).json()
    assert english["displayName"] == "Martyrs Square (en)"
    assert len(osm["calls"]) == 2


def test_reverse_upstream_status_is_502(client, osm):
    osm["status"] = 429
    resp = client.get("/geocode/reverse", params={"lat": "1", "lng": "2"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "reverse_failed"


def test_reverse_network_error_is_500(client, osm):
    osm["fail"] = True
    resp = client.get("/geocode/reverse", params={"lat": "1", "lng": "2"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "reverse_error"


def test_reverse_non_json_body_is_500(client, osm):
    osm["html"] = True
    resp = client.get("/geocode/reverse", params={"lat": "1", "lng": "2"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "reverse_error"

    assert client.get("/geocode/search", params={"q": "Derna"}).json() == []


def test_search_without_terms_is_empty(client, osm):
    assert client.get("/geocode/search").json() == []
    assert osm["calls"] == []


@pytest.mark.parametrize(
    "params, text, limit",
    [
        ({"q": "Souq al-Juma", "city": "Tripoli"}, "Souq al-Juma, Tripoli, Libya", "5"),
        ({"q": "Souq al-Juma", "limit": "99"}, "Souq al-Juma", "50"),
        ({"city": "Sabha", "limit": "2"}, "Sabha, Libya", "10"),
    ],
)
def test_search_builds_query(client, osm, params, text, limit):
    results = client.get("/geocode/search", params=params).json()
    assert results[0]["display_name"] == text
    sent = osm["calls"][0].url.params
    assert sent["q"] == text
    assert sent["limit"] == limit
    assert sent["format"] == "jsonv2"


def test_search_passes_country_codes(client, osm):
    client.get("/geocode/search", params={"q": "Tobruk", "countrycodes": "ly"})
    assert osm["calls"][0].url.params["countrycodes"] == "ly"


def test_search_errors_become_empty_list(client, osm):
    osm["status"] = 503
    assert client.get("/geocode/search", params={"q": "Derna"}).json() == []
    osm["status"] = 200
    osm["fail"] = True
    assert client.get("/geocode/search", params={"q": "Derna"}).json() == []
