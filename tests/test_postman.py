import pytest

from khidmaty.schemas.postman import PostmanAuth, SavedRequest
from khidmaty.services.postman import build_url
from tests.fakes import auth_headers


@pytest.mark.parametrize(
    "url, normalized, kind",
    [
        ("/api/mock/todos?done=true", "/api/mock/todos?done=true", "relative"),
        ("https://API.GitHub.com", "https://api.github.com/", "absolute"),
        (" https://dorar.net/hadith?q=1 ", "https://dorar.net/hadith?q=1", "absolute"),
        ("/api/mock/x/../echo", "/api/mock/echo", "relative"),
    ],
)
def test_validate_url_accepts(client, url, normalized, kind):
    body = client.post("/postman/validate-url", json={"url": url}).json()
    assert body == {"ok": True, "normalized": normalized, "kind": kind}


@pytest.mark.parametrize(
    "url, error",
    [
        ("", "URL is required"),
        ("/api/secret", "Only paths under /api/mock/ are allowed"),
        ("/api/mock/../secret", "Only paths under /api/mock/ are allowed"),
        ("api.github.com", "Invalid URL"),
        ("http://api.github.com/", "Only https:// URLs are allowed"),
        ("https://me:pw@api.github.com/", "Credentials in URL are not allowed"),
        ("https://example.com/", "Host not allowed"),
    ],
)
def test_validate_url_rejects(client, url, error):
    resp = client.post("/postman/validate-url", json={"url": url})
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": error}


def test_format_json(client):
    body = client.post("/postman/format-json", json={"text": '{"city":"طرابلس","n":[1,2]}'}).json()
    assert body["ok"] is True
    assert body["formatted"] == '{\n  "city": "طرابلس",\n  "n": [\n    1,\n    2\n  ]\n}'

    assert client.post("/postman/format-json", json={"text": "   "}).json() == {"ok": True, "formatted": ""}

    broken = client.post("/postman/format-json", json={"text": "{oops"})
    assert broken.status_code == 400
    assert broken.json()["ok"] is False


def test_build_url_appends_enabled_rows(client):
    body = client.post("/postman/build-url", json={
        "url": "/api/mock/todos?done=true",
        "params": [
            {"key": "city", "value": "Tripoli"},
            {"key": "off", "value": "1", "enabled": False},
            {"key": "  ", "value": "blank"},
        ],
        "auth": {"type": "apikey", "keyName": "api_key", "keyValue": "LIBYA123", "in": "query"},
    }).json()
    assert body == {"ok": True, "url": "/api/mock/todos?done=true&city=Tripoli&api_key=LIBYA123"}


def test_build_url_absolute_gets_root_path():
    assert build_url("https://api.github.com", [], PostmanAuth()) == "https://api.github.com/"
    header_key = PostmanAuth(type="apikey", keyName="x-api-key", keyValue="k", in_="header")
    assert build_url("/api/mock/apikey/header", [], header_key) == "/api/mock/apikey/header"


def test_saved_request_is_sanitised():
    saved = SavedRequest.model_validate({
        "name": "   ",
        "request": {
            "method": "trace",
            "url": "x" * 3000,
            "params": [{"key": "a", "value": 1}, "junk"],
            "auth": "bearer",
            "bodyText": None,
        },
    })
    assert saved.name == "Untitled"
    assert saved.request.method == "GET"
    assert len(saved.request.url) == 2048
    assert [(p.key, p.value) for p in saved.request.params] == [("a", "1")]
    assert saved.request.auth.type == "none"
    assert saved.request.bodyText == ""


def test_collections_roundtrip(client, db):
    headers = auth_headers("stu1")
    assert client.get("/postman/collections", headers=headers).json() == {"items": []}

    resp = client.put("/postman/collections", headers=headers, json={"items": [
        {"id": "keep-me", "name": "Echo", "request": {"method": "post", "url": "/api/mock/echo"}},
        {"name": "Profile", "request": {"url": "/api/mock/auth/profile", "auth": {"type": "bearer", "token": "T"}}},
    ]})
    items = resp.json()["items"]
    assert items[0]["id"] == "keep-me"
    assert items[0]["request"]["method"] == "POST"
    assert len(items[1]["id"]) == 16
    assert items[1]["request"]["auth"]["in"] == "header"

    stored = db.data("postman_collections/stu1")
    assert stored["uid"] == "stu1"
    assert len(stored["items"]) == 2

    assert client.get("/postman/collections", headers=headers).json()["items"] == items


def test_collections_limit(client):
    resp = client.put("/postman/collections", headers=auth_headers("stu1"), json={"items": [{}] * 101})
    assert resp.status_code == 400


def test_collections_require_token(client):
    assert client.get("/postman/collections").status_code == 401
