"""
# `khidmaty/routers/mock.py` - Practice API for the Mini Postman

Public endpoints under `/api/mock/` that the proxy is allowed to call. They
exist to practice HTTP concepts (methods, status codes, headers, auth,
redirects, rate limiting, malformed payloads) against predictable data.

All error responses use `{"ok": false, "error": "<message>"}`.

| Path | Methods | Behaviour |
|------|---------|-----------|
| `echo` | any | Echo method, query, safe headers, raw body |
| `status?code&format&message` | GET | Respond with the requested status |
| `delay?ms` | any | Sleep 0..5000 ms (default 600) |
| `redirect?to&status` | GET | Redirect within `/api/mock/` |
| `rate-limit` | any | 429 roughly 30% of the time |
| `text?mode&city` | GET, POST | text/plain or text/html |
| `malformed-json` | any | Broken JSON with a JSON content type |
| `apikey/header`, `apikey/query` | any | Require `LIBYA123` |
| `auth/login`, `auth/refresh`, `auth/profile`, `secure` | | Bearer token flow |
| `cities`, `users` | | Static data |
| `todos`, `todos/{id}` | CRUD | In-memory store |
| `services`, `services/{id}` | CRUD | In-memory store |
"""
import asyncio
import random
import re
import time
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response

from khidmaty.core.constants import (
    MOCK_ACCESS_TOKEN,
    MOCK_API_KEY,
    MOCK_EXPIRED_TOKEN,
    MOCK_LOGIN_EMAIL,
    MOCK_LOGIN_PASSWORD,
    MOCK_REFRESH_TOKEN,
    PROXY_METHODS,
)
from khidmaty.services import mock_store
from khidmaty.utils.text import as_finite_number, clamp_int, clean_string

router = APIRouter(prefix="/api/mock", tags=["Practice API"])

ANY_METHOD = list(PROXY_METHODS)
RATE_LIMIT_PROBABILITY = 0.3
REDIRECT_STATUSES = {301, 302, 307, 308}
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def _field(body: Any, key: str) -> Any:
    return body.get(key) if isinstance(body, dict) else None


def _bearer(request: Request) -> Optional[str]:
    match = _BEARER_RE.match((request.headers.get("authorization") or "").strip())
    return match.group(1).strip() if match else None


def _is_safe_header(name: str) -> bool:
    k = name.lower()
    return k in ("accept", "content-type", "authorization") or k.startswith("x-")


# ---------- HTTP basics ----------

@router.api_route("/echo", methods=ANY_METHOD)
async def echo(request: Request):
    body = await request.body()
    return {
        "ok": True,
        "method": request.method,
        "query": dict(request.query_params),
        "headers": {k: v for k, v in request.headers.items() if _is_safe_header(k)},
        "bodyText": body.decode("utf-8", errors="replace"),
    }


@router.get("/status")
def status(code: Optional[str] = None, format: Optional[str] = None, message: Optional[str] = None):
    code_n = clamp_int(code if code is not None else 200, 100, 599)
    fmt = (format or "").lower()
    text = clean_string(message) or f"Status {code_n} from /api/mock/status"
    headers = {"cache-control": "no-store"}

    if code_n == 204 or fmt == "empty":
        return Response(status_code=204, headers=headers)
    if fmt == "text":
        return PlainTextResponse(text, status_code=code_n, headers=headers)
    return JSONResponse(
        status_code=code_n,
        headers=headers,
        content={
            "ok": 200 <= code_n < 300,
            "status": code_n,
            "message": text,
            "hint": "Use ?code=418 or ?code=500&message=... to practice status handling.",
        },
    )


@router.api_route("/delay", methods=ANY_METHOD)
async def delay(ms: Optional[str] = None):
    wait_ms = clamp_int(ms if ms is not None else 600, 0, 5000)
    start = time.monotonic()
    await asyncio.sleep(wait_ms / 1000)
    actual = int((time.monotonic() - start) * 1000)
    return {
        "ok": True,
        "requestedDelayMs": wait_ms,
        "actualDelayMs": max(0, actual),
        "nowIso": mock_store._now_iso(),
    }


@router.get("/redirect")
def redirect(request: Request, to: Optional[str] = None, status: Optional[str] = None):
    target = clean_string(to) or "/api/mock/users"
    if not target.startswith("/api/mock/"):
        return fail(400, "Redirect target must start with /api/mock/")
    code = as_finite_number(status)
    code_n = int(code) if code is not None and int(code) in REDIRECT_STATUSES else 302
    return RedirectResponse(url=str(request.base_url).rstrip("/") + target, status_code=code_n)


@router.api_route("/rate-limit", methods=ANY_METHOD)
def rate_limit():
    if random.random() < RATE_LIMIT_PROBABILITY:
        return fail(429, "Rate limited")
    return {"ok": True, "message": "OK"}


@router.api_route("/text", methods=["GET", "POST"])
def text(mode: Optional[str] = None, city: Optional[str] = None):
    if (mode or "").lower() == "html":
        return HTMLResponse(
            '<!doctype html><html><head><meta charset="utf-8"/><title>Mini Postman</title></head>'
            "<body><h1>Mini Postman HTML</h1><p>This is an HTML response for practice.</p></body></html>"
        )
    name = clean_string(city) or "Tripoli"
    return PlainTextResponse(f"Hello from {name}. This is a text/plain response for practice.\n")


@router.api_route("/malformed-json", methods=ANY_METHOD)
def malformed_json():
    return Response(
        content='{ "ok": true, "note": "This is intentionally broken JSON"',
        media_type="application/json; charset=utf-8",
    )


# ---------- API keys ----------

def _key_accepted(where: str, name: str) -> dict:
    return {"ok": True, "message": "API key accepted", "accepted": {"in": where, "name": name, "value": MOCK_API_KEY}}


@router.api_route("/apikey/header", methods=ANY_METHOD)
def apikey_header(request: Request):
    if (request.headers.get("x-api-key") or "").strip() != MOCK_API_KEY:
        return fail(401, "Missing or invalid API key")
    return _key_accepted("header", "x-api-key")


@router.api_route("/apikey/query", methods=ANY_METHOD)
def apikey_query(api_key: Optional[str] = None):
    if (api_key or "").strip() != MOCK_API_KEY:
        return fail(401, "Missing or invalid API key")
    return _key_accepted("query", "api_key")


# ---------- bearer auth ----------

def _tokens() -> dict:
    return {
        "ok": True,
        "tokenType": "Bearer",
        "accessToken": MOCK_ACCESS_TOKEN,
        "refreshToken": MOCK_REFRESH_TOKEN,
        "expiresInSeconds": 3600,
    }


@router.post("/auth/login")
async def auth_login(request: Request):
    body = await _json_body(request)
    email = clean_string(_field(body, "email"))
    password = _field(body, "password")
    password = password if isinstance(password, str) else ""
    if not email:
        return fail(400, "Missing email")
    if not _EMAIL_RE.match(email):
        return fail(400, "Invalid email")
    if not password:
        return fail(400, "Missing password")
    if email.lower() != MOCK_LOGIN_EMAIL or password != MOCK_LOGIN_PASSWORD:
        return fail(401, "Invalid credentials")
    return {**_tokens(), "user": mock_store.MOCK_STUDENT}


@router.post("/auth/refresh")
async def auth_refresh(request: Request):
    refresh_token = clean_string(_field(await _json_body(request), "refreshToken"))
    if not refresh_token:
        return fail(400, "Missing refreshToken")
    if refresh_token != MOCK_REFRESH_TOKEN:
        return fail(401, "Invalid refresh token")
    return _tokens()


@router.get("/auth/profile")
def auth_profile(request: Request):
    token = _bearer(request)
    if not token:
        return fail(401, "Missing bearer token")
    if token == MOCK_EXPIRED_TOKEN:
        return fail(401, "Token expired")
    if token != MOCK_ACCESS_TOKEN:
        return fail(401, "Invalid token")
    return {"ok": True, "user": mock_store.MOCK_STUDENT, "scopes": ["read:profile", "read:services"]}


@router.api_route("/secure", methods=ANY_METHOD)
def secure(request: Request):
    if _bearer(request) != MOCK_ACCESS_TOKEN:
        return fail(401, "Unauthorized")
    return {"ok": True, "message": "Authorized"}


# ---------- static data ----------

@router.get("/cities")
def cities(region: str = "", q: str = "", take: str = "50"):
    return {"ok": True, **mock_store.list_cities(region, q, take)}


@router.get("/users")
def list_users():
    return {"ok": True, "users": mock_store.MOCK_USERS}


@router.post("/users")
async def create_user(request: Request):
    body = await _json_body(request)
    name = clean_string(_field(body, "name"))
    email = clean_string(_field(body, "email"))
    if not name or not email or not _EMAIL_RE.match(email):
        return fail(400, "Invalid payload. Expected {name:string,email:string}.")
    user = {"id": mock_store._new_id("u"), "name": name, "email": email}
    return JSONResponse(status_code=201, content={"ok": True, "user": user})


# ---------- todos ----------

@router.get("/todos")
def list_todos(request: Request, city: str = "", q: str = "", take: str = "20"):
    done = None
    if "done" in request.query_params:
        done = request.query_params.get("done") == "true"
    return {"ok": True, **mock_store.todos.list(city, q, done, take)}


@router.post("/todos")
async def create_todo(request: Request):
    body = await _json_body(request)
    title = clean_string(_field(body, "title"))
    city_en = clean_string(_field(body, "cityEn"))
    city_ar = clean_string(_field(body, "cityAr"))
    done = _field(body, "done")
    if not title or not city_en or not city_ar:
        return fail(400, "Invalid payload. Expected {title,cityEn,cityAr,done?}.")
    if len(title) > 140:
        return fail(400, "title too long")
    todo = mock_store.todos.create(title, city_en, city_ar, done if isinstance(done, bool) else False)
    return JSONResponse(status_code=201, content={"ok": True, "todo": todo})


@router.get("/todos/{todo_id}")
def get_todo(todo_id: str):
    todo = mock_store.todos.get(todo_id)
    if todo is None:
        return fail(404, "Not found")
    return {"ok": True, "todo": todo}


@router.put("/todos/{todo_id}")
async def replace_todo(todo_id: str, request: Request):
    body = await _json_body(request)
    title = clean_string(_field(body, "title"))
    city_en = clean_string(_field(body, "cityEn"))
    city_ar = clean_string(_field(body, "cityAr"))
    done = _field(body, "done")
    if not title or not city_en or not city_ar or not isinstance(done, bool):
        return fail(400, "Invalid payload. Expected {title,cityEn,cityAr,done:boolean}.")
    todo = mock_store.todos.replace(todo_id, title, city_en, city_ar, done)
    if todo is None:
        return fail(404, "Not found")
    return {"ok": True, "todo": todo}


@router.patch("/todos/{todo_id}")
async def patch_todo(todo_id: str, request: Request):
    body = await _json_body(request)
    patch = {}
    for key in ("title", "cityEn", "cityAr"):
        if isinstance(_field(body, key), str):
            patch[key] = _field(body, key).strip()
    if isinstance(_field(body, "done"), bool):
        patch["done"] = _field(body, "done")
    if not patch:
        return fail(400, "Empty patch")
    todo = mock_store.todos.patch(todo_id, patch)
    if todo is None:
        return fail(404, "Not found")
    return {"ok": True, "todo": todo}


@router.delete("/todos/{todo_id}")
def delete_todo(todo_id: str):
    if not mock_store.todos.delete(todo_id):
        return fail(404, "Not found")
    return Response(status_code=204)


# ---------- services ----------

@router.get("/services")
def list_services(
    city: str = "",
    category: str = "",
    q: str = "",
    minPrice: Optional[str] = None,
    maxPrice: Optional[str] = None,
    take: str = "20",
):
    result = mock_store.services.list(
        city, category, q, as_finite_number(minPrice), as_finite_number(maxPrice), take
    )
    return {"ok": True, **result}


@router.post("/services")
async def create_service(request: Request):
    body = await _json_body(request)
    fields = {k: clean_string(_field(body, k)) for k in ("title", "category", "cityEn", "cityAr", "providerName")}
    price = as_finite_number(_field(body, "priceLyd"))
    if not all(fields.values()) or price is None:
        return fail(400, "Invalid payload. Expected {title,category,cityEn,cityAr,priceLyd,providerName}.")
    if len(fields["title"]) > 120 or len(fields["providerName"]) > 80:
        return fail(400, "Text too long")
    if price < 0 or price > 10000:
        return fail(400, "priceLyd out of range")

    data = {**fields, "priceLyd": price}
    description = _field(body, "description")
    if isinstance(description, str):
        data["description"] = description.strip()[:500]
    phone = _field(body, "contactPhone")
    if isinstance(phone, str):
        data["contactPhone"] = phone.strip()[:40]
    return JSONResponse(status_code=201, content={"ok": True, "service": mock_store.services.create(data)})


@router.get("/services/{service_id}")
def get_service(service_id: str):
    service = mock_store.services.get(service_id)
    if service is None:
        return fail(404, "Not found")
    return {"ok": True, "service": service}


@router.delete("/services/{service_id}")
def delete_service(service_id: str):
    if not mock_store.services.delete(service_id):
        return fail(404, "Not found")
    return Response(status_code=204)
