"""
Mini Postman proxy.

Forwards one practice request and reports what came back. Targets are either
relative `/api/mock/...` paths, answered in-process by the app itself, or
`https://` URLs on the allow-list (`settings.proxy_hosts`). Redirects are
returned to the caller, never followed.
"""
import ipaddress
import logging
import posixpath
import time
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit, urlunsplit

import httpx

from khidmaty.config import settings
from khidmaty.core.constants import (
    PROXY_BLOCKED_HEADERS,
    PROXY_MAX_BODY_BYTES,
    PROXY_METHODS,
    PROXY_RELATIVE_PREFIXES,
)

logger = logging.getLogger("khidmaty.proxy")

_PRIVATE_V4 = [
    ipaddress.ip_network(n)
    for n in ("0.0.0.0/8", "10.0.0.0/8", "127.0.0.0/8", "169.254.0.0/16", "172.16.0.0/12", "192.168.0.0/16", "100.64.0.0/10")
]
_PRIVATE_V6 = [ipaddress.ip_network(n) for n in ("::/128", "::1/128", "fe80::/10", "fc00::/7")]


class ProxyError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _external_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=False)


def _local_client(app: Any, base_url: str) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    return httpx.AsyncClient(
        transport=transport,
        base_url=base_url,
        timeout=settings.http_timeout_seconds,
        follow_redirects=False,
    )


def parse_method(raw: Any) -> str:
    method = str(raw or "").upper()
    if method not in PROXY_METHODS:
        raise ProxyError(400, f"Invalid method. Allowed: {', '.join(PROXY_METHODS)}")
    return method


def is_private_ip_literal(hostname: str) -> bool:
    host = hostname.split("%")[0] or hostname
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return False
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    networks = _PRIVATE_V4 if addr.version == 4 else _PRIVATE_V6
    return any(addr in net for net in networks)


def sanitize_headers(raw: Any) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not isinstance(raw, dict):
        return out
    for raw_key, raw_value in raw.items():
        key = str(raw_key or "").strip()
        if not key or raw_value is None:
            continue
        if key.lower() in PROXY_BLOCKED_HEADERS or "\r" in key or "\n" in key:
            continue
        value = str(raw_value)
        if "\r" in value or "\n" in value:
            continue
        out[key] = value
    return out


def _normpath(path: str) -> str:
    out = posixpath.normpath(path)
    if path.endswith("/") and not out.endswith("/"):
        out += "/"
    return out


def normalize_relative_target(target: str) -> Optional[str]:
    """
    Resolves `.` and `..` segments of a relative target. Returns None when the
    result (also after percent-decoding) is not under `/api/mock/`.
    """
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return None
    if not _normpath(unquote(parts.path)).startswith(PROXY_RELATIVE_PREFIXES):
        return None
    return urlunsplit(("", "", _normpath(parts.path), parts.query, parts.fragment))


def resolve_target(raw_url: Any) -> str:
    """
    Returns the validated target: the normalised relative path, or the absolute
    URL. Raises `ProxyError` (403 for disallowed hosts, 400 for garbage).
    """
    target = str(raw_url or "").strip()
    if not target:
        raise ProxyError(400, "Invalid url")

    if target.startswith("/"):
        relative = normalize_relative_target(target)
        if relative is None:
            raise ProxyError(403, "Host not allowed")
        return relative

    parts = urlsplit(target)
    if not parts.scheme or not parts.netloc:
        raise ProxyError(400, "Invalid url")
    try:
        port = parts.port
    except ValueError:
        raise ProxyError(400, "Invalid url")

    hostname = (parts.hostname or "").lower()
    if parts.scheme.lower() != "https" or parts.username or parts.password:
        raise ProxyError(403, "Host not allowed")
    if port not in (None, 443):
        raise ProxyError(403, "Host not allowed")
    if hostname == "localhost" or is_private_ip_literal(hostname):
        raise ProxyError(403, "Host not allowed")
    if hostname not in settings.proxy_hosts:
        raise ProxyError(403, "Host not allowed")
    return target


def request_body(method: str, body_text: Any) -> Optional[bytes]:
    if method == "GET" or not isinstance(body_text, str) or body_text == "":
        return None
    data = body_text.encode("utf-8")
    if len(data) > PROXY_MAX_BODY_BYTES:
        raise ProxyError(413, "Body too large")
    return data


def is_json_content_type(content_type: str) -> bool:
    ct = content_type.lower()
    return "application/json" in ct or "+json" in ct


async def forward(
    app: Any,
    origin: str,
    method: str,
    target: str,
    headers: Dict[str, str],
    body: Optional[bytes],
) -> Dict[str, Any]:
    """
    Sends the request and returns the response summary. Network failures
    come back as `{"ok": False, "networkError": True, "error", "timeMs"}`.
    """
    client = _local_client(app, origin) if target.startswith("/") else _external_client()
    start = time.monotonic()
    try:
        async with client:
            resp = await client.request(method, target, headers=headers, content=body)
    except httpx.HTTPError as e:
        elapsed = int((time.monotonic() - start) * 1000)
        logger.warning("proxy %s %s failed: %s", method, target, e)
        return {"ok": False, "networkError": True, "error": str(e) or "Network error", "timeMs": elapsed}
    elapsed = int((time.monotonic() - start) * 1000)

    return {
        "ok": True,
        "status": resp.status_code,
        "statusText": resp.reason_phrase,
        "headers": dict(resp.headers),
        "bodyText": resp.text,
        "timeMs": elapsed,
        "isJson": is_json_content_type(resp.headers.get("content-type", "")),
    }


async def proxy_request(app: Any, origin: str, payload: Any) -> Dict[str, Any]:
    body = payload if isinstance(payload, dict) else {}
    method = parse_method(body.get("method"))
    target = resolve_target(body.get("url"))
    headers = sanitize_headers(body.get("headers"))
    content = request_body(method, body.get("bodyText"))
    return await forward(app, origin, method, target, headers, content)
