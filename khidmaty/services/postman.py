import json
import logging
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from google.cloud import firestore as gcf

from khidmaty.config import db, settings
from khidmaty.core.constants import PROXY_RELATIVE_PREFIXES
from khidmaty.schemas.postman import KeyValueRow, PostmanAuth, SavedRequest
from khidmaty.services.proxy import normalize_relative_target

logger = logging.getLogger("khidmaty.postman")

COLLECTIONS_COL = "postman_collections"


def validate_practice_url(raw: Any) -> Dict[str, Any]:
    """`{"ok": True, "normalized", "kind"}` or `{"ok": False, "error"}`."""
    url = str(raw or "").strip()
    if not url:
        return {"ok": False, "error": "URL is required"}

    if url.startswith("/"):
        relative = normalize_relative_target(url)
        if relative is None:
            return {"ok": False, "error": f"Only paths under {PROXY_RELATIVE_PREFIXES[0]} are allowed"}
        return {"ok": True, "normalized": relative, "kind": "relative"}

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return {"ok": False, "error": "Invalid URL"}
    if parts.scheme.lower() != "https":
        return {"ok": False, "error": "Only https:// URLs are allowed"}
    if parts.username or parts.password:
        return {"ok": False, "error": "Credentials in URL are not allowed"}
    host = (parts.hostname or "").lower()
    if host not in settings.proxy_hosts:
        return {"ok": False, "error": "Host not allowed"}

    normalized = urlunsplit(("https", parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment))
    return {"ok": True, "normalized": normalized, "kind": "absolute"}


def format_json(text: Optional[str]) -> Dict[str, Any]:
    raw = text or ""
    if not raw.strip():
        return {"ok": True, "formatted": ""}
    try:
        value = json.loads(raw)
    except ValueError as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True, "formatted": json.dumps(value, indent=2, ensure_ascii=False)}


def build_url(raw_url: str, params: List[KeyValueRow], auth: PostmanAuth) -> str:
    """
    Appends the enabled rows (and an API key sent in the query) to `raw_url`.
    Relative URLs stay relative.
    """
    parts = urlsplit(raw_url.strip())
    is_absolute = parts.scheme.lower() in ("http", "https")

    pairs = parse_qsl(parts.query, keep_blank_values=True)
    for row in params:
        if row.enabled and row.key:
            pairs.append((row.key, row.value))
    if auth.type == "apikey" and auth.in_ == "query":
        key = (auth.keyName or "").strip()
        if key:
            pairs.append((key, auth.keyValue or ""))

    path = parts.path or ("/" if is_absolute else "")
    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(pairs), parts.fragment))


def load_collections(uid: str) -> List[Dict[str, Any]]:
    snap = db.collection(COLLECTIONS_COL).document(uid).get()
    if not snap.exists:
        return []
    items = (snap.to_dict() or {}).get("items")
    return items if isinstance(items, list) else []


def save_collections(uid: str, items: List[SavedRequest]) -> List[Dict[str, Any]]:
    rows = []
    for item in items:
        row = item.model_dump(by_alias=True)
        row["id"] = (item.id or "").strip()[:64] or secrets.token_hex(8)
        rows.append(row)

    db.collection(COLLECTIONS_COL).document(uid).set({
        "uid": uid,
        "items": rows,
        "updatedAt": gcf.SERVER_TIMESTAMP,
    })
    logger.info("saved %d postman requests for %s", len(rows), uid)
    return rows
