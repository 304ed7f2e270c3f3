"""
# `khidmaty/services/search.py` - Cross-collection search

Searches approved services, approved sale items and providers with the same
matching rules the web listing pages use, then paginates the combined list
(services first, then items, then providers).

Firestore cannot do substring matching, so each collection is narrowed by
equality filters (status, city, category), fetched newest first with a
generous limit, and filtered in memory. When the composite index behind the
ordered query is missing, the unordered query is used and sorted here.
"""
import logging
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gexc

from khidmaty.config import db
from khidmaty.services.listings import first_image_url
from khidmaty.utils.categories import normalize_category
from khidmaty.utils.cities import normalize_city
from khidmaty.utils.firestore_helpers import to_millis
from khidmaty.utils.text import as_finite_number, clamp_int, clean_string

logger = logging.getLogger("khidmaty.search")

SEARCH_TYPES = ("all", "services", "items", "providers")
MAX_PAGE = 500
MAX_LIMIT = 50


def fetch_limit(take: int, hi: int = 800) -> int:
    return clamp_int(max(take * 10, 80), 20, hi)


def _candidates(collection: str, filters: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
    query = db.collection(collection)
    for field, value in filters.items():
        query = query.where(field, "==", value)

    try:
        docs = query.order_by("createdAt", direction="DESCENDING").limit(limit).stream()
        return [{**(d.to_dict() or {}), "id": d.id} for d in docs]
    except gexc.GoogleAPICallError as e:
        logger.warning("ordered search on %s failed, sorting in memory: %s", collection, e)

    rows = [{**(d.to_dict() or {}), "id": d.id} for d in query.limit(limit).stream()]
    rows.sort(key=lambda r: to_millis(r.get("createdAt")), reverse=True)
    return rows


def _lower(value: Any) -> str:
    return str(value or "").lower()


def match_service(row: Dict[str, Any], q: str) -> bool:
    needle = q.strip().lower()
    if not needle:
        return True
    return any(needle in _lower(row.get(k)) for k in ("title", "description", "category", "city", "area"))


def match_item(row: Dict[str, Any], q: str) -> bool:
    needle = q.strip().lower()
    if not needle:
        return True
    tokens = [t for t in needle.split() if len(t) > 1]
    trade = row.get("trade") if isinstance(row.get("trade"), dict) else {}
    texts = [_lower(row.get("title")), _lower(row.get("description")), _lower(trade.get("tradeFor")), _lower(row.get("city"))]
    tags = [_lower(t) for t in row.get("tags") or [] if t] if isinstance(row.get("tags"), list) else []
    return any(tok in text for tok in tokens for text in texts + tags)


def match_provider(row: Dict[str, Any], q: str) -> bool:
    needle = q.strip().lower()
    if not needle:
        return True
    return any(needle in _lower(row.get(k)) for k in ("displayName", "email", "city"))


def _thumb(row: Dict[str, Any]) -> Optional[str]:
    return first_image_url(row.get("images")) or clean_string(row.get("thumb")) or clean_string(row.get("imageUrl")) or None


def service_result(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id") or ""),
        "title": clean_string(row.get("title")) or "Untitled service",
        "type": "service",
        "city": clean_string(row.get("city")) or None,
        "category": clean_string(row.get("category")) or None,
        "priceFrom": as_finite_number(row.get("price")),
        "rating": None,
        "thumb": _thumb(row),
    }


def item_result(row: Dict[str, Any]) -> Dict[str, Any]:
    tags = row.get("tags") if isinstance(row.get("tags"), list) else []
    return {
        "id": str(row.get("id") or ""),
        "title": clean_string(row.get("title")) or "Untitled item",
        "type": "item",
        "city": clean_string(row.get("city")) or None,
        "category": (clean_string(tags[0]) or None) if tags else None,
        "priceFrom": as_finite_number(row.get("price")),
        "rating": as_finite_number(row.get("rating")),
        "thumb": _thumb(row),
    }


def provider_result(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id") or ""),
        "title": clean_string(row.get("displayName")) or clean_string(row.get("email")) or "Provider",
        "type": "provider",
        "city": clean_string(row.get("city")) or None,
        "category": None,
        "priceFrom": None,
        "rating": None,
        "thumb": clean_string(row.get("photoURL")) or None,
    }


def search(
    q: str,
    type_: str = "all",
    city: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    city_value = normalize_city(city)
    category_value = normalize_category(category)
    take = page * limit

    results: List[Dict[str, Any]] = []

    if type_ in ("all", "services"):
        filters: Dict[str, Any] = {"status": "approved"}
        if city_value:
            filters["city"] = city_value
        if category_value:
            filters["category"] = category_value
        rows = _candidates("services", filters, fetch_limit(take))
        results += [service_result(r) for r in rows if match_service(r, q)]

    if type_ in ("all", "items"):
        filters = {"status": "approved"}
        if city_value:
            filters["city"] = city_value
        rows = _candidates("sale_items", filters, fetch_limit(take))
        results += [item_result(r) for r in rows if match_item(r, q)]

    if type_ in ("all", "providers"):
        filters = {"role": "provider"}
        if city_value:
            filters["city"] = city_value
        rows = _candidates("users", filters, fetch_limit(take, hi=600))
        results += [provider_result(r) for r in rows if match_provider(r, q)]

    start = (page - 1) * limit
    return {"total": len(results), "results": results[start:start + limit]}
