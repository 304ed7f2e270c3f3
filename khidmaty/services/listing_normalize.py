# khidmaty/services/listing_normalize.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from khidmaty.core.constants import DEFAULT_CITY, PRICE_MODES
from khidmaty.utils.text import as_finite_number, as_non_empty_string

# Fields a provider may change on an existing service; everything else is ignored.
EDITABLE_FIELDS = (
    "title",
    "description",
    "price",
    "priceMode",
    "showPriceInContact",
    "acceptRequests",
    "category",
    "city",
    "area",
    "availabilityNote",
    "lat",
    "lng",
    "mapUrl",
    "images",
    "contactPhone",
    "contactWhatsapp",
    "videoUrl",
    "videoUrls",
    "facebookUrl",
    "telegramUrl",
    "subservices",
)


def normalize_price_mode(value: Any) -> Optional[str]:
    mode = str(value or "").lower()
    return mode if mode in PRICE_MODES else None


def normalize_images(value: Any) -> List[Dict[str, str]]:
    if not isinstance(value, list):
        return []
    out = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        url = as_non_empty_string(raw.get("url"))
        if not url:
            continue
        image = {"url": url}
        for key in ("hint", "publicId"):
            extra = as_non_empty_string(raw.get(key))
            if extra:
                image[key] = extra
        out.append(image)
    return out


def normalize_subservices(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    out = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        sid = as_non_empty_string(raw.get("id"))
        title = as_non_empty_string(raw.get("title"))
        if not sid or not title:
            continue
        price = as_finite_number(raw.get("price"))
        item: Dict[str, Any] = {"id": sid, "title": title, "price": price if price is not None else 0}
        for key in ("unit", "description"):
            extra = as_non_empty_string(raw.get(key))
            if extra:
                item[key] = extra
        out.append(item)
    return out


def normalize_video_urls(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    urls = [u.strip() for u in value if isinstance(u, str) and u.strip()]
    return urls or None


def _strip_none(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if v is not None}


def _bool_or(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def build_service_create_doc(
    body: Any,
    provider_id: str,
    provider_name: Optional[str],
    provider_email: Optional[str],
    created_at: Any,
) -> Dict[str, Any]:
    """
    Allow-listed service document for `services.add(...)`.
    Unknown keys in `body` are ignored; new services always start `pending`.
    """
    body = body if isinstance(body, dict) else {}
    price = as_finite_number(body.get("price"))
    doc = {
        "title": as_non_empty_string(body.get("title")) or "",
        "description": as_non_empty_string(body.get("description")) or "",
        "price": price if price is not None else 0,
        "priceMode": normalize_price_mode(body.get("priceMode")) or "firm",
        "showPriceInContact": _bool_or(body.get("showPriceInContact"), False),
        "acceptRequests": _bool_or(body.get("acceptRequests"), True),
        "category": as_non_empty_string(body.get("category")) or "",
        "city": as_non_empty_string(body.get("city")) or DEFAULT_CITY,
        "area": body.get("area") if isinstance(body.get("area"), str) else "",
        "availabilityNote": body.get("availabilityNote") if isinstance(body.get("availabilityNote"), str) else "",
        "lat": as_finite_number(body.get("lat")),
        "lng": as_finite_number(body.get("lng")),
        "mapUrl": as_non_empty_string(body.get("mapUrl")),
        "images": normalize_images(body.get("images")),
        "contactPhone": as_non_empty_string(body.get("contactPhone")),
        "contactWhatsapp": as_non_empty_string(body.get("contactWhatsapp")),
        "videoUrl": as_non_empty_string(body.get("videoUrl")),
        "videoUrls": normalize_video_urls(body.get("videoUrls")),
        "facebookUrl": as_non_empty_string(body.get("facebookUrl")),
        "telegramUrl": as_non_empty_string(body.get("telegramUrl")),
        "subservices": normalize_subservices(body.get("subservices")),
        "viewCount": 0,
        "status": "pending",
        "createdAt": created_at,
    }
    doc = _strip_none(doc)
    # provider fields are stored even when null
    doc["providerId"] = provider_id
    doc["providerName"] = provider_name or None
    doc["providerEmail"] = provider_email or None
    return doc


def build_service_update_patch(body: Any) -> Dict[str, Any]:
    """Owner edit: only `EDITABLE_FIELDS` survive, re-normalised; absent results are left out."""
    body = body if isinstance(body, dict) else {}
    out = {k: body[k] for k in EDITABLE_FIELDS if k in body}

    for key in ("title", "description", "category", "city"):
        if key in out:
            out[key] = as_non_empty_string(out[key])
    for key in ("area", "availabilityNote"):
        if key in out and not isinstance(out[key], str):
            out[key] = None
    if "priceMode" in out:
        out["priceMode"] = normalize_price_mode(out["priceMode"])
    for key in ("showPriceInContact", "acceptRequests"):
        if key in out and not isinstance(out[key], bool):
            out[key] = None
    for key in ("lat", "lng", "price"):
        if key in out:
            out[key] = as_finite_number(out[key])
    for key in ("mapUrl", "contactPhone", "contactWhatsapp", "videoUrl", "facebookUrl", "telegramUrl"):
        if key in out:
            out[key] = as_non_empty_string(out[key])
    if "images" in out:
        out["images"] = normalize_images(out["images"])
    if "subservices" in out:
        out["subservices"] = normalize_subservices(out["subservices"])
    if "videoUrls" in out:
        out["videoUrls"] = normalize_video_urls(out["videoUrls"])

    return _strip_none(out)
