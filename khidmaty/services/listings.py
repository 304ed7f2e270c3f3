"""
# `khidmaty/services/listings.py` - Services and sale items

Business logic behind the listing routes. Functions raise `ValueError("<CODE>")`
for expected outcomes; routers map the codes to HTTP errors.

| Function | Codes |
|----------|-------|
| `create_service` | `TITLE_REQUIRED` |
| `update_service` | `SERVICE_NOT_FOUND`, `NOT_OWNER` |
| `request_service_deletion` | `SERVICE_NOT_FOUND`, `NOT_OWNER`, `ALREADY_REQUESTED` |
| `listing_details` | `NOT_FOUND` |
| `decide_service` | `SERVICE_NOT_FOUND`, `INVALID_ACTION` |

New listings always start `pending`; only the owner console moves them to
`approved` or `rejected`.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.core.constants import NOTE_MAX_LENGTH
from khidmaty.repositories import deletion_requests
from khidmaty.schemas.listing import SaleItemForm
from khidmaty.services.listing_normalize import build_service_create_doc, build_service_update_patch
from khidmaty.services.stats import day_key
from khidmaty.utils import firestore_helpers
from khidmaty.utils.text import as_finite_number, clean_string

logger = logging.getLogger("khidmaty.listings")

LISTING_COLLECTIONS = {
    "services": ("services", "providerId"),
    "sale_items": ("sale_items", "sellerId"),
}

DECISIONS = {"approve": "approved", "reject": "rejected"}


# ---------- services ----------

def create_service(profile: Dict, body: Dict) -> str:
    doc = build_service_create_doc(
        body,
        provider_id=profile["id"],
        provider_name=clean_string(body.get("providerName")) or profile.get("displayName"),
        provider_email=clean_string(body.get("providerEmail")) or profile.get("email"),
        created_at=gcf.SERVER_TIMESTAMP,
    )
    if not doc["title"]:
        raise ValueError("TITLE_REQUIRED")
    _, ref = db.collection("services").add(doc)
    logger.info("service %s created by %s", ref.id, profile["id"])
    return ref.id


def _owned_service(uid: str, service_id: str):
    ref = db.collection("services").document(service_id)
    snap = ref.get()
    if not snap.exists:
        raise ValueError("SERVICE_NOT_FOUND")
    data = snap.to_dict() or {}
    if (data.get("providerId") or "") != uid:
        raise ValueError("NOT_OWNER")
    return ref, data


def update_service(uid: str, service_id: str, body: Dict) -> Dict[str, Any]:
    ref, _ = _owned_service(uid, service_id)
    patch = build_service_update_patch(body)
    if patch:
        ref.set({**patch, "updatedAt": gcf.SERVER_TIMESTAMP}, merge=True)
    return patch


def request_service_deletion(uid: str, service_id: str, reason: Optional[str]) -> str:
    ref, data = _owned_service(uid, service_id)
    if deletion_requests.pending_for_service(service_id, limit=1):
        raise ValueError("ALREADY_REQUESTED")
    reason = reason[:NOTE_MAX_LENGTH] if isinstance(reason, str) else None
    request_id = deletion_requests.create(service_id, uid, data, reason)
    ref.set({"status": "pending", "pendingDelete": True}, merge=True)
    return request_id


def decide_service(service_id: str, action: str, decided_by: str) -> str:
    status = DECISIONS.get(action)
    if not status:
        raise ValueError("INVALID_ACTION")
    ref = db.collection("services").document(service_id)
    if not ref.get().exists:
        raise ValueError("SERVICE_NOT_FOUND")
    ref.set({"status": status, "reviewedAt": gcf.SERVER_TIMESTAMP, "reviewedBy": decided_by}, merge=True)
    return status


# ---------- ranking ----------

def top_services(days: int, take: int, w_views: float, w_ctas: float, w_messages: float) -> List[Dict[str, Any]]:
    """
    Sums `stats_daily` counters for the last `days` days and ranks services by
    `views*wViews + ctas*wCtas + messages*wMessages` (ties broken by views).
    Only approved services are returned.
    """
    today = firestore_helpers.utcnow()
    totals: Dict[str, Dict[str, float]] = {}
    for i in range(days):
        key = day_key(today - timedelta(days=i))
        for doc in db.collection("stats_daily").where("yyyymmdd", "==", key).limit(5000).stream():
            row = doc.to_dict() or {}
            service_id = str(row.get("serviceId") or "")
            if not service_id:
                continue
            agg = totals.setdefault(service_id, {"views": 0, "ctas": 0, "messages": 0})
            for field in agg:
                agg[field] += as_finite_number(row.get(field)) or 0

    scored = []
    for service_id, agg in totals.items():
        score = agg["views"] * w_views + agg["ctas"] * w_ctas + agg["messages"] * w_messages
        scored.append({"serviceId": service_id, **agg, "score": score})
    scored.sort(key=lambda r: (r["score"], r["views"]), reverse=True)

    out = []
    for row in scored:
        snap = db.collection("services").document(row["serviceId"]).get()
        if not snap.exists:
            continue
        data = snap.to_dict() or {}
        if data.get("status") != "approved":
            continue
        out.append({
            **data,
            "id": snap.id,
            "stats": {"views": row["views"], "ctas": row["ctas"], "messages": row["messages"], "days": days},
            "score": row["score"],
        })
        if len(out) >= take:
            break
    return out


# ---------- public details ----------

def first_image_url(images: Any) -> Optional[str]:
    if not isinstance(images, list) or not images:
        return None
    first = images[0]
    if isinstance(first, str):
        return clean_string(first) or None
    if isinstance(first, dict):
        return clean_string(first.get("url")) or None
    return None


def _coords(data: Dict) -> Dict[str, Optional[float]]:
    location = data.get("location") if isinstance(data.get("location"), dict) else {}
    lat = next((v for v in (data.get("lat"), data.get("latitude"), location.get("lat")) if v is not None), None)
    lon = next((v for v in (data.get("lng"), data.get("lon"), location.get("lng"), location.get("lon")) if v is not None), None)
    return {"lat": as_finite_number(lat), "lon": as_finite_number(lon)}


def listing_details(kind: str, listing_id: str, viewer_uid: Optional[str]) -> Dict[str, Any]:
    collection, owner_field = LISTING_COLLECTIONS[kind]
    ref = db.collection(collection).document(listing_id)
    snap = ref.get()
    if not snap.exists:
        raise ValueError("NOT_FOUND")
    data = snap.to_dict() or {}
    is_owner = bool(viewer_uid) and data.get(owner_field) == viewer_uid
    if data.get("status") != "approved" and not is_owner:
        raise ValueError("NOT_FOUND")

    ref.update({"viewCount": gcf.Increment(1)})
    view_count = (as_finite_number(data.get("viewCount")) or 0) + 1

    thumb = first_image_url(data.get("images")) or clean_string(data.get("thumb")) or None
    return {
        **data,
        "ok": True,
        "id": listing_id,
        "type": kind,
        "description": clean_string(data.get("description")) or None,
        "thumb": thumb,
        "viewCount": int(view_count),
        **_coords(data),
    }


# ---------- sale items / slots ----------

def create_sale_item(uid: str, form: SaleItemForm) -> str:
    doc = form.model_dump(exclude_none=True)
    doc.update({
        "status": "pending",
        "sellerId": uid,
        "viewCount": 0,
        "createdAt": gcf.SERVER_TIMESTAMP,
    })
    _, ref = db.collection("sale_items").add(doc)
    return ref.id


def request_service_slot(profile: Dict, notes: Optional[str]) -> str:
    notes = clean_string(notes)[:NOTE_MAX_LENGTH]
    _, ref = db.collection("service_slot_requests").add({
        "uid": profile["id"],
        "role": profile.get("role"),
        "email": profile.get("email") or None,
        "displayName": profile.get("displayName") or None,
        "status": "pending",
        "notes": notes or None,
        "createdAt": gcf.SERVER_TIMESTAMP,
    })
    return ref.id
