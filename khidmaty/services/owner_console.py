# khidmaty/services/owner_console.py
import logging
from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.integrations import cloudinary_media
from khidmaty.repositories import deletion_requests
from khidmaty.services.features import build_pricing_gate
from khidmaty.utils.firestore_helpers import to_iso
from khidmaty.utils.text import clean_email, clean_string

logger = logging.getLogger("khidmaty.owner")

SERVICE_LIST_LIMIT = 100
SERVICE_LIST_IMAGES = 12


# ---------- users ----------

def find_user(uid: str = "", email: str = ""):
    """Snapshot by uid, else first profile with that e-mail. Raises ValueError on bad input / missing user."""
    if uid:
        snap = db.collection("users").document(uid).get()
    elif email:
        docs = list(db.collection("users").where("email", "==", email).limit(1).stream())
        if not docs and clean_email(email) != email:
            docs = list(db.collection("users").where("email", "==", clean_email(email)).limit(1).stream())
        snap = docs[0] if docs else None
    else:
        raise ValueError("UID_OR_EMAIL_REQUIRED")
    if snap is None or not snap.exists:
        raise ValueError("USER_NOT_FOUND")
    return snap


def user_summary(snap) -> Dict[str, Any]:
    data = snap.to_dict() or {}
    return {
        "uid": snap.id,
        "email": data.get("email") or None,
        "role": data.get("role") or None,
        "displayName": data.get("displayName") or None,
        "plan": data.get("plan") or "free",
        "createdAt": to_iso(data.get("createdAt")),
        "pricingGate": data.get("pricingGate") or None,
    }


def set_pricing_gate(uid: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    ref = db.collection("users").document(uid)
    ref.set({"pricingGate": build_pricing_gate(body)}, merge=True)
    return (ref.get().to_dict() or {}).get("pricingGate") or None


# ---------- services ----------

def list_services(status: str) -> List[Dict[str, Any]]:
    rows = []
    docs = db.collection("services").where("status", "==", status).limit(SERVICE_LIST_LIMIT).stream()
    for doc in docs:
        data = doc.to_dict() or {}
        images = [i for i in (data.get("images") or []) if isinstance(i, dict) and i.get("url")]
        price = data.get("price")
        rows.append({
            "id": doc.id,
            "title": data.get("title") or "",
            "providerId": data.get("providerId") or "",
            "status": data.get("status") or None,
            "createdAt": to_iso(data.get("createdAt")),
            "imageUrl": images[0]["url"] if images else None,
            "images": [{"url": i["url"]} for i in images[:SERVICE_LIST_IMAGES]],
            "price": price if isinstance(price, (int, float)) and not isinstance(price, bool) else None,
            "category": data.get("category") or None,
            "city": data.get("city") or None,
            "area": data.get("area") or None,
            "contactPhone": data.get("contactPhone") or None,
            "contactWhatsapp": data.get("contactWhatsapp") or None,
            "description": data.get("description") or None,
            "videoUrl": data.get("videoUrl") or None,
        })
    # newest first without a composite index
    rows.sort(key=lambda r: r["createdAt"] or "", reverse=True)
    return rows


def decide_deletion(request_id: str, action: str, decided_by: str) -> str:
    """
    approve: delete the service (if still there), mark the request approved.
    reject: restore the service's prior status and clear `pendingDelete`.
    Raises ValueError: REQUEST_NOT_FOUND, NO_SERVICE.
    """
    req = deletion_requests.get(request_id)
    if req is None:
        raise ValueError("REQUEST_NOT_FOUND")
    service_id = clean_string(req.get("serviceId"))
    if not service_id:
        raise ValueError("NO_SERVICE")

    service_ref = db.collection("services").document(service_id)
    if action == "approve":
        if service_ref.get().exists:
            service_ref.delete()
        deletion_requests.ref(request_id).set(deletion_requests.resolution("approved", decided_by), merge=True)
        return "approved"

    service_ref.set({"status": req.get("priorStatus") or "approved", "pendingDelete": False}, merge=True)
    deletion_requests.ref(request_id).set(deletion_requests.resolution("rejected", decided_by), merge=True)
    return "rejected"


def cleanup_images(images: Any) -> int:
    removed = 0
    for image in images if isinstance(images, list) else []:
        if not isinstance(image, dict):
            continue
        target = clean_string(image.get("publicId")) or clean_string(image.get("url"))
        if target and cloudinary_media.delete_image(target):
            removed += 1
    return removed


def admin_delete_service(service_id: str, decided_by: str) -> Dict[str, int]:
    ref = db.collection("services").document(service_id)
    snap = ref.get()
    if not snap.exists:
        raise ValueError("SERVICE_NOT_FOUND")

    images_removed = cleanup_images((snap.to_dict() or {}).get("images"))
    ref.delete()

    pending = deletion_requests.pending_for_service(service_id, limit=50)
    if pending:
        batch = db.batch()
        for doc in pending:
            batch.update(doc.reference, {
                "status": "approved",
                "resolvedAt": gcf.SERVER_TIMESTAMP,
                "resolvedBy": decided_by,
            })
        batch.commit()
    logger.info("service %s hard-deleted by %s (%d images removed)", service_id, decided_by, images_removed)
    return {"imagesRemoved": images_removed, "requestsResolved": len(pending)}
