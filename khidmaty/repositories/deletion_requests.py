from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db

COL = "service_deletion_requests"


def ref(request_id: str):
    return db.collection(COL).document(request_id)


def get(request_id: str) -> Optional[Dict[str, Any]]:
    doc = ref(request_id).get()
    return doc.to_dict() if doc.exists else None


def pending_for_service(service_id: str, limit: Optional[int] = None) -> List[Any]:
    q = db.collection(COL).where("serviceId", "==", service_id).where("status", "==", "pending")
    if limit:
        q = q.limit(limit)
    return list(q.stream())


def create(service_id: str, uid: str, service: Dict[str, Any], reason: Optional[str]) -> str:
    _, doc_ref = db.collection(COL).add({
        "serviceId": service_id,
        "uid": uid,
        "email": service.get("providerEmail") or None,
        "displayName": service.get("providerName") or None,
        "status": "pending",
        "reason": reason,
        "createdAt": gcf.SERVER_TIMESTAMP,
        "serviceTitle": service.get("title") or None,
        "serviceCategory": service.get("category") or None,
        "priorStatus": service.get("status") or "approved",
    })
    return doc_ref.id


def resolution(status: str, decided_by: str) -> Dict[str, Any]:
    return {
        "status": status,
        "approvedAt": gcf.SERVER_TIMESTAMP,
        "approvedBy": decided_by,
    }
