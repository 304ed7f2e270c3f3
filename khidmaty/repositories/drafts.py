import time
from typing import Any, Dict, Optional

from khidmaty.config import db

COLLECTIONS = {
    "services": "servicesDrafts",
    "sales": "saleItemsDrafts",
}


def now_ms() -> int:
    return int(time.time() * 1000)


def collection_for(kind: str) -> str:
    try:
        return COLLECTIONS[kind]
    except KeyError:
        raise ValueError("UNKNOWN_KIND")


def get(kind: str, uid: str) -> Optional[Dict[str, Any]]:
    doc = db.collection(collection_for(kind)).document(uid).get()
    return doc.to_dict() if doc.exists else None


def save(kind: str, uid: str, data: Dict[str, Any]) -> int:
    updated_at = now_ms()
    db.collection(collection_for(kind)).document(uid).set({**data, "updatedAt": updated_at}, merge=True)
    return updated_at


def delete(kind: str, uid: str) -> None:
    db.collection(collection_for(kind)).document(uid).delete()
