# khidmaty/services/profiles.py
from typing import Any, Dict, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.schemas.principal import Principal
from khidmaty.utils.text import clean_string

KEEP_ROLES = ("owner", "admin", "provider")


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def profile_updates(existing: Optional[Dict[str, Any]], principal: Principal) -> Dict[str, Any]:
    """
    Patch for `users/{uid}`: everybody defaults to `provider` (owner/admin
    untouched); a new profile gets plan/status defaults; missing e-mail,
    display name and photo are filled from the token.
    """
    current = existing or {}
    email = clean_string(principal.email) or None
    name = clean_string(principal.name) or None
    picture = clean_string(principal.picture) or None

    updates: Dict[str, Any] = {}
    if current.get("uid") != principal.uid:
        updates["uid"] = principal.uid
    if not current.get("email") and email:
        updates["email"] = email
    if current.get("role") not in KEEP_ROLES:
        updates["role"] = "provider"

    if existing is None:
        updates.update({
            "createdAt": gcf.SERVER_TIMESTAMP,
            "plan": "free",
            "status": "active",
            "pricingGate": None,
        })
        if name:
            updates["displayName"] = name
        if picture:
            updates["photoURL"] = picture
    else:
        if not current.get("displayName") and name:
            updates["displayName"] = name
        if not current.get("photoURL") and picture:
            updates["photoURL"] = picture
    return updates


def ensure_provider_profile(principal: Principal) -> Dict[str, Any]:
    ref = db.collection("users").document(principal.uid)
    snap = ref.get()
    updates = profile_updates(snap.to_dict() if snap.exists else None, principal)
    if updates:
        ref.set(updates, merge=True)

    data = ref.get().to_dict() or {}
    return {
        "uid": principal.uid,
        "email": _str_or_none(data.get("email")) or principal.email,
        "role": _str_or_none(data.get("role")) or "provider",
        "status": _str_or_none(data.get("status")),
        "plan": _str_or_none(data.get("plan")),
        "displayName": _str_or_none(data.get("displayName")),
        "photoURL": _str_or_none(data.get("photoURL")),
    }
