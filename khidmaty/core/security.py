"""
# `khidmaty/core/security.py` - Profile-backed authorisation

FastAPI dependencies that turn a verified Firebase ID token into the caller's
Firestore profile and enforce roles.

- `get_current_user`: verifies the token (revocation checked), reads
  `users/{uid}` and returns the profile dict with `id` and `role`. A missing
  profile is **not** created here; `POST /auth/ensure-provider` owns that.
- `get_current_owner`: only roles `owner` or `admin` (owner console).
- `require_provider`: only role `provider` (listing creation).

Roles live in the Firestore profile; a custom claim `admin: true` on the token
is honoured as well so console accounts set up with the claim script keep
working before their profile is written.
"""
from typing import Dict

from fastapi import Depends

from khidmaty.config import db
from khidmaty.core.auth import get_verified_principal
from khidmaty.core.constants import OWNER_ROLES
from khidmaty.core.errors import ApiError
from khidmaty.schemas.principal import Principal


def load_profile(uid: str) -> Dict:
    doc = db.collection("users").document(uid).get()
    profile = (doc.to_dict() or {}) if doc.exists else {}
    return {**profile, "id": uid, "exists": doc.exists}


def get_current_user(principal: Principal = Depends(get_verified_principal)) -> Dict:
    user = load_profile(principal.uid)
    if not user.get("email") and principal.email:
        user["email"] = principal.email
    user["role"] = str(user.get("role") or "seeker")
    if principal.admin and user["role"] not in OWNER_ROLES:
        user["role"] = "admin"
    return user


def get_current_owner(current_user: Dict = Depends(get_current_user)) -> Dict:
    if current_user.get("role") not in OWNER_ROLES:
        raise ApiError(403, "forbidden", "Owner access required")
    return current_user


def require_provider(current_user: Dict = Depends(get_current_user)) -> Dict:
    if current_user.get("role") != "provider":
        raise ApiError(403, "forbidden", "Only providers can perform this action")
    return current_user
