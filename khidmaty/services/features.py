"""
Feature flags (`settings/features`) and the per-user pricing visibility rule.

`pricing_visibility` decides whether a user sees the pricing page and
whether the app is locked to it:

1. owner/admin: never locked.
2. per-user gate `force_show`: shown and locked.
3. role locks (`lockAllToPricing`, provider/seeker locks) on plan `free`:
   shown and locked. A `force_hide` gate hides pricing unless one applies.
4. otherwise shown when `pricingEnabled` and any of: the role's `showFor*`
   flag, account age >= `enforceAfterMonths` (user gate overrides the
   global value), or the gate's `showAt` has passed.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from khidmaty.config import db
from khidmaty.core.constants import OWNER_ROLES
from khidmaty.utils.firestore_helpers import to_millis, utcnow
from khidmaty.utils.text import as_finite_number

DEFAULT_FEATURES: Dict[str, Any] = {
    "pricingEnabled": True,
    "showForProviders": False,
    "showForSeekers": False,
    "enforceAfterMonths": 3,
    "lockAllToPricing": False,
    "lockProvidersToPricing": False,
    "lockSeekersToPricing": False,
}

GATE_MODES = ("force_show", "force_hide")


def coerce_features(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Stored values are used only when they have the right type."""
    data = data or {}
    out = {}
    for key, default in DEFAULT_FEATURES.items():
        value = data.get(key)
        if key == "enforceAfterMonths":
            n = as_finite_number(value) if not isinstance(value, str) else None
            out[key] = n if n is not None else default
            if isinstance(out[key], float) and out[key].is_integer():
                out[key] = int(out[key])
        else:
            out[key] = value if isinstance(value, bool) else default
    return out


def read_features() -> Dict[str, Any]:
    snap = db.collection("settings").document("features").get()
    return coerce_features(snap.to_dict() if snap.exists else None)


def floor_months(value: Any, default: int) -> int:
    n = as_finite_number(value)
    if n is None:
        return default
    return max(0, math.floor(n))


def save_features(body: Dict[str, Any]) -> Dict[str, Any]:
    nxt = {key: bool(body.get(key)) for key, default in DEFAULT_FEATURES.items() if isinstance(default, bool)}
    nxt["enforceAfterMonths"] = floor_months(body.get("enforceAfterMonths"), DEFAULT_FEATURES["enforceAfterMonths"])
    db.collection("settings").document("features").set(nxt, merge=True)
    return nxt


def parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    ms = to_millis(value)
    if ms:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return None


def build_pricing_gate(body: Dict[str, Any]) -> Dict[str, Any]:
    """Only the keys present in `body` end up in the patch."""
    gate: Dict[str, Any] = {}
    if "mode" in body:
        mode = body.get("mode")
        if mode in GATE_MODES:
            gate["mode"] = mode
        elif mode is None:
            gate["mode"] = None
    if "showAt" in body:
        show_at = body.get("showAt")
        if show_at is None:
            gate["showAt"] = None
        else:
            parsed = parse_date(show_at)
            if parsed is not None:
                gate["showAt"] = parsed
    if body.get("enforceAfterMonths") is not None:
        n = as_finite_number(body.get("enforceAfterMonths"))
        gate["enforceAfterMonths"] = max(0, math.floor(n)) if n is not None else None
    return gate


def months_between(start: datetime, end: datetime) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def pricing_visibility(profile: Dict[str, Any], features: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, bool]:
    now = now or utcnow()
    role = profile.get("role")
    plan = profile.get("plan") or "free"
    gate = profile.get("pricingGate") if isinstance(profile.get("pricingGate"), dict) else {}

    if role in OWNER_ROLES:
        return {"showPricing": bool(features.get("pricingEnabled")), "locked": False}

    if gate.get("mode") == "force_show":
        return {"showPricing": True, "locked": True}

    locked_by_role = plan == "free" and bool(
        features.get("lockAllToPricing")
        or (role == "provider" and features.get("lockProvidersToPricing"))
        or (role == "seeker" and features.get("lockSeekersToPricing"))
    )
    if locked_by_role:
        return {"showPricing": True, "locked": True}
    if gate.get("mode") == "force_hide":
        return {"showPricing": False, "locked": False}
    show_at = parse_date(gate.get("showAt"))
    if show_at and show_at <= now:
        return {"showPricing": True, "locked": False}
    if not features.get("pricingEnabled"):
        return {"showPricing": False, "locked": False}

    if role == "provider" and features.get("showForProviders"):
        return {"showPricing": True, "locked": False}
    if role == "seeker" and features.get("showForSeekers"):
        return {"showPricing": True, "locked": False}

    threshold = gate.get("enforceAfterMonths")
    if threshold is None:
        threshold = features.get("enforceAfterMonths", DEFAULT_FEATURES["enforceAfterMonths"])
    created = parse_date(profile.get("createdAt"))
    age = months_between(created, now) if created else 0
    return {"showPricing": age >= floor_months(threshold, DEFAULT_FEATURES["enforceAfterMonths"]), "locked": False}
