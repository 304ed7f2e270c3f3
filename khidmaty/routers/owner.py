"""
# `khidmaty/routers/owner.py` - Owner console API

Every route requires a profile with role `owner` or `admin`
(`get_current_owner`, revocation checked).

| Method | Path | Purpose |
|--------|------|---------|
| GET/POST | `/owner/settings/features` | Read / save feature flags |
| POST | `/owner/users/get` | Look a user up by uid or e-mail |
| POST | `/owner/users/set-pricing-gate` | Per-user pricing override |
| GET  | `/owner/services` | Moderation queue by status |
| POST | `/owner/services/{id}/decide` | Approve / reject a listing |
| POST | `/owner/service-deletions/decide` | Resolve a provider's deletion request |
| POST | `/owner/services/admin-delete` | Hard delete with image cleanup |
"""
import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from khidmaty.core.errors import ApiError
from khidmaty.core.security import get_current_owner
from khidmaty.services import features as features_svc
from khidmaty.services import listings as listings_svc
from khidmaty.services import owner_console as svc
from khidmaty.utils.text import clean_string

logger = logging.getLogger("khidmaty.owner")

admin_router = APIRouter(prefix="/owner", tags=["Owner Console"], dependencies=[Depends(get_current_owner)])


class UserLookupRequest(BaseModel):
    uid: Optional[str] = None
    email: Optional[str] = None


class DecisionRequest(BaseModel):
    action: Optional[str] = None


class DeletionDecisionRequest(BaseModel):
    id: Optional[str] = None
    action: Optional[str] = None


class AdminDeleteRequest(BaseModel):
    id: Optional[str] = None
    serviceId: Optional[str] = None


# ---------- feature flags ----------

@admin_router.get("/settings/features")
def get_features():
    return {"features": features_svc.read_features()}


@admin_router.post("/settings/features")
def save_features(payload: Dict[str, Any] = Body(...)):
    return {"ok": True, "features": features_svc.save_features(payload)}


# ---------- users ----------

@admin_router.post("/users/get")
def get_user(payload: UserLookupRequest):
    try:
        snap = svc.find_user(clean_string(payload.uid), clean_string(payload.email))
    except ValueError as e:
        if str(e) == "UID_OR_EMAIL_REQUIRED":
            raise ApiError(400, "uid_or_email_required")
        if str(e) == "USER_NOT_FOUND":
            raise ApiError(404, "not_found")
        raise
    return {"user": svc.user_summary(snap)}


@admin_router.post("/users/set-pricing-gate")
def set_pricing_gate(payload: Dict[str, Any] = Body(...)):
    uid = clean_string(payload.get("uid"))
    if not uid:
        raise ApiError(400, "uid_required")
    return {"ok": True, "pricingGate": svc.set_pricing_gate(uid, payload)}


# ---------- listings moderation ----------

@admin_router.get("/services")
def list_services(status: Literal["pending", "approved", "rejected"] = Query("pending")):
    return {"rows": svc.list_services(status)}


@admin_router.post("/services/admin-delete")
def admin_delete_service(payload: AdminDeleteRequest, owner: Dict = Depends(get_current_owner)):
    service_id = clean_string(payload.id) or clean_string(payload.serviceId)
    if not service_id:
        raise ApiError(400, "id_required")
    try:
        result = svc.admin_delete_service(service_id, owner["id"])
    except ValueError as e:
        if str(e) == "SERVICE_NOT_FOUND":
            raise ApiError(404, "not_found")
        raise
    return {"ok": True, **result}


@admin_router.post("/services/{service_id}/decide")
def decide_service(service_id: str, payload: DecisionRequest, owner: Dict = Depends(get_current_owner)):
    try:
        status = listings_svc.decide_service(service_id, clean_string(payload.action), owner["id"])
    except ValueError as e:
        if str(e) == "INVALID_ACTION":
            raise ApiError(400, "bad_request", "action must be approve or reject")
        if str(e) == "SERVICE_NOT_FOUND":
            raise ApiError(404, "not_found")
        raise
    return {"ok": True, "id": service_id, "status": status}


@admin_router.post("/service-deletions/decide")
def decide_deletion(payload: DeletionDecisionRequest, owner: Dict = Depends(get_current_owner)):
    request_id = clean_string(payload.id)
    action = clean_string(payload.action)
    if not request_id or action not in ("approve", "reject"):
        raise ApiError(400, "bad_request")
    try:
        outcome = svc.decide_deletion(request_id, action, owner["id"])
    except ValueError as e:
        if str(e) == "REQUEST_NOT_FOUND":
            raise ApiError(404, "not_found")
        if str(e) == "NO_SERVICE":
            raise ApiError(400, "no_service")
        raise
    return {"ok": True, "id": request_id, "action": outcome}
