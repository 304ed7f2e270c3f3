"""
Public, read-only view of the feature flags plus the caller's own pricing
visibility (used by the header and the pricing page).
"""
from typing import Dict

from fastapi import APIRouter, Depends

from khidmaty.core.security import get_current_user
from khidmaty.services import features as features_svc

router = APIRouter(tags=["Settings"])


@router.get("/settings/features")
def get_public_features():
    return {"features": features_svc.read_features()}


@router.get("/me/pricing")
def get_my_pricing(current_user: Dict = Depends(get_current_user)):
    features = features_svc.read_features()
    visibility = features_svc.pricing_visibility(current_user, features)
    return {**visibility, "plan": current_user.get("plan") or "free"}
