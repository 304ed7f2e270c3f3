"""
Listing details, sale items, wizard drafts and per-step wizard validation.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from khidmaty.core.auth import get_optional_principal, get_principal
from khidmaty.core.errors import ApiError
from khidmaty.repositories import drafts
from khidmaty.schemas.listing import SaleItemForm, WizardValidationOut
from khidmaty.schemas.principal import Principal
from khidmaty.services import listings as svc
from khidmaty.services import wizard

logger = logging.getLogger("khidmaty.listings")

router = APIRouter(tags=["Listings"])


@router.get("/listing/{kind}/{listing_id}")
def get_listing(kind: str, listing_id: str, principal: Optional[Principal] = Depends(get_optional_principal)):
    if kind not in svc.LISTING_COLLECTIONS:
        raise ApiError(400, "invalid_request", "kind must be services or sale_items")
    if not listing_id.strip() or len(listing_id) > 120:
        raise ApiError(400, "invalid_request", "id must be 1..120 characters")
    try:
        return svc.listing_details(kind, listing_id.strip(), principal.uid if principal else None)
    except ValueError as e:
        if str(e) == "NOT_FOUND":
            raise ApiError(404, "not_found")
        raise


@router.post("/sale-items")
def create_sale_item(payload: SaleItemForm, principal: Principal = Depends(get_principal)):
    item_id = svc.create_sale_item(principal.uid, payload)
    return {"ok": True, "id": item_id}


# ---------- drafts ----------

def _draft_kind(kind: str) -> str:
    if kind not in drafts.COLLECTIONS:
        raise ApiError(400, "invalid_request", "kind must be services or sales")
    return kind


@router.get("/drafts/{kind}")
def get_draft(kind: str, principal: Principal = Depends(get_principal)):
    return {"draft": drafts.get(_draft_kind(kind), principal.uid)}


@router.put("/drafts/{kind}")
def save_draft(kind: str, payload: Dict[str, Any] = Body(...), principal: Principal = Depends(get_principal)):
    updated_at = drafts.save(_draft_kind(kind), principal.uid, payload)
    return {"ok": True, "updatedAt": updated_at}


@router.delete("/drafts/{kind}")
def delete_draft(kind: str, principal: Principal = Depends(get_principal)):
    drafts.delete(_draft_kind(kind), principal.uid)
    return {"ok": True}


# ---------- wizard ----------

@router.post("/wizard/{kind}/validate", response_model=WizardValidationOut)
def validate_wizard_step(kind: str, step: str = Query(...), payload: Dict[str, Any] = Body(...)):
    try:
        errors = wizard.validate_step(kind, step, payload)
    except ValueError as e:
        if str(e) == "UNKNOWN_KIND":
            raise ApiError(400, "invalid_request", "kind must be services or sales")
        if str(e) == "UNKNOWN_STEP":
            raise ApiError(400, "invalid_request", f"Unknown step for {kind}: {step}")
        raise
    return {
        "ok": not errors,
        "step": step,
        "next": wizard.next_step(kind, step),
        "errors": errors,
    }
