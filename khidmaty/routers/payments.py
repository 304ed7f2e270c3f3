"""
# `khidmaty/routers/payments.py` - Plans and checkout

| Method | Path | Auth | Purpose |
|--------|------|------|---------|
| GET  | `/plans` | public | Plans with localized names |
| POST | `/payments/create` | user | Open a pending transaction |
| GET  | `/payments/tx/{id}` | user | Read own transaction |
| POST | `/owner/payments/confirm` | owner | Mark paid, upgrade plan |
"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from khidmaty.config import settings
from khidmaty.core.auth import get_principal
from khidmaty.core.errors import ApiError
from khidmaty.core.i18n import Locale, get_request_locale, tr
from khidmaty.core.security import get_current_owner
from khidmaty.schemas.principal import Principal
from khidmaty.services import payments as svc
from khidmaty.utils.text import clean_string

logger = logging.getLogger("khidmaty.payments")

router = APIRouter(tags=["Payments"])
admin_router = APIRouter(prefix="/owner/payments", tags=["Owner Console"])


class CreatePaymentRequest(BaseModel):
    planId: Optional[str] = None
    provider: Optional[str] = None


class ConfirmPaymentRequest(BaseModel):
    id: Optional[str] = None


def _origin(request: Request) -> str:
    return request.headers.get("origin") or settings.public_origin or str(request.base_url).rstrip("/")


@router.get("/plans")
def list_plans(locale: Locale = Depends(get_request_locale)):
    return {"plans": [{**p, "name": tr(locale, p["nameKey"])} for p in svc.PLANS]}


@router.post("/payments/create")
def create_payment(payload: CreatePaymentRequest, request: Request, principal: Principal = Depends(get_principal)):
    plan_id = clean_string(payload.planId)
    provider = clean_string(payload.provider) or "mock"
    try:
        tx = svc.create_transaction(principal.uid, plan_id, provider, _origin(request))
    except ValueError as e:
        if str(e) == "INVALID_PLAN":
            raise ApiError(400, "invalid_plan")
        if str(e) == "INVALID_PROVIDER":
            raise ApiError(400, "invalid_provider")
        raise
    return {"ok": True, **tx}


@router.get("/payments/tx/{tx_id}")
def get_payment(tx_id: str, principal: Principal = Depends(get_principal)):
    tx = svc.get_transaction(tx_id.strip())
    if tx is None:
        raise ApiError(404, "not_found")
    if str(tx.get("uid")) != principal.uid:
        raise ApiError(403, "forbidden")
    return {"ok": True, "tx": tx}


@admin_router.post("/confirm")
def confirm_payment(payload: ConfirmPaymentRequest, owner: Dict = Depends(get_current_owner)):
    tx_id = clean_string(payload.id)
    if not tx_id:
        raise ApiError(400, "id_required")
    try:
        return svc.mark_transaction_paid(tx_id, owner["id"])
    except ValueError as e:
        if str(e) == "TX_NOT_FOUND":
            raise ApiError(404, "not_found")
        if str(e) == "USER_NOT_FOUND":
            raise ApiError(404, "user_not_found")
        raise
