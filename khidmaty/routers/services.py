"""
# `khidmaty/routers/services.py` - Provider service listings

| Method | Path                         | Auth     | Purpose |
|--------|------------------------------|----------|---------|
| GET    | `/services/top`              | public   | Top approved services by recent stats |
| POST   | `/services`                  | provider | Create a service (starts `pending`) |
| PATCH  | `/services/{id}`             | owner    | Edit own service |
| POST   | `/services/request-delete`   | owner    | Ask the console to delete a service |
| POST   | `/service-slots/request`     | user     | Ask for an extra listing slot |

Moderation and hard deletes live under `/owner` (see `routers/owner.py`).
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query

from khidmaty.core.errors import ApiError
from khidmaty.core.security import get_current_user, require_provider
from khidmaty.schemas.listing import ServiceDeleteRequest, ServiceSlotRequest
from khidmaty.services import listings as svc
from khidmaty.utils.text import as_finite_number, clamp_int

logger = logging.getLogger("khidmaty.listings")

router = APIRouter(tags=["Services"])


def _raise_for(code: str):
    if code == "SERVICE_NOT_FOUND":
        raise ApiError(404, "not_found", "Service not found")
    if code == "NOT_OWNER":
        raise ApiError(403, "forbidden", "Not your service")
    if code == "ALREADY_REQUESTED":
        raise ApiError(409, "already_requested", "A deletion request is already pending")
    if code == "TITLE_REQUIRED":
        raise ApiError(400, "title_required")


def _weight(value: Any, default: float) -> float:
    n = as_finite_number(value)
    return default if n is None else n


@router.get("/services/top")
def get_top_services(
    days: str = Query("7"),
    take: str = Query("10"),
    wViews: str = Query("1"),
    wCtas: str = Query("3"),
    wMessages: str = Query("5"),
):
    days_n = clamp_int(days, 1, 30)
    take_n = clamp_int(take, 1, 50)
    services = svc.top_services(
        days_n,
        take_n,
        _weight(wViews, 1),
        _weight(wCtas, 3),
        _weight(wMessages, 5),
    )
    return {"ok": True, "days": days_n, "take": take_n, "services": services}


@router.post("/services", status_code=200)
def create_service(payload: Dict[str, Any] = Body(...), current_user: Dict = Depends(require_provider)):
    try:
        service_id = svc.create_service(current_user, payload)
    except ValueError as e:
        _raise_for(str(e))
        raise
    return {"ok": True, "id": service_id}


@router.patch("/services/{service_id}")
def update_service(service_id: str, payload: Dict[str, Any] = Body(...), current_user: Dict = Depends(get_current_user)):
    try:
        patch = svc.update_service(current_user["id"], service_id, payload)
    except ValueError as e:
        _raise_for(str(e))
        raise
    return {"ok": True, "id": service_id, "updated": sorted(patch)}


@router.post("/services/request-delete")
def request_delete(payload: ServiceDeleteRequest, current_user: Dict = Depends(get_current_user)):
    service_id = payload.target_id
    if not service_id:
        raise ApiError(400, "bad_request", "id or serviceId is required")
    try:
        request_id = svc.request_service_deletion(current_user["id"], service_id, payload.reason)
    except ValueError as e:
        _raise_for(str(e))
        raise
    return {"ok": True, "requestId": request_id}


@router.post("/service-slots/request")
def request_slot(payload: ServiceSlotRequest, current_user: Dict = Depends(get_current_user)):
    request_id = svc.request_service_slot(current_user, payload.notes)
    return {"ok": True, "id": request_id}
