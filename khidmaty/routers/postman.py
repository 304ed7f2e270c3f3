"""
Mini Postman helpers: URL checks, JSON pretty-printing, URL building and the
per-user saved collection.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from khidmaty.core.auth import get_principal
from khidmaty.schemas.postman import BuildUrlRequest, CollectionsPayload, FormatJsonRequest, ValidateUrlRequest
from khidmaty.schemas.principal import Principal
from khidmaty.services import postman as svc

router = APIRouter(prefix="/postman", tags=["Mini Postman"])


def _result(result: dict):
    if not result["ok"]:
        return JSONResponse(status_code=400, content=result)
    return result


@router.post("/validate-url")
def validate_url(payload: ValidateUrlRequest):
    return _result(svc.validate_practice_url(payload.url))


@router.post("/format-json")
def format_json(payload: FormatJsonRequest):
    return _result(svc.format_json(payload.text))


@router.post("/build-url")
def build_url(payload: BuildUrlRequest):
    return {"ok": True, "url": svc.build_url(payload.url, payload.params, payload.auth)}


@router.get("/collections")
def get_collections(principal: Principal = Depends(get_principal)):
    return {"items": svc.load_collections(principal.uid)}


@router.put("/collections")
def put_collections(payload: CollectionsPayload, principal: Principal = Depends(get_principal)):
    return {"ok": True, "items": svc.save_collections(principal.uid, payload.items)}
