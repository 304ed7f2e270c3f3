from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from khidmaty.services import proxy as svc

router = APIRouter(tags=["Mini Postman"])


@router.post("/proxy")
async def proxy(request: Request):
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    origin = str(request.base_url).rstrip("/")
    try:
        result = await svc.proxy_request(request.app, origin, payload)
    except svc.ProxyError as e:
        return JSONResponse(status_code=e.status_code, content={"ok": False, "error": e.message})

    if result.pop("networkError", False):
        return JSONResponse(status_code=502, content=result)
    return result


@router.api_route("/proxy", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def proxy_method_not_allowed():
    return JSONResponse(status_code=405, content={"ok": False, "error": "Method not allowed"})
