from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from khidmaty.core.cors import preflight_response
from khidmaty.core.errors import error_body
from khidmaty.services import search as svc
from khidmaty.utils.text import clamp_int, clean_string

router = APIRouter(tags=["Search"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-App-Check",
}


@router.options("/search", include_in_schema=False)
async def search_preflight():
    return preflight_response("GET,OPTIONS")


@router.get("/search")
def search(
    q: Optional[str] = None,
    type: Optional[str] = None,
    city: Optional[str] = None,
    category: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
):
    query = clean_string(q)
    if not query:
        return JSONResponse(
            status_code=400,
            headers=_CORS_HEADERS,
            content=error_body("invalid_request", "Missing required query param: q"),
        )
    if len(query) > 120:
        return JSONResponse(
            status_code=400,
            headers=_CORS_HEADERS,
            content=error_body("invalid_request", "q must be 1..120 characters"),
        )

    type_raw = clean_string(type).lower()
    search_type = type_raw if type_raw in svc.SEARCH_TYPES else "all"
    page_n = clamp_int(page if page is not None else 1, 1, svc.MAX_PAGE)
    limit_n = clamp_int(limit if limit is not None else 10, 1, svc.MAX_LIMIT)

    found = svc.search(query, search_type, clean_string(city) or None, clean_string(category) or None, page_n, limit_n)
    return JSONResponse(
        headers=_CORS_HEADERS,
        content={"query": query, "page": page_n, "limit": limit_n, **found},
    )
