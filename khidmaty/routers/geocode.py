import logging
from typing import Optional

import httpx
from fastapi import APIRouter

from khidmaty.core.errors import ApiError
from khidmaty.integrations import nominatim
from khidmaty.utils.text import as_finite_number, clamp_int, clean_string

logger = logging.getLogger("khidmaty.geocode")

router = APIRouter(prefix="/geocode", tags=["Geocoding"])


def _lang(value: Optional[str]) -> str:
    return "ar" if (value or "en").lower().startswith("ar") else "en"


@router.get("/reverse")
async def reverse(lat: Optional[str] = None, lng: Optional[str] = None, lang: Optional[str] = None):
    lat_n = as_finite_number(lat)
    lng_n = as_finite_number(lng)
    if lat_n is None or lng_n is None:
        raise ApiError(400, "invalid_request", "lat and lng required")

    try:
        display_name = await nominatim.reverse(lat_n, lng_n, _lang(lang))
    except nominatim.UpstreamError as e:
        logger.warning("reverse geocode failed: %s", e)
        raise ApiError(502, "reverse_failed")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("reverse geocode error: %s", e)
        raise ApiError(500, "reverse_error")
    return {"displayName": display_name}


@router.get("/search")
async def search(
    q: Optional[str] = None,
    limit: Optional[str] = None,
    countrycodes: Optional[str] = None,
    city: Optional[str] = None,
    lang: Optional[str] = None,
):
    query = clean_string(q)
    city_name = clean_string(city)
    if not query and not city_name:
        return []

    if query and city_name:
        text = f"{query}, {city_name}, Libya"
    else:
        text = query or f"{city_name}, Libya"
    take = clamp_int(limit if limit is not None else 5, 1, 50) if query else 10

    try:
        return await nominatim.search(text, take, _lang(lang), clean_string(countrycodes) or None)
    except (nominatim.UpstreamError, httpx.HTTPError, ValueError) as e:
        logger.warning("geocode search failed for %r: %s", text, e)
        return []
