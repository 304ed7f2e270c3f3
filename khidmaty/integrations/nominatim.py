"""
OpenStreetMap Nominatim client (reverse geocoding and forward search).

Nominatim's usage policy requires an identifying User-Agent; it is taken from
`settings.nominatim_user_agent`. Reverse results are cached in-process keyed by
the coordinates rounded to 6 decimals and the language.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from khidmaty.config import settings

logger = logging.getLogger("khidmaty.geocode")

_REVERSE_CACHE_MAX = 2048
_reverse_cache: Dict[Tuple[float, float, str], str] = {}


class UpstreamError(Exception):
    """Nominatim answered with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"nominatim returned {status_code}")
        self.status_code = status_code


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.nominatim_base_url,
        timeout=settings.http_timeout_seconds,
        headers={"User-Agent": settings.nominatim_user_agent},
    )


def clear_cache() -> None:
    _reverse_cache.clear()


async def reverse(lat: float, lng: float, lang: str) -> str:
    """
    Returns the display name for a coordinate ("" when Nominatim has none).
    Raises `UpstreamError` on non-2xx, `httpx.HTTPError` on network failure
    and `ValueError` when the body is not JSON.
    """
    key = (round(lat, 6), round(lng, 6), lang)
    if key in _reverse_cache:
        return _reverse_cache[key]

    async with _client() as client:
        resp = await client.get(
            "/reverse",
            params={"format": "jsonv2", "lat": lat, "lon": lng, "accept-language": lang},
            headers={"Accept-Language": lang},
        )
    if resp.status_code < 200 or resp.status_code >= 300:
        raise UpstreamError(resp.status_code)

    data = resp.json()
    name = data.get("display_name") if isinstance(data, dict) else None
    display_name = name if isinstance(name, str) else ""

    if len(_reverse_cache) >= _REVERSE_CACHE_MAX:
        _reverse_cache.pop(next(iter(_reverse_cache)))
    _reverse_cache[key] = display_name
    return display_name


async def search(query: str, limit: int, lang: str, countrycodes: Optional[str] = None) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {"format": "jsonv2", "q": query, "limit": limit, "addressdetails": 1, "accept-language": lang}
    if countrycodes:
        params["countrycodes"] = countrycodes
    async with _client() as client:
        resp = await client.get("/search", params=params, headers={"Accept-Language": lang})
    if resp.status_code < 200 or resp.status_code >= 300:
        raise UpstreamError(resp.status_code)
    data = resp.json()
    return data if isinstance(data, list) else []
