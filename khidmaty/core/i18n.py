"""
khidmaty/core/i18n.py

Server-side strings (push notification titles/bodies, plan names) in English
and Arabic, with `tr(locale, "dotted.key")` lookup.

Lookup order: requested locale, then the other locale, then the key itself.
A missing key is logged once per key outside production and never raises.
"""
import logging
from typing import Any, Literal, Optional

from fastapi import Request

from khidmaty.config import settings

logger = logging.getLogger("khidmaty.i18n")

Locale = Literal["en", "ar"]
DEFAULT_LOCALE: Locale = "ar"
LOCALE_COOKIE = "locale"

MESSAGES: dict[str, dict[str, Any]] = {
    "en": {
        "push": {
            "message": {"title": "New message", "body": "You have a new message"},
            "request": {"title": "New service request", "body": "Someone requested your service", "prefix": "Request for:"},
            "test": {"title": "Test notification", "body": "Push notifications are working"},
        },
        "plans": {
            "basic": "Basic",
            "pro": "Pro",
            "enterprise": "Enterprise",
        },
    },
    "ar": {
        "push": {
            "message": {"title": "رسالة جديدة", "body": "لديك رسالة جديدة"},
            "request": {"title": "طلب خدمة جديد", "body": "قام أحدهم بطلب خدمتك", "prefix": "طلب على:"},
            "test": {"title": "إشعار تجريبي", "body": "الإشعارات تعمل بنجاح"},
        },
        "plans": {
            "basic": "الأساسية",
            "pro": "الاحترافية",
        },
    },
}

_warned: set[str] = set()


def _lookup(locale: str, key: str) -> Optional[str]:
    node: Any = MESSAGES.get(locale)
    for part in key.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node if isinstance(node, str) else None


def tr(locale: str, key: str) -> str:
    primary = "ar" if locale == "ar" else "en"
    fallback = "en" if primary == "ar" else "ar"
    value = _lookup(primary, key)
    if value is None:
        value = _lookup(fallback, key)
    if value is not None:
        return value
    if not settings.is_production and key not in _warned:
        _warned.add(key)
        logger.warning("missing translation key %r (locale=%s)", key, primary)
    return key


def _pick(value: Optional[str]) -> Optional[Locale]:
    v = (value or "").strip().lower()
    if not v:
        return None
    return "ar" if v.startswith("ar") else "en"


def resolve_locale(cookie_value: Optional[str] = None, accept_language: Optional[str] = None) -> Locale:
    """Cookie first, then the first `Accept-Language` entry, else Arabic."""
    from_cookie = _pick(cookie_value)
    if from_cookie:
        return from_cookie
    first = (accept_language or "").split(",")[0].split(";")[0]
    return _pick(first) or DEFAULT_LOCALE


def get_request_locale(request: Request) -> Locale:
    return resolve_locale(request.cookies.get(LOCALE_COOKIE), request.headers.get("Accept-Language"))
