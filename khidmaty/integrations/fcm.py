"""
Firebase Cloud Messaging (web push) through the Admin SDK.

`send_multicast` sends a data-only message to many tokens in batches of 500
and returns per-token errors; `is_dead_token_error` tells which of those mean
the token should be removed.
"""
import logging
from typing import Any, Dict, List, Optional

from firebase_admin import exceptions as fb_exceptions
from firebase_admin import messaging

from khidmaty.core.constants import FCM_BATCH_SIZE
from khidmaty.utils.firestore_helpers import chunked

logger = logging.getLogger("khidmaty.push.fcm")

_DEAD_TOKEN_CODES = {
    "messaging/registration-token-not-registered",
    "messaging/invalid-registration-token",
    "registration-token-not-registered",
    "invalid-registration-token",
}


def _error_code(exc: Optional[BaseException]) -> str:
    if exc is None:
        return ""
    code = getattr(exc, "code", "")
    return code if isinstance(code, str) else ""


def is_dead_token_error(exc: Optional[BaseException]) -> bool:
    if exc is None:
        return False
    if isinstance(exc, messaging.UnregisteredError):
        return True
    code = _error_code(exc)
    if code in _DEAD_TOKEN_CODES:
        return True
    return code == fb_exceptions.INVALID_ARGUMENT and "registration token" in str(exc).lower()


def send_multicast(
    tokens: List[str],
    data: Dict[str, str],
    urgency: Optional[str] = None,
) -> Dict[str, Any]:
    """Returns `{"ok": <success count>, "errors": [{"token", "code", "message", "exception"}]}`."""
    errors: List[Dict[str, Any]] = []
    ok = 0
    if not tokens:
        return {"ok": ok, "errors": errors}

    webpush = messaging.WebpushConfig(headers={"Urgency": urgency}) if urgency else None
    payload = {k: str(v) for k, v in data.items() if v is not None}

    for batch in chunked(tokens, FCM_BATCH_SIZE):
        message = messaging.MulticastMessage(tokens=list(batch), data=payload, webpush=webpush)
        res = messaging.send_each_for_multicast(message)
        ok += int(getattr(res, "success_count", 0) or 0)
        for i, r in enumerate(getattr(res, "responses", None) or []):
            if getattr(r, "success", False):
                continue
            exc = getattr(r, "exception", None)
            errors.append({
                "type": "fcm_error",
                "index": i,
                "token": batch[i],
                "code": _error_code(exc),
                "message": str(exc) if exc else "",
                "exception": exc,
            })

    if errors:
        logger.info("fcm multicast: %d ok, %d failed", ok, len(errors))
    return {"ok": ok, "errors": errors}
