"""
Expo push service client.

Messages are POSTed to the Expo endpoint in batches of 100. The result counts
tickets with `status == "ok"`; every other ticket is returned as an error with
its index into the input list so callers can map it back to a token.
"""
import logging
from typing import Any, Dict, List

import httpx

from khidmaty.config import settings
from khidmaty.core.constants import EXPO_BATCH_SIZE
from khidmaty.utils.firestore_helpers import chunked

logger = logging.getLogger("khidmaty.push.expo")


def _client() -> httpx.Client:
    return httpx.Client(timeout=settings.http_timeout_seconds)


def send_messages(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Returns `{"ok": <accepted tickets>, "errors": [...]}`."""
    errors: List[Dict[str, Any]] = []
    ok = 0
    if not messages:
        return {"ok": ok, "errors": errors}

    offset = 0
    with _client() as client:
        for batch in chunked(messages, EXPO_BATCH_SIZE):
            try:
                resp = client.post(
                    settings.expo_push_url,
                    json=list(batch),
                    headers={"Content-Type": "application/json", "Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                logger.warning("expo push batch failed: %s", exc)
                errors.append({"type": "network_error", "message": str(exc)})
                offset += len(batch)
                continue

            try:
                payload = resp.json()
            except ValueError:
                payload = None

            if resp.status_code >= 400:
                errors.append({"type": "http_error", "status": resp.status_code, "body": payload})
                offset += len(batch)
                continue

            tickets = payload.get("data") if isinstance(payload, dict) else None
            for i, ticket in enumerate(tickets if isinstance(tickets, list) else []):
                if isinstance(ticket, dict) and ticket.get("status") == "ok":
                    ok += 1
                else:
                    errors.append({"type": "expo_error", "index": offset + i, "details": ticket})
            offset += len(batch)

    return {"ok": ok, "errors": errors}


def ticket_error_code(error: Dict[str, Any]) -> str:
    """`details.details.error` of a failed ticket (e.g. `DeviceNotRegistered`)."""
    ticket = error.get("details")
    if not isinstance(ticket, dict):
        return ""
    inner = ticket.get("details")
    code = inner.get("error") if isinstance(inner, dict) else None
    return code if isinstance(code, str) else ""
