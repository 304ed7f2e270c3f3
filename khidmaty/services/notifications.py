# khidmaty/services/notifications.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.core.i18n import tr
from khidmaty.integrations import fcm
from khidmaty.utils.text import clean_string

logger = logging.getLogger("khidmaty.notify")

MESSAGE_PREVIEW_LENGTH = 140
REQUEST_NOTE_LENGTH = 500


def user_web_tokens(uids: Iterable[str]) -> List[str]:
    """Browser push tokens stored as keys of `users/{uid}.fcmTokens`."""
    tokens: List[str] = []
    for uid in uids:
        snap = db.collection("users").document(uid).get()
        if not snap.exists:
            continue
        token_map = (snap.to_dict() or {}).get("fcmTokens") or {}
        if isinstance(token_map, dict):
            tokens.extend(t for t, enabled in token_map.items() if t and enabled)
    return list(dict.fromkeys(tokens))


def push_to_tokens(tokens: List[str], title: str, body: str, url: str) -> Dict[str, int]:
    res = fcm.send_multicast(tokens, {"title": title, "body": body, "url": url})
    return {"successCount": res["ok"], "failureCount": len(res["errors"])}


def notify_conversation(sender_uid: str, conversation_id: str, text: str, locale: str) -> Dict:
    snap = db.collection("conversations").document(conversation_id).get()
    if not snap.exists:
        raise ValueError("CONVERSATION_NOT_FOUND")
    participants = (snap.to_dict() or {}).get("participants") or {}
    if not isinstance(participants, dict) or not participants.get(sender_uid):
        raise ValueError("NOT_PARTICIPANT")

    recipients = [uid for uid, active in participants.items() if uid != sender_uid and active]
    if not recipients:
        return {"ok": True, "info": "no_recipients"}

    tokens = user_web_tokens(recipients)
    if not tokens:
        return {"ok": True, "info": "no_tokens"}

    body = clean_string(text)[:MESSAGE_PREVIEW_LENGTH] or tr(locale, "push.message.body")
    counts = push_to_tokens(tokens, tr(locale, "push.message.title"), body, f"/messages/{conversation_id}")
    return {"ok": True, **counts}


def create_service_request(requester_uid: str, service_id: str, note: str, locale: str) -> Dict:
    """
    Stores `requests/{id}` for a seeker and pushes it to the provider.
    Raises ValueError: SERVICE_NOT_FOUND, INVALID_PROVIDER, OWN_SERVICE, REQUESTS_DISABLED.
    """
    snap = db.collection("services").document(service_id).get()
    if not snap.exists:
        raise ValueError("SERVICE_NOT_FOUND")
    service = snap.to_dict() or {}
    provider_id = clean_string(service.get("providerId"))
    if not provider_id:
        raise ValueError("INVALID_PROVIDER")
    if provider_id == requester_uid:
        raise ValueError("OWN_SERVICE")
    if service.get("acceptRequests") is False:
        raise ValueError("REQUESTS_DISABLED")

    note = clean_string(note)[:REQUEST_NOTE_LENGTH]
    _, ref = db.collection("requests").add({
        "serviceId": service_id,
        "providerId": provider_id,
        "requesterId": requester_uid,
        "note": note or None,
        "status": "new",
        "createdAt": gcf.SERVER_TIMESTAMP,
    })

    counts = {"successCount": 0, "failureCount": 0}
    tokens = user_web_tokens([provider_id])
    if tokens:
        title = clean_string(service.get("title"))
        body = f"{tr(locale, 'push.request.prefix')} {title[:60]}" if title else tr(locale, "push.request.body")
        counts = push_to_tokens(tokens, tr(locale, "push.request.title"), body, f"/services/{service_id}")
    return {"ok": True, "requestId": ref.id, **counts}
