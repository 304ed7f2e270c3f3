"""
# `khidmaty/services/sos.py` - SOS phone registry and alert fan-out

## Phone registry
`claim_phone(uid, phone)` binds an E.164 number to one user inside a single
Firestore transaction. `phone_index/{phone}` holds the owning uid; the user's
profile keeps a copy in `phone`. Outcomes raised as `ValueError`:

- `NO_PROFILE`: `users/{uid}` does not exist
- `PHONE_LOCKED`: the user already registered a different number
- `PHONE_TAKEN`: the number belongs to another uid

## Send rate limit
`consume_send_quota(uid, now)` keeps a fixed window per sender in
`sos_rate/{uid}` (`windowStart`, `count`). At most 10 sends per 30 minutes;
the 11th raises `ValueError("RATE_LIMITED")`.

## Fan-out
`send_alert(uid, event_id)` pushes to every device of the sender's accepted
trusted contacts: Expo tokens through the Expo push API, web tokens through
FCM. Tokens reported dead by either channel have every originating
`devices/{uid}/tokens/{doc}` document removed.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.core.constants import (
    DELETE_BATCH_SIZE,
    EXPO_DEAD_TOKEN_ERRORS,
    SOS_BODY,
    SOS_RATE_MAX_SENDS,
    SOS_RATE_WINDOW_SECONDS,
    SOS_TITLE,
)
from khidmaty.integrations import expo_push, fcm
from khidmaty.utils import firestore_helpers
from khidmaty.utils.text import as_finite_number, clean_string

logger = logging.getLogger("khidmaty.sos")

TokenRefs = Dict[str, List[Any]]


# --- phone registry ---

def decide_phone_claim(uid: str, phone: str, user: Optional[dict], index: Optional[dict]) -> bool:
    """
    Validates a claim against the current user profile and index entry.
    Returns True when the index document has to be created.
    """
    if user is None:
        raise ValueError("NO_PROFILE")
    current = clean_string(user.get("phone"))
    if current and current != phone:
        raise ValueError("PHONE_LOCKED")
    if index is not None:
        owner = clean_string(index.get("uid"))
        if owner and owner != uid:
            raise ValueError("PHONE_TAKEN")
        return False
    return True


def claim_phone(uid: str, phone: str) -> str:
    user_ref = db.collection("users").document(uid)
    index_ref = db.collection("phone_index").document(phone)

    def _apply(transaction):
        user_snap = user_ref.get(transaction=transaction)
        index_snap = index_ref.get(transaction=transaction)
        create_index = decide_phone_claim(
            uid,
            phone,
            (user_snap.to_dict() or {}) if user_snap.exists else None,
            (index_snap.to_dict() or {}) if index_snap.exists else None,
        )
        if create_index:
            transaction.set(index_ref, {
                "uid": uid,
                "createdAt": gcf.SERVER_TIMESTAMP,
                "updatedAt": gcf.SERVER_TIMESTAMP,
            })
        else:
            transaction.set(index_ref, {"uid": uid, "updatedAt": gcf.SERVER_TIMESTAMP}, merge=True)
        transaction.set(user_ref, {
            "phone": phone,
            "phoneUpdatedAt": gcf.SERVER_TIMESTAMP,
            "updatedAt": gcf.SERVER_TIMESTAMP,
        }, merge=True)

    firestore_helpers.run_transaction(_apply)
    return phone


def lookup_uid_by_email(email: str) -> Optional[str]:
    docs = list(db.collection("users").where("email", "==", email).limit(1).stream())
    return docs[0].id if docs else None


def lookup_uid_by_phone(phone: str) -> Optional[str]:
    snap = db.collection("phone_index").document(phone).get()
    if not snap.exists:
        return None
    return clean_string((snap.to_dict() or {}).get("uid")) or None


# --- rate limit ---

def _as_aware(value: Any) -> Optional[datetime]:
    if not isinstance(value, datetime):
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def next_rate_window(stored: Optional[dict], now: datetime) -> Tuple[datetime, int]:
    """(windowStart, count) to persist after one more send, or `ValueError("RATE_LIMITED")`."""
    stored = stored or {}
    window_start = _as_aware(stored.get("windowStart")) or now
    raw = as_finite_number(stored.get("count"))
    count = max(0, int(raw)) if raw is not None else 0

    within_window = (now - window_start).total_seconds() < SOS_RATE_WINDOW_SECONDS
    if within_window and count >= SOS_RATE_MAX_SENDS:
        raise ValueError("RATE_LIMITED")
    if within_window:
        return window_start, count + 1
    return now, 1


def consume_send_quota(uid: str, now: Optional[datetime] = None) -> int:
    now = now or firestore_helpers.utcnow()
    rate_ref = db.collection("sos_rate").document(uid)

    def _apply(transaction):
        snap = rate_ref.get(transaction=transaction)
        window_start, count = next_rate_window(snap.to_dict() if snap.exists else None, now)
        transaction.set(rate_ref, {"windowStart": window_start, "count": count}, merge=True)
        return count

    return firestore_helpers.run_transaction(_apply)


# --- fan-out ---

def accepted_contacts(uid: str) -> List[str]:
    contacts = db.collection("trusted").document(uid).collection("contacts")
    docs = contacts.where("status", "==", "accepted").stream()
    return [d.id for d in docs if clean_string(d.id)]


def collect_tokens(recipient_uids: List[str]) -> Tuple[TokenRefs, TokenRefs]:
    """Distinct Expo and web tokens, each mapped to every document it was read from."""
    expo: TokenRefs = {}
    web: TokenRefs = {}
    for recipient in recipient_uids:
        for doc in db.collection("devices").document(recipient).collection("tokens").stream():
            data = doc.to_dict() or {}
            expo_token = clean_string(data.get("expoPushToken"))
            web_token = clean_string(data.get("webPushToken"))
            if expo_token:
                expo.setdefault(expo_token, []).append(doc.reference)
            if web_token:
                web.setdefault(web_token, []).append(doc.reference)
    return expo, web


def build_expo_messages(tokens: List[str], event_id: str) -> List[Dict[str, Any]]:
    return [
        {
            "to": token,
            "title": SOS_TITLE,
            "body": SOS_BODY,
            "sound": "default",
            "priority": "high",
            "channelId": "sos",
            "data": {"type": "sos", "eventId": event_id},
        }
        for token in tokens
    ]


def dead_expo_tokens(errors: List[Dict[str, Any]], tokens: List[str]) -> set:
    dead = set()
    for err in errors:
        if expo_push.ticket_error_code(err) not in EXPO_DEAD_TOKEN_ERRORS:
            continue
        idx = err.get("index")
        if isinstance(idx, int) and 0 <= idx < len(tokens):
            dead.add(tokens[idx])
    return dead


def dead_web_tokens(errors: List[Dict[str, Any]]) -> set:
    return {err["token"] for err in errors if err.get("token") and fcm.is_dead_token_error(err.get("exception"))}


def remove_token_docs(dead: set, token_refs: TokenRefs) -> int:
    refs: List[Any] = []
    for token in dead:
        refs.extend(token_refs.get(token, []))
    unique = list(dict.fromkeys(refs))
    if not unique:
        return 0
    return firestore_helpers.delete_refs(unique, DELETE_BATCH_SIZE)


def load_own_event(uid: str, event_id: str) -> dict:
    snap = db.collection("sos_events").document(event_id).get()
    if not snap.exists:
        raise ValueError("EVENT_NOT_FOUND")
    event = snap.to_dict() or {}
    if clean_string(event.get("senderUid")) != uid:
        raise ValueError("NOT_EVENT_OWNER")
    return event


def send_alert(uid: str, event_id: str) -> Dict[str, Any]:
    load_own_event(uid, event_id)

    recipients = accepted_contacts(uid)
    if not recipients:
        return {"ok": True, "sent": 0, "recipients": 0}

    expo_refs, web_refs = collect_tokens(recipients)
    expo_tokens = list(expo_refs)
    web_tokens = list(web_refs)

    expo_res = expo_push.send_messages(build_expo_messages(expo_tokens, event_id))
    fcm_res = fcm.send_multicast(
        web_tokens,
        {"type": "sos", "eventId": event_id, "title": SOS_TITLE, "body": SOS_BODY},
        "high",
    )

    removed = remove_token_docs(dead_expo_tokens(expo_res["errors"], expo_tokens), expo_refs)
    removed += remove_token_docs(dead_web_tokens(fcm_res["errors"]), web_refs)
    if removed:
        logger.info("sos %s: removed %d stale token docs", event_id, removed)

    return {
        "ok": True,
        "sent": expo_res["ok"] + fcm_res["ok"],
        "recipients": len(recipients),
        "tokens": len(expo_tokens) + len(web_tokens),
        "expoTokens": len(expo_tokens),
        "webTokens": len(web_tokens),
        "errors": len(expo_res["errors"]) + len(fcm_res["errors"]),
    }
