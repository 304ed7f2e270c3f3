"""
Listing analytics and housekeeping jobs.

`track_event` stores the raw event in `events` and bumps the per-day counter
document `stats_daily/{serviceId}_{yyyymmdd}` (`views`, `ctas`, `messages`),
which `GET /services/top` aggregates. The prune jobs run from the scheduler in
`main.py`.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db, settings
from khidmaty.core.constants import DELETE_BATCH_SIZE, SOS_RATE_WINDOW_SECONDS
from khidmaty.utils import firestore_helpers

logger = logging.getLogger("khidmaty.stats")

EVENT_FIELDS = {
    "service_view": "views",
    "cta_click": "ctas",
    "message_sent": "messages",
}


def day_key(when: datetime) -> str:
    return when.strftime("%Y%m%d")


def track_event(event_type: str, service_id: str, city: Optional[str], ref: Optional[str]) -> Dict[str, Any]:
    field = EVENT_FIELDS.get(event_type)
    if not field or not service_id:
        raise ValueError("BAD_EVENT")

    snap = db.collection("services").document(service_id).get()
    if not snap.exists:
        raise ValueError("NO_SERVICE")
    provider_uid = (snap.to_dict() or {}).get("providerId") or ""

    now = firestore_helpers.utcnow()
    yyyymmdd = day_key(now)
    db.collection("events").add({
        "type": event_type,
        "serviceId": service_id,
        "providerUid": provider_uid,
        "city": city,
        "ref": ref,
        "ts": now,
    })
    db.collection("stats_daily").document(f"{service_id}_{yyyymmdd}").set({
        "serviceId": service_id,
        "providerUid": provider_uid,
        "yyyymmdd": yyyymmdd,
        field: gcf.Increment(1),
    }, merge=True)
    return {"ok": True}


def save_contact_message(name: str, email: str, message: str) -> str:
    _, ref = db.collection("contact_messages").add({
        "name": name,
        "email": email,
        "message": message,
        "status": "new",
        "createdAt": gcf.SERVER_TIMESTAMP,
    })
    return ref.id


def prune_stats_once(now: Optional[datetime] = None) -> int:
    """Deletes `stats_daily` documents older than `stats_cleanup_days`."""
    now = now or firestore_helpers.utcnow()
    cutoff = day_key(now - timedelta(days=max(1, settings.stats_cleanup_days)))
    refs = [d.reference for d in db.collection("stats_daily").where("yyyymmdd", "<", cutoff).stream()]
    removed = firestore_helpers.delete_refs(refs, DELETE_BATCH_SIZE)
    if removed:
        logger.info("pruned %d stats_daily docs older than %s", removed, cutoff)
    return removed


def prune_rate_windows_once(now: Optional[datetime] = None) -> int:
    """Deletes SOS rate windows that can no longer limit anything."""
    now = now or firestore_helpers.utcnow()
    cutoff = now - timedelta(seconds=SOS_RATE_WINDOW_SECONDS)
    refs = [d.reference for d in db.collection("sos_rate").where("windowStart", "<", cutoff).stream()]
    removed = firestore_helpers.delete_refs(refs, DELETE_BATCH_SIZE)
    if removed:
        logger.info("pruned %d expired sos_rate windows", removed)
    return removed
