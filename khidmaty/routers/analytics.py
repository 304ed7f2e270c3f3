"""
Analytics and contact form.

`POST /track` never breaks the page that calls it: when the server has no
usable Firestore credentials the event is skipped and `{"ok": true,
"skipped": ...}` is returned.
"""
import logging
from typing import Optional

from fastapi import APIRouter
from google.api_core import exceptions as gexc
from google.auth.exceptions import DefaultCredentialsError
from pydantic import BaseModel

from khidmaty.core.errors import ApiError
from khidmaty.services import stats as svc
from khidmaty.utils.text import clean_string

logger = logging.getLogger("khidmaty.analytics")

router = APIRouter(tags=["Analytics"])


class TrackEventRequest(BaseModel):
    type: Optional[str] = None
    serviceId: Optional[str] = None
    city: Optional[str] = None
    ref: Optional[str] = None


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


@router.post("/track")
def track(payload: TrackEventRequest):
    try:
        svc.track_event(payload.type or "", clean_string(payload.serviceId), payload.city, payload.ref)
    except ValueError as e:
        if str(e) == "BAD_EVENT":
            raise ApiError(400, "bad_event")
        if str(e) == "NO_SERVICE":
            raise ApiError(404, "no_service")
        raise
    except (gexc.PermissionDenied, gexc.Unauthenticated, DefaultCredentialsError) as e:
        logger.info("analytics skipped: %s", e)
        return {"ok": True, "skipped": "admin_unavailable"}
    except gexc.GoogleAPICallError as e:
        logger.warning("analytics write failed: %s", e)
        return {"ok": True, "skipped": "error"}
    return {"ok": True}


@router.post("/contact")
def contact(payload: ContactRequest):
    name = clean_string(payload.name)
    email = clean_string(payload.email)
    message = clean_string(payload.message)
    if not name or not email or not message:
        raise ApiError(400, "invalid")
    svc.save_contact_message(name, email, message)
    return {"ok": True}
