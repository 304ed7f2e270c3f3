"""
# `khidmaty/routers/sos.py` - SOS endpoints

| Method | Path               | Purpose |
|--------|--------------------|---------|
| POST   | `/sos/set-phone`   | Register the caller's phone number (unique across users) |
| POST   | `/sos/lookup-user` | Resolve a trusted-contact candidate by e-mail or phone |
| POST   | `/sos/send`        | Fan an SOS event out to the caller's trusted contacts |

All three require `Authorization: Bearer <Firebase ID token>` and answer
`OPTIONS` pre-flight calls with 204.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from khidmaty.core.auth import extract_bearer_token, decode_id_token, token_to_principal
from khidmaty.core.constants import EMAIL_MAX_LENGTH
from khidmaty.core.cors import preflight_response
from khidmaty.core.errors import ApiError
from khidmaty.schemas.principal import Principal
from khidmaty.schemas.sos import LookupUserOut, LookupUserRequest, SendSosRequest, SetPhoneRequest
from khidmaty.services import sos as svc
from khidmaty.utils.text import clean_email, clean_string, normalize_phone

logger = logging.getLogger("khidmaty.sos")

router = APIRouter(prefix="/sos", tags=["SOS"])


async def sos_principal(request: Request) -> Principal:
    """Any missing or invalid token is a plain 401 `unauthorized` on these routes."""
    token = extract_bearer_token(request)
    if not token:
        raise ApiError(401, "unauthorized")
    try:
        return token_to_principal(decode_id_token(token))
    except ApiError:
        raise ApiError(401, "unauthorized")


@router.options("/set-phone", include_in_schema=False)
@router.options("/lookup-user", include_in_schema=False)
@router.options("/send", include_in_schema=False)
async def sos_preflight():
    return preflight_response("GET,POST,OPTIONS")


@router.post("/set-phone", summary="Register the caller's phone number")
def set_phone(payload: SetPhoneRequest, principal: Principal = Depends(sos_principal)):
    phone = normalize_phone(payload.phone)
    if not phone:
        raise ApiError(400, "invalid_request", "Invalid phone number. Use international format like +2189XXXXXXXX.")
    try:
        svc.claim_phone(principal.uid, phone)
    except ValueError as e:
        msg = str(e)
        if msg == "NO_PROFILE":
            raise ApiError(412, "failed_precondition", "User profile not found.")
        if msg == "PHONE_LOCKED":
            raise ApiError(412, "failed_precondition", "Phone number already set for this user.")
        if msg == "PHONE_TAKEN":
            raise ApiError(409, "already_exists", "Phone number is already registered to another account.")
        raise
    return {"ok": True, "phone": phone}


@router.post("/lookup-user", response_model=LookupUserOut, summary="Find a user by e-mail or phone")
def lookup_user(payload: LookupUserRequest, principal: Principal = Depends(sos_principal)):
    email = clean_email(payload.email)
    phone_raw = clean_string(payload.phone)
    if not email and not phone_raw:
        raise ApiError(400, "invalid_request", "Provide email or phone.")

    uid: Optional[str]
    if email:
        if "@" not in email or len(email) > EMAIL_MAX_LENGTH:
            raise ApiError(400, "invalid_request", "Invalid email.")
        uid = svc.lookup_uid_by_email(email)
    else:
        phone = normalize_phone(phone_raw)
        if not phone:
            raise ApiError(400, "invalid_request", "Invalid phone number.")
        uid = svc.lookup_uid_by_phone(phone)
    return {"uid": uid}


@router.post("/send", summary="Send an SOS alert to trusted contacts")
def send_sos(payload: SendSosRequest, principal: Principal = Depends(sos_principal)):
    event_id = clean_string(payload.eventId)
    if not event_id:
        raise ApiError(400, "invalid_request", "eventId is required.")

    try:
        svc.consume_send_quota(principal.uid)
    except ValueError as e:
        if str(e) == "RATE_LIMITED":
            raise ApiError(429, "rate_limited", "Rate limit exceeded. Try again later.")
        raise

    try:
        return svc.send_alert(principal.uid, event_id)
    except ValueError as e:
        msg = str(e)
        if msg == "EVENT_NOT_FOUND":
            raise ApiError(404, "not_found", "SOS event not found.")
        if msg == "NOT_EVENT_OWNER":
            raise ApiError(403, "forbidden", "Not allowed to send this SOS.")
        raise
