"""
Browser push notifications: new chat messages, a self-test, and seeker
service requests (which notify the provider).
"""
import logging

from fastapi import APIRouter, Depends

from khidmaty.core.auth import get_principal
from khidmaty.core.errors import ApiError
from khidmaty.core.i18n import Locale, get_request_locale, tr
from khidmaty.schemas.notify import MessageNotifyRequest, ServiceRequestCreate, TestNotifyRequest
from khidmaty.schemas.principal import Principal
from khidmaty.services import notifications as svc
from khidmaty.utils.text import clean_string

logger = logging.getLogger("khidmaty.notify")

router = APIRouter(tags=["Notifications"])


@router.post("/notify/message")
def notify_message(
    payload: MessageNotifyRequest,
    principal: Principal = Depends(get_principal),
    locale: Locale = Depends(get_request_locale),
):
    conversation_id = clean_string(payload.conversationId)
    if not conversation_id:
        raise ApiError(400, "invalid_conversationId")
    try:
        return svc.notify_conversation(principal.uid, conversation_id, payload.text or "", locale)
    except ValueError as e:
        msg = str(e)
        if msg == "CONVERSATION_NOT_FOUND":
            raise ApiError(404, "conversation_not_found")
        if msg == "NOT_PARTICIPANT":
            raise ApiError(403, "forbidden")
        raise


@router.post("/notify/test")
def notify_test(
    payload: TestNotifyRequest,
    principal: Principal = Depends(get_principal),
    locale: Locale = Depends(get_request_locale),
):
    tokens = svc.user_web_tokens([principal.uid])
    if not tokens:
        raise ApiError(400, "no_tokens", "No push tokens registered for this user")
    title = clean_string(payload.title) or tr(locale, "push.test.title")
    body = clean_string(payload.body) or tr(locale, "push.test.body")
    url = clean_string(payload.url) or "/"
    counts = svc.push_to_tokens(tokens, title, body, url)
    return {"ok": True, **counts}


@router.post("/requests")
def create_request(
    payload: ServiceRequestCreate,
    principal: Principal = Depends(get_principal),
    locale: Locale = Depends(get_request_locale),
):
    service_id = clean_string(payload.serviceId)
    if not service_id:
        raise ApiError(400, "invalid_serviceId")
    try:
        return svc.create_service_request(principal.uid, service_id, payload.note or "", locale)
    except ValueError as e:
        msg = str(e)
        if msg == "SERVICE_NOT_FOUND":
            raise ApiError(404, "service_not_found")
        if msg == "INVALID_PROVIDER":
            raise ApiError(400, "invalid_provider")
        if msg == "OWN_SERVICE":
            raise ApiError(400, "cannot_request_own_service")
        if msg == "REQUESTS_DISABLED":
            raise ApiError(400, "requests_disabled")
        raise
