import inspect
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
from firebase_admin import messaging

from khidmaty.integrations import expo_push
from khidmaty.services import sos as sos_service
from tests.fakes import auth_headers


def _expo_transport(seen):
    def handler(request: httpx.Request) -> httpx.Response:
        messages = json.loads(request.content)
        seen.extend(messages)
        tickets = [
            {"status": "error", "details": {"error": "DeviceNotRegistered"}} if "dead" in m["to"] else {"status": "ok"}
            for m in messages
        ]
        return httpx.Response(200, json={"data": tickets})

    return httpx.MockTransport(handler)


@pytest.fixture()
def push_calls(monkeypatch):
    calls = {"expo": [], "fcm": []}
    transport = _expo_transport(calls["expo"])
    monkeypatch.setattr(expo_push, "_client", lambda: httpx.Client(transport=transport))

    def fake_send_each(message):
        calls["fcm"].append(message)
        responses = [
            SimpleNamespace(success=False, exception=messaging.UnregisteredError("gone"))
            if token.startswith("dead")
            else SimpleNamespace(success=True, exception=None)
            for token in message.tokens
        ]
        return SimpleNamespace(success_count=sum(r.success for r in responses), responses=responses)

    monkeypatch.setattr(messaging, "send_each_for_multicast", fake_send_each)
    return calls


# ---------- set-phone ----------

def test_set_phone_requires_token(client):
    resp = client.post("/sos/set-phone", json={"phone": "+218912345678"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"


def test_set_phone_invalid_token_is_unauthorized(client):
    resp = client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"


def test_set_phone_claims_number(client, db, provider):
    resp = client.post("/sos/set-phone", json={"phone": "+218 91 234 5678"}, headers=provider)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "phone": "+218912345678"}
    assert db.data("phone_index/+218912345678")["uid"] == "prov1"
    assert db.data("users/prov1")["phone"] == "+218912345678"


def test_set_phone_same_number_twice_is_idempotent(client, db, provider):
    client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers=provider)
    resp = client.post("/sos/set-phone", json={"phone": "00218912345678"}, headers=provider)
    assert resp.status_code == 200
    assert db.data("phone_index/+218912345678")["uid"] == "prov1"


def test_set_phone_rejects_taken_number(client, db, provider, seeker):
    client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers=provider)
    resp = client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers=seeker)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_exists"
    assert "phone" not in db.data("users/seek1")


def test_set_phone_locked_after_first_number(client, provider):
    client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers=provider)
    resp = client.post("/sos/set-phone", json={"phone": "+218923456789"}, headers=provider)
    assert resp.status_code == 412
    assert resp.json()["error"] == "failed_precondition"


def test_set_phone_without_profile(client):
    resp = client.post("/sos/set-phone", json={"phone": "+218912345678"}, headers=auth_headers("ghost"))
    assert resp.status_code == 412


def test_set_phone_rejects_local_format(client, provider):
    resp = client.post("/sos/set-phone", json={"phone": "0912345678"}, headers=provider)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


# ---------- lookup-user ----------

def test_lookup_by_email_and_phone(client, db, provider):
    db.put("users/u9", {"email": "friend@example.ly"})
    db.put("phone_index/+218911111111", {"uid": "u9"})

    by_email = client.post("/sos/lookup-user", json={"email": " Friend@Example.ly "}, headers=provider)
    assert by_email.json() == {"uid": "u9"}

    by_phone = client.post("/sos/lookup-user", json={"phone": "+218 91 111 1111"}, headers=provider)
    assert by_phone.json() == {"uid": "u9"}

    unknown = client.post("/sos/lookup-user", json={"email": "nobody@example.ly"}, headers=provider)
    assert unknown.json() == {"uid": None}


@pytest.mark.parametrize("body", [{}, {"email": "not-an-email"}, {"phone": "12345"}])
def test_lookup_rejects_bad_input(client, provider, body):
    resp = client.post("/sos/lookup-user", json=body, headers=provider)
    assert resp.status_code == 400


# ---------- rate limit ----------

def test_next_rate_window():
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert sos_service.next_rate_window(None, now) == (now, 1)

    start = now - timedelta(minutes=10)
    assert sos_service.next_rate_window({"windowStart": start, "count": 3}, now) == (start, 4)

    with pytest.raises(ValueError, match="RATE_LIMITED"):
        sos_service.next_rate_window({"windowStart": start, "count": 10}, now)

    old = now - timedelta(minutes=31)
    assert sos_service.next_rate_window({"windowStart": old, "count": 10}, now) == (now, 1)


def test_send_is_rate_limited(client, db, provider):
    db.put("sos_rate/prov1", {"windowStart": datetime.now(timezone.utc), "count": 10})
    db.put("sos_events/e1", {"senderUid": "prov1"})
    resp = client.post("/sos/send", json={"eventId": "e1"}, headers=provider)
    assert resp.status_code == 429
    assert resp.json()["error"] == "rate_limited"


# ---------- send ----------

def test_send_requires_event_id(client, provider):
    resp = client.post("/sos/send", json={}, headers=provider)
    assert resp.status_code == 400


def test_send_unknown_event(client, provider, push_calls):
    resp = client.post("/sos/send", json={"eventId": "missing"}, headers=provider)
    assert resp.status_code == 404


def test_send_someone_elses_event(client, db, provider, push_calls):
    db.put("sos_events/e1", {"senderUid": "other"})
    resp = client.post("/sos/send", json={"eventId": "e1"}, headers=provider)
    assert resp.status_code == 403


def test_send_without_contacts(client, db, provider, push_calls):
    db.put("sos_events/e1", {"senderUid": "prov1"})
    resp = client.post("/sos/send", json={"eventId": "e1"}, headers=provider)
    assert resp.json() == {"ok": True, "sent": 0, "recipients": 0}
    assert push_calls["expo"] == []


def test_send_fans_out_and_cleans_dead_tokens(client, db, provider, push_calls):
    db.put("sos_events/e1", {"senderUid": "prov1"})
    db.put("trusted/prov1/contacts/c1", {"status": "accepted"})
    db.put("trusted/prov1/contacts/c2", {"status": "pending"})
    db.put("devices/c1/tokens/t1", {"expoPushToken": "ExponentPushToken[a]", "webPushToken": "dead-web"})
    db.put("devices/c1/tokens/t2", {"expoPushToken": "ExponentPushToken[a]"})
    db.put("devices/c1/tokens/t3", {"expoPushToken": "ExponentPushToken[dead]"})
    db.put("devices/c2/tokens/t4", {"expoPushToken": "ExponentPushToken[pending]"})

    resp = client.post("/sos/send", json={"eventId": "e1"}, headers=provider)
    assert resp.status_code == 200
    body = resp.json()
    assert body["recipients"] == 1
    assert body["expoTokens"] == 2
    assert body["webTokens"] == 1
    assert body["sent"] == 1
    assert body["errors"] == 2

    sent_to = [m["to"] for m in push_calls["expo"]]
    assert sent_to == ["ExponentPushToken[a]", "ExponentPushToken[dead]"]
    assert push_calls["expo"][0]["data"] == {"type": "sos", "eventId": "e1"}
    assert push_calls["fcm"][0].data["eventId"] == "e1"

    # t1 carried the dead web token, t3 the dead Expo token
    assert db.data("devices/c1/tokens/t1") is None
    assert db.data("devices/c1/tokens/t3") is None
    assert db.data("devices/c1/tokens/t2") is not None
    assert db.data("sos_rate/prov1")["count"] == 1


def test_sos_preflight(client):
    resp = client.options("/sos/send")
    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]


# ---------- batching ----------

def _expo_tokens(count, dead=()):
    return [f"ExponentPushToken[dead{i}]" if i in dead else f"ExponentPushToken[{i}]" for i in range(count)]


def _expo_transport_sizes(sizes, fail_batches=None):
    fail_batches = fail_batches or {}

    def handler(request: httpx.Request) -> httpx.Response:
        messages = json.loads(request.content)
        sizes.append(len(messages))
        batch_no = len(sizes)
        if batch_no in fail_batches:
            if fail_batches[batch_no] == "network":
                raise httpx.ConnectError("unreachable", request=request)
            return httpx.Response(fail_batches[batch_no], json={"errors": [{"code": "INTERNAL"}]})
        tickets = [
            {"status": "error", "details": {"error": "DeviceNotRegistered"}} if "dead" in m["to"] else {"status": "ok"}
            for m in messages
        ]
        return httpx.Response(200, json={"data": tickets})

    return httpx.MockTransport(handler)


def test_expo_batches_of_100_map_ticket_indices(monkeypatch):
    sizes = []
    monkeypatch.setattr(expo_push, "_client", lambda: httpx.Client(transport=_expo_transport_sizes(sizes)))
    tokens = _expo_tokens(205, dead={150, 203})

    res = expo_push.send_messages(sos_service.build_expo_messages(tokens, "e1"))

    assert sizes == [100, 100, 5]
    assert res["ok"] == 203
    assert [e["index"] for e in res["errors"]] == [150, 203]
    assert sos_service.dead_expo_tokens(res["errors"], tokens) == {tokens[150], tokens[203]}


def test_expo_failed_batches_count_one_error_each(monkeypatch):
    sizes = []
    transport = _expo_transport_sizes(sizes, fail_batches={2: 500, 3: "network"})
    monkeypatch.setattr(expo_push, "_client", lambda: httpx.Client(transport=transport))

    res = expo_push.send_messages(sos_service.build_expo_messages(_expo_tokens(305), "e1"))

    assert sizes == [100, 100, 100, 5]
    assert res["ok"] == 105
    assert [e["type"] for e in res["errors"]] == ["http_error", "network_error"]
    assert res["errors"][0]["status"] == 500


def test_fcm_batches_of_500(monkeypatch):
    from khidmaty.integrations import fcm

    sizes = []

    def fake_send_each(message):
        sizes.append(len(message.tokens))
        responses = [
            SimpleNamespace(success=False, exception=messaging.UnregisteredError("gone"))
            if token.startswith("dead")
            else SimpleNamespace(success=True, exception=None)
            for token in message.tokens
        ]
        return SimpleNamespace(success_count=sum(r.success for r in responses), responses=responses)

    monkeypatch.setattr(messaging, "send_each_for_multicast", fake_send_each)
    tokens = ["dead-700" if i == 700 else f"web-{i}" for i in range(1001)]

    res = fcm.send_multicast(tokens, {"type": "sos", "eventId": "e1"}, "high")

    assert sizes == [500, 500, 1]
    assert res["ok"] == 1000
    assert [(e["token"], e["index"]) for e in res["errors"]] == [("dead-700", 200)]
    assert sos_service.dead_web_tokens(res["errors"]) == {"dead-700"}


@pytest.mark.parametrize("stored_count", ["many", -4, None, float("inf"), True])
def test_next_rate_window_resets_bad_counts(stored_count):
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    start = now - timedelta(minutes=5)
    assert sos_service.next_rate_window({"windowStart": start, "count": stored_count}, now) == (start, 1)


def test_remove_token_docs_deletes_in_chunks_of_450(db):
    refs = []
    for i in range(1000):
        db.put(f"devices/c1/tokens/t{i}", {"expoPushToken": "ExponentPushToken[dead]"})
        refs.append(db.document(f"devices/c1/tokens/t{i}"))
    db.put("devices/c1/tokens/keep", {"expoPushToken": "ExponentPushToken[live]"})

    removed = sos_service.remove_token_docs({"ExponentPushToken[dead]"}, {"ExponentPushToken[dead]": refs + refs[:10]})

    assert removed == 1000
    assert db.committed_batches == [450, 450, 100]
    assert db.data("devices/c1/tokens/t999") is None
    assert db.data("devices/c1/tokens/keep") is not None


def test_send_runs_in_threadpool():
    from khidmaty.routers import sos as sos_router

    assert not inspect.iscoroutinefunction(sos_router.send_sos)
    assert not inspect.iscoroutinefunction(sos_service.send_alert)
    assert not inspect.iscoroutinefunction(expo_push.send_messages)
