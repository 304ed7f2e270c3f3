import pytest
from google.api_core import exceptions as gexc

from khidmaty.services import stats
from khidmaty.services.stats import day_key
from khidmaty.utils import firestore_helpers


def test_track_counts_per_day(client, db):
    db.put("services/s1", {"providerId": "prov1"})
    for event in ("service_view", "service_view", "cta_click"):
        resp = client.post("/track", json={"type": event, "serviceId": "s1", "city": "Tripoli", "ref": "home"})
        assert resp.json() == {"ok": True}

    today = day_key(firestore_helpers.utcnow())
    counters = db.data(f"stats_daily/s1_{today}")
    assert counters["views"] == 2
    assert counters["ctas"] == 1
    assert counters["providerUid"] == "prov1"
    assert "messages" not in counters

    events = [db.data(f"events/{i}") for i in db.ids("events")]
    assert len(events) == 3
    assert {e["ref"] for e in events} == {"home"}


@pytest.mark.parametrize(
    "body, status, error",
    [
        ({"type": "share", "serviceId": "s1"}, 400, "bad_event"),
        ({"type": "service_view"}, 400, "bad_event"),
        ({"type": "service_view", "serviceId": "missing"}, 404, "no_service"),
    ],
)
def test_track_rejects(client, body, status, error):
    resp = client.post("/track", json=body)
    assert resp.status_code == status
    assert resp.json()["error"] == error


@pytest.mark.parametrize(
    "exc, skipped",
    [
        (gexc.PermissionDenied("missing permissions"), "admin_unavailable"),
        (gexc.Unauthenticated("no credentials"), "admin_unavailable"),
        (gexc.ServiceUnavailable("try later"), "error"),
    ],
)
def test_track_skips_when_firestore_is_unavailable(client, monkeypatch, exc, skipped):
    def boom(*_args):
        raise exc

    monkeypatch.setattr(stats, "track_event", boom)
    resp = client.post("/track", json={"type": "service_view", "serviceId": "s1"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "skipped": skipped}


def test_contact_message(client, db):
    resp = client.post("/contact", json={"name": " Huda ", "email": "huda@example.ly", "message": "Hello"})
    assert resp.json() == {"ok": True}
    [doc_id] = db.ids("contact_messages")
    stored = db.data(f"contact_messages/{doc_id}")
    assert stored["name"] == "Huda"
    assert stored["status"] == "new"


def test_contact_requires_all_fields(client):
    resp = client.post("/contact", json={"name": "Huda", "message": "Hello"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid"
