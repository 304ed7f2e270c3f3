import pytest

from khidmaty.integrations import cloudinary_media
from tests.fakes import auth_headers


def test_owner_routes_reject_non_owners(client, seeker):
    resp = client.get("/owner/settings/features", headers=seeker)
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_owner_routes_require_token(client):
    assert client.get("/owner/services").status_code == 401


def test_admin_claim_counts_as_owner(client, db):
    db.put("users/boss", {"role": "seeker"})
    resp = client.get("/owner/settings/features", headers=auth_headers("boss", admin=True))
    assert resp.status_code == 200


# ---------- feature flags ----------

def test_features_default_when_unset(client, owner):
    features = client.get("/owner/settings/features", headers=owner).json()["features"]
    assert features["pricingEnabled"] is True
    assert features["enforceAfterMonths"] == 3
    assert features["lockAllToPricing"] is False


def test_save_features_coerces_values(client, db, owner):
    resp = client.post(
        "/owner/settings/features",
        json={"pricingEnabled": 1, "showForSeekers": "yes", "enforceAfterMonths": "4.7", "unknown": True},
        headers=owner,
    )
    body = resp.json()
    assert body["ok"] is True
    assert body["features"]["pricingEnabled"] is True
    assert body["features"]["showForSeekers"] is True
    assert body["features"]["showForProviders"] is False
    assert body["features"]["enforceAfterMonths"] == 4
    assert "unknown" not in db.data("settings/features")

    public = client.get("/settings/features").json()["features"]
    assert public["enforceAfterMonths"] == 4


# ---------- users ----------

def test_get_user_by_uid_and_email(client, db, owner):
    db.put("users/u1", {"email": "ali@example.ly", "role": "provider", "displayName": "Ali"})

    by_uid = client.post("/owner/users/get", json={"uid": "u1"}, headers=owner).json()["user"]
    assert by_uid["uid"] == "u1"
    assert by_uid["plan"] == "free"
    assert by_uid["pricingGate"] is None

    by_email = client.post("/owner/users/get", json={"email": "Ali@Example.ly"}, headers=owner).json()["user"]
    assert by_email["displayName"] == "Ali"


@pytest.mark.parametrize(
    "body, status, error",
    [({}, 400, "uid_or_email_required"), ({"uid": "ghost"}, 404, "not_found")],
)
def test_get_user_errors(client, owner, body, status, error):
    resp = client.post("/owner/users/get", json=body, headers=owner)
    assert resp.status_code == status
    assert resp.json()["error"] == error


def test_set_pricing_gate(client, db, owner):
    db.put("users/u1", {"role": "seeker"})
    resp = client.post(
        "/owner/users/set-pricing-gate",
        json={"uid": "u1", "mode": "force_show", "enforceAfterMonths": "2.5", "ignored": 1},
        headers=owner,
    )
    gate = resp.json()["pricingGate"]
    assert gate == {"mode": "force_show", "enforceAfterMonths": 2}

    client.post("/owner/users/set-pricing-gate", json={"uid": "u1", "mode": None}, headers=owner)
    assert db.data("users/u1")["pricingGate"]["mode"] is None


def test_set_pricing_gate_requires_uid(client, owner):
    resp = client.post("/owner/users/set-pricing-gate", json={"mode": "force_hide"}, headers=owner)
    assert resp.status_code == 400
    assert resp.json()["error"] == "uid_required"


# ---------- moderation ----------

def test_list_services_by_status(client, db, owner):
    db.put("services/old", {"status": "pending", "title": "Old", "createdAt": 1_000, "price": True})
    db.put("services/new", {
        "status": "pending",
        "title": "New",
        "createdAt": 2_000,
        "price": 40,
        "images": [{"url": "https://img.example/a.jpg"}, {"bad": 1}],
    })
    db.put("services/live", {"status": "approved"})

    rows = client.get("/owner/services", headers=owner).json()["rows"]
    assert [r["id"] for r in rows] == ["new", "old"]
    assert rows[0]["imageUrl"] == "https://img.example/a.jpg"
    assert rows[0]["images"] == [{"url": "https://img.example/a.jpg"}]
    assert rows[0]["price"] == 40
    assert rows[1]["price"] is None

    approved = client.get("/owner/services", params={"status": "approved"}, headers=owner).json()["rows"]
    assert [r["id"] for r in approved] == ["live"]


def test_list_services_rejects_unknown_status(client, owner):
    resp = client.get("/owner/services", params={"status": "deleted"}, headers=owner)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


def test_decide_service(client, db, owner):
    db.put("services/s1", {"status": "pending"})
    resp = client.post("/owner/services/s1/decide", json={"action": "approve"}, headers=owner)
    assert resp.json() == {"ok": True, "id": "s1", "status": "approved"}
    stored = db.data("services/s1")
    assert stored["status"] == "approved"
    assert stored["reviewedBy"] == "own1"


def test_decide_service_errors(client, db, owner):
    db.put("services/s1", {"status": "pending"})
    assert client.post("/owner/services/s1/decide", json={"action": "maybe"}, headers=owner).status_code == 400
    assert client.post("/owner/services/s404/decide", json={"action": "reject"}, headers=owner).status_code == 404


def test_approve_deletion_request(client, db, owner):
    db.put("services/s1", {"status": "pending", "pendingDelete": True})
    db.put("service_deletion_requests/r1", {"serviceId": "s1", "status": "pending", "priorStatus": "approved"})

    resp = client.post("/owner/service-deletions/decide", json={"id": "r1", "action": "approve"}, headers=owner)
    assert resp.json() == {"ok": True, "id": "r1", "action": "approved"}
    assert db.data("services/s1") is None
    assert db.data("service_deletion_requests/r1")["status"] == "approved"
    assert db.data("service_deletion_requests/r1")["approvedBy"] == "own1"


def test_reject_deletion_request_restores_status(client, db, owner):
    db.put("services/s1", {"status": "pending", "pendingDelete": True})
    db.put("service_deletion_requests/r1", {"serviceId": "s1", "status": "pending", "priorStatus": "approved"})

    resp = client.post("/owner/service-deletions/decide", json={"id": "r1", "action": "reject"}, headers=owner)
    assert resp.json()["action"] == "rejected"
    service = db.data("services/s1")
    assert service["status"] == "approved"
    assert service["pendingDelete"] is False


@pytest.mark.parametrize(
    "body, request_doc, status, error",
    [
        ({"id": "r1", "action": "later"}, None, 400, "bad_request"),
        ({"id": "r404", "action": "approve"}, None, 404, "not_found"),
        ({"id": "r1", "action": "approve"}, {"status": "pending"}, 400, "no_service"),
    ],
)
def test_deletion_decision_errors(client, db, owner, body, request_doc, status, error):
    if request_doc is not None:
        db.put("service_deletion_requests/r1", request_doc)
    resp = client.post("/owner/service-deletions/decide", json=body, headers=owner)
    assert resp.status_code == status
    assert resp.json()["error"] == error


def test_admin_delete_cleans_images_and_requests(client, db, owner, monkeypatch):
    deleted = []

    def fake_delete(target):
        deleted.append(target)
        return target != "broken"

    monkeypatch.setattr(cloudinary_media, "delete_image", fake_delete)
    db.put("services/s1", {
        "status": "approved",
        "images": [{"publicId": "khidmaty/a"}, {"url": "https://res.cloudinary.com/x/image/upload/v1/b.jpg"}, {"publicId": "broken"}, "junk"],
    })
    db.put("service_deletion_requests/r1", {"serviceId": "s1", "status": "pending"})
    db.put("service_deletion_requests/r2", {"serviceId": "s1", "status": "rejected"})

    resp = client.post("/owner/services/admin-delete", json={"serviceId": "s1"}, headers=owner)
    assert resp.json() == {"ok": True, "imagesRemoved": 2, "requestsResolved": 1}
    assert deleted == ["khidmaty/a", "https://res.cloudinary.com/x/image/upload/v1/b.jpg", "broken"]
    assert db.data("services/s1") is None
    assert db.data("service_deletion_requests/r1")["status"] == "approved"
    assert db.data("service_deletion_requests/r2")["status"] == "rejected"


def test_admin_delete_errors(client, owner):
    assert client.post("/owner/services/admin-delete", json={}, headers=owner).json()["error"] == "id_required"
    assert client.post("/owner/services/admin-delete", json={"id": "nope"}, headers=owner).status_code == 404
