import os
from typing import Dict
from unittest import mock

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("FIREBASE_PROJECT_ID", "khidmaty-test")
os.environ.setdefault("FIREBASE_STORAGE_BUCKET", "khidmaty-test.appspot.com")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import firebase_admin  # noqa: E402
from firebase_admin import auth as firebase_auth  # noqa: E402
from firebase_admin import credentials, firestore, storage  # noqa: E402

from tests.fakes import FakeBucket, FakeFirestore, FakeTransaction, auth_headers  # noqa: E402

FAKE_DB = FakeFirestore()
FAKE_BUCKET = FakeBucket()

# The app initialises Firebase at import time; point it at the fakes first.
for _patch in (
    mock.patch.object(credentials, "Certificate", lambda *_a, **_k: object()),
    mock.patch.object(firebase_admin, "initialize_app", lambda *_a, **_k: object()),
    mock.patch.object(firestore, "client", lambda *_a, **_k: FAKE_DB),
    mock.patch.object(storage, "bucket", lambda *_a, **_k: FAKE_BUCKET),
):
    _patch.start()


def _fake_verify_id_token(token: str, check_revoked: bool = False, app=None) -> Dict:
    """
    Test tokens look like `uid:<uid>` or `uid:<uid>:admin`; anything else is
    rejected the way an invalid Firebase token would be.
    """
    parts = (token or "").split(":")
    if len(parts) < 2 or parts[0] != "uid" or not parts[1]:
        raise ValueError("invalid token")
    if parts[1] == "revoked" and check_revoked:
        raise firebase_auth.RevokedIdTokenError("revoked")
    decoded = {
        "uid": parts[1],
        "email": f"{parts[1]}@example.ly",
        "name": parts[1].title(),
        "firebase": {"sign_in_provider": "password"},
    }
    if "admin" in parts[2:]:
        decoded["admin"] = True
    return decoded


@pytest.fixture(autouse=True)
def _fresh_state(monkeypatch):
    FAKE_DB.reset()
    FAKE_BUCKET.reset()
    monkeypatch.setattr(firebase_auth, "verify_id_token", _fake_verify_id_token)

    from khidmaty.utils import firestore_helpers

    monkeypatch.setattr(firestore_helpers, "run_transaction", lambda callback: callback(FakeTransaction()))
    yield


@pytest.fixture()
def db() -> FakeFirestore:
    return FAKE_DB


@pytest.fixture()
def bucket() -> FakeBucket:
    return FAKE_BUCKET


@pytest.fixture(scope="session")
def app():
    from khidmaty.main import app as khidmaty_app

    return khidmaty_app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture()
def provider(db):
    db.put("users/prov1", {"uid": "prov1", "email": "prov1@example.ly", "role": "provider", "displayName": "Prov One"})
    return auth_headers("prov1")


@pytest.fixture()
def seeker(db):
    db.put("users/seek1", {"uid": "seek1", "email": "seek1@example.ly", "role": "seeker", "displayName": "Seeker"})
    return auth_headers("seek1")


@pytest.fixture()
def owner(db):
    db.put("users/own1", {"uid": "own1", "email": "owner@example.ly", "role": "owner"})
    return auth_headers("own1")
