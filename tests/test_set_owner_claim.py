from types import SimpleNamespace

import pytest
from firebase_admin import auth

from khidmaty.scripts import set_owner_claim


@pytest.fixture()
def claims(monkeypatch):
    written = {}

    def get_user_by_email(email):
        if email != "boss@example.ly":
            raise auth.UserNotFoundError("no user")
        return SimpleNamespace(uid="boss", email=email, custom_claims={"beta": True})

    monkeypatch.setattr(auth, "get_user_by_email", get_user_by_email)
    monkeypatch.setattr(auth, "set_custom_user_claims", lambda uid, c: written.update({uid: c}))
    return written


def test_set_owner_role(db, claims):
    assert set_owner_claim.set_owner_role("boss@example.ly") is True
    assert claims == {"boss": {"beta": True, "admin": True}}
    assert db.data("users/boss")["role"] == "owner"


def test_set_owner_role_unknown_user(db, claims):
    assert set_owner_claim.set_owner_role("nobody@example.ly") is False
    assert claims == {}
    assert db.data("users/nobody") is None


def test_main_exit_codes(db, claims, capsys):
    assert set_owner_claim.main([]) == 1
    assert "Usage" in capsys.readouterr().out
    assert set_owner_claim.main(["nobody@example.ly"]) == 1
    assert set_owner_claim.main([" boss@example.ly "]) == 0
