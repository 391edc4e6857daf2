"""
Tests for the identity provider user sync webhook.
"""
import pytest

from app.core import config
from app.db.models import User

WEBHOOK_URL = "/webhooks/identity"
WEBHOOK_SECRET = "whsec_identity_test"
AUTH = {"Authorization": f"Bearer {WEBHOOK_SECRET}"}


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setattr(config, "IDENTITY_WEBHOOK_SECRET", WEBHOOK_SECRET)


def user_event(event_type="user.created", external_id="ext_new", email="asha@example.com", **fields):
    data = {
        "id": external_id,
        "first_name": "Asha",
        "last_name": "Rao",
        "image_url": "https://img.example.com/asha.png",
        "primary_email_address_id": "idn_1",
        "email_addresses": [
            {"id": "idn_0", "email_address": "old@example.com"},
            {"id": "idn_1", "email_address": email},
        ],
    }
    data.update(fields)
    return {"type": event_type, "data": data}


def test_user_created_inserts_basic_user(client, db):
    response = client.post(WEBHOOK_URL, json=user_event(), headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Success"

    db.expire_all()
    user = db.query(User).filter(User.external_id == "ext_new").one()
    assert body["user_id"] == user.id
    assert user.name == "Asha Rao"
    assert user.email == "asha@example.com"
    assert user.photo == "https://img.example.com/asha.png"
    assert user.role == "basic"
    assert user.chef == "no"


def test_user_updated_keeps_paid_role(client, db, user_factory):
    user = user_factory("ext_new", role="pro", name="Old Name", email="asha@example.com")

    response = client.post(
        WEBHOOK_URL,
        json=user_event("user.updated", first_name="Asha", last_name="Kapoor"),
        headers=AUTH,
    )

    assert response.status_code == 200
    db.expire_all()
    updated = db.query(User).filter(User.id == user.id).one()
    assert updated.name == "Asha Kapoor"
    assert updated.role == "pro"
    assert db.query(User).count() == 1


def test_repeated_created_event_does_not_duplicate(client, db):
    client.post(WEBHOOK_URL, json=user_event(), headers=AUTH)
    client.post(WEBHOOK_URL, json=user_event(), headers=AUTH)

    db.expire_all()
    assert db.query(User).filter(User.external_id == "ext_new").count() == 1


def test_known_email_rebinds_existing_row(client, db, user_factory):
    user = user_factory("ext_old", role="pro", email="asha@example.com")

    response = client.post(WEBHOOK_URL, json=user_event(external_id="ext_reborn"), headers=AUTH)

    assert response.json()["user_id"] == user.id
    db.expire_all()
    rebound = db.query(User).filter(User.id == user.id).one()
    assert rebound.external_id == "ext_reborn"
    assert rebound.role == "pro"
    assert db.query(User).count() == 1


def test_update_without_email_keeps_stored_email(client, db, user_factory):
    user = user_factory("ext_new", email="keep@example.com")

    client.post(
        WEBHOOK_URL,
        json=user_event("user.updated", email_addresses=[], primary_email_address_id=None),
        headers=AUTH,
    )

    db.expire_all()
    assert db.query(User).filter(User.id == user.id).one().email == "keep@example.com"


def test_missing_name_falls_back(client, db):
    client.post(WEBHOOK_URL, json=user_event(first_name=None, last_name=None), headers=AUTH)

    db.expire_all()
    assert db.query(User).filter(User.external_id == "ext_new").one().name == "Unknown User"


def test_other_event_types_are_ignored(client, db):
    response = client.post(WEBHOOK_URL, json=user_event("session.created"), headers=AUTH)

    assert response.status_code == 200
    assert response.json()["user_id"] is None
    assert db.query(User).count() == 0


def test_malformed_user_payload(client, db):
    response = client.post(WEBHOOK_URL, json={"type": "user.created", "data": {"first_name": "NoId"}}, headers=AUTH)

    assert response.status_code == 400
    assert db.query(User).count() == 0


def test_wrong_secret_is_rejected(client, db):
    response = client.post(WEBHOOK_URL, json=user_event(), headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert db.query(User).count() == 0


def test_missing_authorization_is_rejected(client):
    assert client.post(WEBHOOK_URL, json=user_event()).status_code == 401


def test_unconfigured_secret_fails_closed(client, monkeypatch):
    monkeypatch.setattr(config, "IDENTITY_WEBHOOK_SECRET", None)

    response = client.post(WEBHOOK_URL, json=user_event(), headers=AUTH)

    assert response.status_code == 500


def test_email_taken_by_another_user_is_a_conflict(client, db, user_factory):
    user_factory("ext_other", email="taken@example.com")
    user = user_factory("ext_new", email="mine@example.com")

    response = client.post(WEBHOOK_URL, json=user_event("user.updated", email="taken@example.com"), headers=AUTH)

    assert response.status_code == 409
    db.expire_all()
    assert db.query(User).filter(User.id == user.id).one().email == "mine@example.com"
