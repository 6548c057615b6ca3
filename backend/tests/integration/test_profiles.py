"""
tests/integration/test_profiles.py — Profile visibility, edits, and admin
user creation.

Rules exercised:
  - A user sees only their own profile; an admin sees all.
  - Another user's profile is indistinguishable from a missing one (404).
  - The owner may change full_name but not role (403).
  - An admin may change anyone's role; the change applies on the next request.
  - Only an admin may create users through /profiles.
  - A PATCH the database aborts on a lock conflict is a retryable 409.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import DataError, OperationalError

from backend.app.services import profile_service

from .conftest import PASSWORD, auth_headers, register, register_admin


class _DriverError(Exception):
    """Stands in for a psycopg2 error; only pgcode is read."""

    def __init__(self, pgcode: str):
        super().__init__(f"SQLSTATE {pgcode}")
        self.pgcode = pgcode


def _failing_update(error: Exception):
    def update_profile(caller, profile_id, data, session):
        raise error
    return update_profile


class TestProfileVisibility:

    def test_user_lists_only_own_profile(self, client):
        alice = register(client, "alice")
        register(client, "bob")

        resp = client.get("/api/v1/profiles", headers=auth_headers(alice["access_token"]))
        profiles = resp.get_json()["data"]
        assert len(profiles) == 1
        assert profiles[0]["user_id"] == alice["user"]["id"]

    def test_admin_lists_every_profile(self, client):
        admin = register_admin(client)
        register(client, "alice")
        register(client, "bob")

        resp = client.get("/api/v1/profiles", headers=auth_headers(admin["access_token"]))
        assert resp.status_code == 200
        assert len(resp.get_json()["data"]) == 3

    def test_other_users_profile_is_404(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")

        resp = client.get(
            f"/api/v1/profiles/{bob['user']['profile']['id']}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "PROFILE_NOT_FOUND"

    def test_admin_reads_any_profile(self, client):
        admin = register_admin(client)
        bob = register(client, "bob")

        resp = client.get(
            f"/api/v1/profiles/{bob['user']['profile']['id']}",
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user_id"] == bob["user"]["id"]


class TestProfileUpdate:

    def test_owner_changes_full_name(self, client):
        alice = register(client, "alice")
        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"full_name": "  Alice Liddell  "},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["full_name"] == "Alice Liddell"

    def test_owner_cannot_promote_self(self, client):
        alice = register(client, "alice")
        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"role": "admin"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 403
        error = resp.get_json()["error"]
        assert error["code"]  == "FORBIDDEN"
        assert error["field"] == "role"

        me = client.get("/api/v1/auth/me", headers=auth_headers(alice["access_token"]))
        assert me.get_json()["data"]["profile"]["role"] == "user"

    def test_user_cannot_edit_someone_else(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        resp = client.patch(
            f"/api/v1/profiles/{bob['user']['profile']['id']}",
            json={"full_name": "Hacked"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404

    def test_invalid_role_value_returns_400(self, client):
        admin = register_admin(client)
        resp = client.patch(
            f"/api/v1/profiles/{admin['user']['profile']['id']}",
            json={"role": "superuser"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_ROLE"

    def test_admin_promotion_takes_effect_immediately(self, client):
        admin = register_admin(client)
        bob = register(client, "bob")
        bob_headers = auth_headers(bob["access_token"])

        # bob cannot write reference data yet
        resp = client.post("/api/v1/categories", json={"name": "Pets"}, headers=bob_headers)
        assert resp.status_code == 403

        resp = client.patch(
            f"/api/v1/profiles/{bob['user']['profile']['id']}",
            json={"role": "admin"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["role"] == "admin"

        # same access token, new role
        resp = client.post("/api/v1/categories", json={"name": "Pets"}, headers=bob_headers)
        assert resp.status_code == 201


class TestAdminCreateUser:

    def test_admin_creates_user_with_role(self, client):
        admin = register_admin(client)
        resp = client.post(
            "/api/v1/profiles",
            json={
                "email": "carol@test.com",
                "password": PASSWORD,
                "full_name": "Carol",
                "role": "admin",
            },
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 201
        profile = resp.get_json()["data"]
        assert profile["full_name"] == "Carol"
        assert profile["role"] == "admin"

        # the new identity can sign in
        resp = client.post("/api/v1/auth/login", json={
            "email": "carol@test.com", "password": PASSWORD,
        })
        assert resp.status_code == 200

    def test_admin_created_user_defaults_to_user_role(self, client):
        admin = register_admin(client)
        resp = client.post(
            "/api/v1/profiles",
            json={"email": "dave@test.com", "password": PASSWORD, "full_name": "Dave"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["role"] == "user"

    def test_non_admin_cannot_create_users(self, client):
        alice = register(client, "alice")
        resp = client.post(
            "/api/v1/profiles",
            json={"email": "eve@test.com", "password": PASSWORD, "full_name": "Eve"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

        resp = client.post("/api/v1/auth/login", json={
            "email": "eve@test.com", "password": PASSWORD,
        })
        assert resp.status_code == 401

    def test_duplicate_email_returns_409(self, client):
        admin = register_admin(client)
        register(client, "alice")
        resp = client.post(
            "/api/v1/profiles",
            json={"email": "alice@test.com", "password": PASSWORD, "full_name": "Alice 2"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "DUPLICATE_EMAIL"


class TestUpdateAbortedByDatabase:

    @pytest.mark.parametrize("pgcode", ["40P01", "40001"])
    def test_lock_conflict_is_retryable_409(self, client, monkeypatch, pgcode):
        alice = register(client, "alice")
        monkeypatch.setattr(profile_service, "update_profile", _failing_update(
            OperationalError("UPDATE profiles", {}, _DriverError(pgcode)),
        ))

        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"full_name": "Alice"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "CONCURRENT_UPDATE"

        monkeypatch.undo()
        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"full_name": "Alice"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["full_name"] == "Alice"

    def test_other_operational_error_is_500(self, client, monkeypatch):
        alice = register(client, "alice")
        monkeypatch.setattr(profile_service, "update_profile", _failing_update(
            OperationalError("UPDATE profiles", {}, _DriverError("08006")),
        ))

        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"full_name": "Alice"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 500
        assert resp.get_json()["error"]["code"] == "INTERNAL_ERROR"

    def test_value_too_large_for_column_is_422(self, client, monkeypatch):
        alice = register(client, "alice")
        monkeypatch.setattr(profile_service, "update_profile", _failing_update(
            DataError("UPDATE profiles", {}, _DriverError("22003")),
        ))

        resp = client.patch(
            f"/api/v1/profiles/{alice['user']['profile']['id']}",
            json={"full_name": "Alice"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "CONSTRAINT_VIOLATION"
