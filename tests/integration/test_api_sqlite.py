"""End-to-end API flow against the SQLAlchemy repositories."""

import pytest

from refer_earn.db.database import Database
from refer_earn.main import create_app
from fastapi.testclient import TestClient


@pytest.mark.integration
class TestApiOnSQLite:
    def test_referral_and_commission_flow(self, client, signup, auth_headers):
        grandparent = signup(client, "grandparent")
        parent = signup(client, "parent", grandparent["referral_code"])
        signup(client, "child", parent["referral_code"])

        child_headers = auth_headers(client, "child")
        for amount in [999, 1000, 1000]:
            response = client.post(
                "/v1/transactions", json={"amount": amount}, headers=child_headers
            )
            assert response.status_code == 201

        parent_me = client.get("/v1/users/me", headers=auth_headers(client, "parent")).json()
        grandparent_me = client.get(
            "/v1/users/me", headers=auth_headers(client, "grandparent")
        ).json()

        assert parent_me["direct_earnings"] == 100
        assert parent_me["indirect_earnings"] == 0
        assert grandparent_me["indirect_earnings"] == 40
        assert grandparent_me["direct_earnings"] == 0

        descendants = client.get(
            "/v1/users/me/descendants", headers=auth_headers(client, "grandparent")
        ).json()
        assert [c["username"] for c in descendants["children"]] == ["parent"]
        assert [g["username"] for g in descendants["grandchildren"]] == ["child"]

    def test_duplicate_username(self, client, signup):
        signup(client, "alice")

        response = client.post(
            "/v1/auth/signup", json={"username": "alice", "password": "x"}
        )

        assert response.status_code == 409

    def test_ready_reports_database(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True}

    def test_ready_without_database(self):
        app = create_app(Database("sqlite:///:memory:"))

        with TestClient(app) as test_client:
            response = test_client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_owned_database_lifecycle(self, db_url, monkeypatch):
        monkeypatch.setattr(
            "refer_earn.main.Database", lambda: Database(db_url)
        )
        app = create_app()
        database = app.state.database

        with TestClient(app) as test_client:
            assert database.is_initialized
            assert test_client.get("/ready").status_code == 200

        assert not database.is_initialized
