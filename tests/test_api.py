"""Tests for REST API."""

import pytest

from edge_status.api import create_app
from edge_status.errors import ServiceError


@pytest.fixture
def app(registry):
    app = create_app(registry)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def http(app):
    with app.test_client() as client:
        yield client


class TestAPI:
    def test_health(self, http):
        r = http.get("/health")
        assert r.status_code == 200
        assert r.get_json()["status"] == "healthy"

    def test_list_identities(self, http):
        r = http.get("/api/v1/identities")
        assert r.status_code == 200
        names = {i["name"] for i in r.get_json()["identities"]}
        assert names == {"alice-laptop", "bob-desktop"}

    def test_identity_detail(self, http):
        data = http.get("/api/v1/identities/fp-alice").get_json()
        assert data["timing_out"] is True
        assert data["state"] == "authenticated_warning"
        assert data["display"]["show_countdown"] is True
        assert len(data["services"]) == 2

    def test_identity_not_found(self, http):
        assert http.get("/api/v1/identities/nope").status_code == 404

    def test_disable(self, http):
        r = http.post("/api/v1/identities/fp-alice/enabled", json={"enabled": False})
        assert r.status_code == 200
        assert r.get_json()["display"]["toggle_label"] == "DISABLED"

    def test_enabled_requires_bool(self, http):
        assert http.post("/api/v1/identities/fp-alice/enabled", json={"enabled": "no"}).status_code == 400

    def test_enabled_rejects_non_object_body(self, http):
        r = http.post("/api/v1/identities/fp-alice/enabled", json=[True])
        assert r.status_code == 400

    def test_enabled_unknown(self, http):
        assert http.post("/api/v1/identities/nope/enabled", json={"enabled": True}).status_code == 404

    def test_enabled_service_error(self, http, client):
        def reject(fingerprint, enabled):
            raise ServiceError("controller unreachable", "connection refused")

        client.set_identity_enabled = reject
        r = http.post("/api/v1/identities/fp-alice/enabled", json={"enabled": False})
        assert r.status_code == 502
        assert r.get_json() == {"error": "controller unreachable", "additional_info": "connection refused"}

    def test_authenticate(self, http):
        r = http.post("/api/v1/identities/fp-alice/authenticate", json={"code": "123456"})
        assert r.status_code == 202
        assert r.get_json()["status"] == "accepted"

    def test_authenticate_rejects_non_object_body(self, http):
        r = http.post("/api/v1/identities/fp-alice/authenticate", json=["123456"])
        assert r.status_code == 400

    def test_authenticate_unknown(self, http):
        assert http.post("/api/v1/identities/nope/authenticate", json={}).status_code == 404

    def test_refresh(self, http, client):
        client.remove("fp-bob")
        r = http.post("/api/v1/refresh")
        assert r.status_code == 200
        assert r.get_json()["identity_count"] == 1

    def test_summary(self, http):
        data = http.get("/api/v1/summary").get_json()
        assert data["total_identities"] == 2
