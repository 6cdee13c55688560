"""Tests for the digest acknowledgement endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from puretrack.api.app import create_app
from puretrack.api.dependencies import get_acknowledgement_handler
from puretrack.digests.acknowledgement import AcknowledgementHandler
from puretrack.digests.schemas import DigestRecord, generate_ack_token


@pytest.fixture
def record(digest_repo, make_item, now):
    record = DigestRecord.new("user-1", "operator@example.com", "ph_high", make_item(), now)
    digest_repo.records[record.digest_id] = record
    return record


@pytest.fixture
def handler(digest_repo, clock):
    return AcknowledgementHandler(digest_repo, clock=clock)


@pytest.fixture
def client(handler):
    app = create_app()
    app.dependency_overrides[get_acknowledgement_handler] = lambda: handler
    return TestClient(app)


class TestAcknowledgeLink:
    def test_success(self, client, record, digest_repo):
        resp = client.get("/acknowledge", params={"token": record.ack_token, "id": record.digest_id})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["digest_id"] == record.digest_id
        assert data["already_acknowledged"] is False
        assert data["message"] == "Digest acknowledged. You will not receive further reminders."
        assert digest_repo.records[record.digest_id].is_acknowledged

    def test_repeat_click_is_idempotent(self, client, record):
        params = {"token": record.ack_token, "id": record.digest_id}
        client.get("/acknowledge", params=params)

        resp = client.get("/acknowledge", params=params)

        assert resp.status_code == 200
        assert resp.json()["already_acknowledged"] is True
        assert resp.json()["message"] == "Digest was already acknowledged"

    def test_malformed_token(self, client, record):
        resp = client.get("/acknowledge", params={"token": "abc", "id": record.digest_id})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid acknowledgement link"

    def test_unknown_digest(self, client):
        resp = client.get(
            "/acknowledge",
            params={"token": generate_ack_token(), "id": "user-9_ph_high_2026-10-17"},
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Digest not found"

    def test_wrong_token(self, client, record, digest_repo):
        resp = client.get("/acknowledge", params={"token": generate_ack_token(), "id": record.digest_id})

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Invalid acknowledgement token"
        assert not digest_repo.records[record.digest_id].is_acknowledged

    def test_missing_parameters(self, client):
        resp = client.get("/acknowledge", params={"token": generate_ack_token()})
        assert resp.status_code == 422

    def test_request_id_echoed(self, client, record):
        resp = client.get(
            "/acknowledge",
            params={"token": record.ack_token, "id": record.digest_id},
            headers={"X-Request-ID": "req-123"},
        )
        assert resp.headers["X-Request-ID"] == "req-123"


class TestAcknowledgeBody:
    def test_success_with_camel_case_id(self, client, record):
        resp = client.post(
            "/acknowledge",
            json={"token": record.ack_token, "digestId": record.digest_id},
        )
        assert resp.status_code == 200
        assert resp.json()["digest_id"] == record.digest_id

    def test_snake_case_id_accepted(self, client, record):
        resp = client.post(
            "/acknowledge",
            json={"token": record.ack_token, "digest_id": record.digest_id},
        )
        assert resp.status_code == 200

    def test_wrong_token(self, client, record):
        resp = client.post(
            "/acknowledge",
            json={"token": generate_ack_token(), "digestId": record.digest_id},
        )
        assert resp.status_code == 403


class TestStoreFailure:
    def test_unexpected_error_is_500(self):
        failing = MagicMock()
        failing.acknowledge = AsyncMock(side_effect=ConnectionError("db gone"))
        app = create_app()
        app.dependency_overrides[get_acknowledgement_handler] = lambda: failing

        resp = TestClient(app).get(
            "/acknowledge",
            params={"token": generate_ack_token(), "id": "user-1_ph_high_2026-10-17"},
        )

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to acknowledge digest"
        assert "db gone" not in resp.text
