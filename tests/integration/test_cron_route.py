"""Tests for the /api/cron dispatcher endpoint."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from inkstudio import config
from inkstudio.errors import StorageError
from inkstudio.models import Notification
from inkstudio.scheduling.windows import utcnow


@pytest.fixture
def old_read_notification(db):
    notification = Notification(
        recipient_id="cust",
        recipient_type="customer",
        title="Old",
        message="Old news",
        notification_type="booking",
        is_read=True,
        created_at=utcnow() - timedelta(days=500),
    )
    db.add(notification)
    db.commit()
    return notification


class TestAuthorization:
    def test_wrong_secret_is_rejected_without_side_effects(self, client, db, old_read_notification):
        response = client.post("/api/cron", json={"jobType": "cleanup"}, headers={"x-cron-secret": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert db.query(Notification).count() == 1

    @pytest.mark.parametrize(
        "headers",
        [{"x-cron-secret": "nope"}, {}],
        ids=["wrong-secret", "no-header"],
    )
    def test_rejected_request_runs_nothing(self, client, headers):
        with (
            patch("inkstudio.routes.cron.run_job", new_callable=AsyncMock) as run,
            patch("inkstudio.email_service.send_email", new_callable=AsyncMock) as send,
            patch("inkstudio.email_service.send_html_email", new_callable=AsyncMock) as send_html,
        ):
            response = client.post("/api/cron", json={"jobType": "process_email_queue"}, headers=headers)

        assert response.status_code == 401
        run.assert_not_awaited()
        send.assert_not_awaited()
        send_html.assert_not_awaited()

    def test_missing_secret_header(self, client):
        response = client.post("/api/cron", json={"jobType": "cleanup"})
        assert response.status_code == 401

    def test_unset_server_secret_rejects_everything(self, client, cron_headers, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", None)

        response = client.post("/api/cron", json={"jobType": "cleanup"}, headers=cron_headers)
        assert response.status_code == 401

    def test_auth_checked_before_body(self, client):
        response = client.post("/api/cron", content=b"not json", headers={"x-cron-secret": "nope"})
        assert response.status_code == 401


class TestDispatch:
    def test_missing_job_type(self, client, cron_headers):
        response = client.post("/api/cron", json={}, headers=cron_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Job type is required"}

    def test_unknown_job_type(self, client, cron_headers):
        response = client.post("/api/cron", json={"jobType": "mine_bitcoin"}, headers=cron_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid job type"}

    @pytest.mark.parametrize("job_type", [{"name": "cleanup"}, ["cleanup"], 5, True])
    def test_non_string_job_type(self, client, cron_headers, job_type):
        response = client.post("/api/cron", json={"jobType": job_type}, headers=cron_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid job type"}

    def test_invalid_json(self, client, cron_headers):
        response = client.post("/api/cron", content=b"{broken", headers=cron_headers)
        assert response.status_code == 400

    def test_cleanup_runs(self, client, db, cron_headers, old_read_notification):
        response = client.post("/api/cron", json={"jobType": "cleanup"}, headers=cron_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "job": "cleanup", "deletedNotifications": 1}
        assert db.query(Notification).count() == 0

    def test_reminders_summary_shape(self, client, cron_headers):
        with patch("inkstudio.email_service.send_appointment_reminder", new=AsyncMock()):
            response = client.post("/api/cron", json={"jobType": "appointment_reminders"}, headers=cron_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["job"] == "appointment_reminders"
        assert body["totalProcessed"] == 0
        assert body["details"] == []

    def test_storage_error_is_500(self, client, cron_headers):
        with patch("inkstudio.routes.cron.run_job", new=AsyncMock(side_effect=StorageError("db down"))):
            response = client.post("/api/cron", json={"jobType": "cleanup"}, headers=cron_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process cron job", "details": "db down"}

    def test_unexpected_error_is_500(self, client, cron_headers):
        with patch("inkstudio.routes.cron.run_job", new=AsyncMock(side_effect=RuntimeError("boom"))):
            response = client.post("/api/cron", json={"jobType": "cleanup"}, headers=cron_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process cron job"


class TestHealth:
    def test_health_with_secret(self, client, cron_headers):
        response = client.get("/api/cron", headers=cron_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["timestamp"].endswith("Z")

    def test_health_without_secret(self, client):
        assert client.get("/api/cron").status_code == 401

    def test_app_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
