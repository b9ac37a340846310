import pytest
from pathlib import Path
from fastapi.testclient import TestClient

from repositories.media_repository import MediaRepository
from services.private_upload_service import CRON_ACTION, PrivateUploadService, get_private_upload_service


@pytest.mark.integration
class TestUploadEndpoints:

    @pytest.fixture(autouse=True)
    def upload_service(self, db_session, uploader, mock_scheduler, hooks):
        from main import app

        self.mock_scheduler = mock_scheduler
        self.service = PrivateUploadService(
            uploader,
            mock_scheduler,
            hooks,
            media_repository=MediaRepository(db_session),
            secret="test-nonce-salt",
            cleanup_delay=3600,
        )
        app.dependency_overrides[get_private_upload_service] = lambda: self.service
        yield self.service

    def teardown_method(self):
        """Clean up after each test."""
        from main import app
        app.dependency_overrides.clear()

    def test_private_upload(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1001/uploads/",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            data={"private": "true"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["private"] is True
        assert data["media_item"] is None
        secret_dir = self.service.secret_dir_path("fld_1001", "CF1")
        assert Path(data["upload"]["path"]).parent == secret_dir
        assert data["upload"]["url"].endswith(f"/{secret_dir.name}/scan.pdf")
        assert data["upload"]["type"] == "application/pdf"
        self.mock_scheduler.schedule.assert_called_once_with(3600, CRON_ACTION, ["fld_1001", "CF1"])

    def test_public_upload(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1002/uploads/",
            files={"file": ("photo.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["private"] is False
        assert Path(data["upload"]["path"]).is_file()
        self.mock_scheduler.schedule.assert_not_called()

    def test_public_upload_to_media_library(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1002/uploads/",
            files={"file": ("report.final.pdf", b"%PDF-1.4", "application/pdf")},
            data={"media_library": "true"},
        )

        assert response.status_code == 201
        media_item = response.json()["media_item"]
        assert media_item["title"] == "report.final"
        assert media_item["status"] == "inherit"
        assert media_item["attachment_metadata"]["filesize"] == 8

    def test_private_upload_is_not_added_to_media_library(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1001/uploads/",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            data={"private": "true", "media_library": "true"},
        )

        assert response.status_code == 201
        assert response.json()["media_item"] is None

    def test_rejected_upload(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1001/uploads/",
            files={"file": ("payload.exe", b"MZ", "application/octet-stream")},
            data={"private": "true"},
        )

        assert response.status_code == 400
        assert "not permitted" in response.json()["detail"]
        # The fallback purge is still scheduled
        self.mock_scheduler.schedule.assert_called_once()

    def test_empty_upload(self, client: TestClient):
        response = client.post(
            "/api/v1/forms/CF1/fields/fld_1001/uploads/",
            files={"file": ("empty.txt", b"", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("File is empty.")
