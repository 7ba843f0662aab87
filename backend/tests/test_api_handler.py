"""Unit tests for API handler route functions.

Tests individual handler functions by mocking the service layer.
Focuses on request parsing, response formatting and error handling.
"""

import asyncio
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from starlette.datastructures import FormData, UploadFile

from models.feedback import SubmissionResult, UploadResult
from services.errors import StoreError, UploadFatalError
from services.feedback_service import FeedbackService
from services.icon_service import IconService

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def client():
    """Create a FastAPI TestClient with services reset."""
    from handlers.api_handler import app, reset_services

    reset_services()
    return TestClient(app)


@pytest.fixture()
def feedback_service(mock_media_service, mock_sheets_service):
    """Real FeedbackService over mocked stores, patched into the handler."""
    service = FeedbackService(
        media_service=mock_media_service, sheets_service=mock_sheets_service
    )
    with patch("handlers.api_handler.get_feedback_service", return_value=service):
        yield service


def _photo(name="photo.png", content=b"", content_type="image/png"):
    return ("photos", (name, content, content_type))


def _feedback_form(**overrides):
    data = {"title": "Button broken", "description": "Save does nothing"}
    data.update(overrides)
    return data


# ===========================================================================
# Health
# ===========================================================================


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client, monkeypatch):
        """Test health reports status and configuration."""
        monkeypatch.setenv("MEDIA_BUCKET", "photos-bucket")
        monkeypatch.delenv("GOOGLE_SHEET_ID", raising=False)

        resp = client.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["status"] == "healthy"
        assert data["media"] == {"configured": True, "bucket": "photos-bucket"}
        assert data["sheets"] == {"configured": False}
        assert data["activeIcons"] == 3
        assert "POST /api/feedback - Submit feedback with photos" in (
            data["availableRoutes"]["feedback"]
        )


# ===========================================================================
# POST /api/feedback
# ===========================================================================


class TestSubmitFeedback:
    """Tests for the feedback submission endpoint."""

    def test_submit_text_only(self, client, feedback_service, mock_sheets_service):
        """Test a text-only submission returns 201 with the result payload."""
        resp = client.post(
            "/api/feedback",
            data=_feedback_form(
                userId="u1",
                emailId="a@example.com",
                customDate="2026-02-01",
                customTimestamp="2026-02-01T09:30:00.000Z",
            ),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Feedback submitted successfully"
        data = body["data"]
        assert data["id"] == "2026-02-01T09:30:00.000Z"
        assert data["submittedAt"] == "2026-02-01T09:30:00.000Z"
        assert data["photosUploaded"] == 0
        assert data["photosAttempted"] == 0
        assert data["photoUrls"] == []
        assert data["photoDetails"] == []
        mock_sheets_service.append_row.assert_called_once_with(
            [
                "Button broken",
                "Save does nothing",
                "",
                "u1",
                "a@example.com",
                "2026-02-01",
                "2026-02-01T09:30:00.000Z",
            ]
        )

    def test_submit_with_photos(self, client, feedback_service, make_image):
        """Test photo details use the wire field names."""
        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("a.png", make_image()), _photo("b.jpg", make_image())],
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["photosAttempted"] == 2
        assert data["photosUploaded"] == 2
        assert data["photoUrls"] == [
            "https://cdn.example.com/feedback-photos/a.png",
            "https://cdn.example.com/feedback-photos/b.jpg",
        ]
        assert data["photoDetails"][0] == {
            "url": "https://cdn.example.com/feedback-photos/a.png",
            "public_id": "feedback-photos/a.png",
            "original_name": "a.png",
            "width": 64,
            "height": 48,
            "bytes": 1234,
        }

    def test_missing_title(self, client, feedback_service, mock_media_service, make_image):
        """Test a whitespace title is rejected with no upload."""
        resp = client.post(
            "/api/feedback",
            data=_feedback_form(title="   "),
            files=[_photo("a.png", make_image())],
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Title is required"
        mock_media_service.upload_image.assert_not_called()

    def test_missing_description(self, client, feedback_service):
        """Test a missing description is rejected."""
        resp = client.post("/api/feedback", data={"title": "Only a title"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Description is required"

    def test_too_many_files(self, client, feedback_service, mock_media_service):
        """Test more than 10 files is rejected."""
        files = [_photo(f"p{i}.png", b"x") for i in range(11)]

        resp = client.post("/api/feedback", data=_feedback_form(), files=files)

        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Too many files")
        mock_media_service.upload_image.assert_not_called()

    def test_unexpected_file_field(self, client, feedback_service):
        """Test files under another field name are rejected."""
        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[("images", ("a.png", b"x", "image/png"))],
        )

        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Unexpected file field")
        assert '"photos"' in resp.json()["detail"]

    def test_disallowed_file_type(self, client, feedback_service):
        """Test extensions outside the allow-list are rejected."""
        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("malware.exe", b"MZ", "application/octet-stream")],
        )

        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail.startswith("Invalid file type")
        assert "exe" in detail
        assert "jpg, jpeg, png, gif, webp" in detail

    def test_allowed_types_from_environment(self, client, feedback_service, monkeypatch):
        """Test ALLOWED_FILE_TYPES overrides the default allow-list."""
        monkeypatch.setenv("ALLOWED_FILE_TYPES", "png")

        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("a.jpg", b"x", "image/jpeg")],
        )

        assert resp.status_code == 400
        assert "Allowed types: png" in resp.json()["detail"]

    def test_file_too_large(self, client, feedback_service, monkeypatch):
        """Test files above MAX_FILE_SIZE are rejected."""
        monkeypatch.setenv("MAX_FILE_SIZE", str(1024 * 1024))

        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("big.png", b"x" * (1024 * 1024 + 1))],
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "File too large: maximum file size is 1MB"

    def test_upload_fatal_error(self, client, feedback_service, mock_media_service, make_image):
        """Test an unusable media store returns 500 with the cause."""
        mock_media_service.ensure_ready.side_effect = UploadFatalError(
            "Media bucket is not configured (MEDIA_BUCKET)"
        )

        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("a.png", make_image())],
        )

        assert resp.status_code == 500
        assert resp.json()["detail"] == (
            "Failed to upload photos: Media bucket is not configured (MEDIA_BUCKET)"
        )

    def test_store_error(self, client, feedback_service, mock_sheets_service):
        """Test an append failure returns 500 with the cause."""
        mock_sheets_service.append_row.side_effect = StoreError("quota exceeded")

        resp = client.post("/api/feedback", data=_feedback_form())

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to save feedback: quota exceeded"


    def test_submit_json_body(self, client, feedback_service, mock_sheets_service):
        """Test a JSON body is accepted as a text-only submission."""
        resp = client.post(
            "/api/feedback",
            json={
                "title": "Bug",
                "description": "Crash",
                "userId": "u7",
                "customTimestamp": "2026-03-01T08:00:00.000Z",
            },
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["id"] == "2026-03-01T08:00:00.000Z"
        assert data["photosAttempted"] == 0
        row = mock_sheets_service.append_row.call_args.args[0]
        assert row[:4] == ["Bug", "Crash", "", "u7"]

    def test_submit_json_body_missing_title(self, client, feedback_service):
        """Test JSON submissions are validated like form submissions."""
        resp = client.post("/api/feedback", json={"description": "Crash"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Title is required"

    def test_submit_json_body_not_an_object(self, client, feedback_service):
        """Test a JSON array body is a 400."""
        resp = client.post("/api/feedback", json=["Bug", "Crash"])

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Request body must be a JSON object"

    def test_file_at_size_limit_accepted(
        self, client, feedback_service, mock_media_service, monkeypatch
    ):
        """Test a file of exactly MAX_FILE_SIZE bytes is passed on whole."""
        monkeypatch.setenv("MAX_FILE_SIZE", "1024")

        resp = client.post(
            "/api/feedback",
            data=_feedback_form(),
            files=[_photo("edge.png", b"x" * 1024)],
        )

        assert resp.status_code == 201
        content, name = mock_media_service.upload_image.call_args.args
        assert name == "edge.png"
        assert len(content) == 1024

    def test_oversized_file_read_is_bounded(self, monkeypatch):
        """Test an upload of unknown size is read only one byte past the limit."""
        from handlers.api_handler import _collect_attachments

        monkeypatch.setenv("MAX_FILE_SIZE", "1024")
        stream = BytesIO(b"x" * 4096)
        form = FormData([("photos", UploadFile(file=stream, filename="big.png"))])

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(_collect_attachments(form))

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail.startswith("File too large")
        assert stream.tell() == 1025
    @patch("handlers.api_handler.get_feedback_service")
    def test_form_fields_passed_to_service(self, mock_svc_fn, client):
        """Test form fields map onto the service arguments."""
        svc = MagicMock()
        svc.submit.return_value = SubmissionResult(
            id="ts",
            submitted_at="ts",
            photos_uploaded=1,
            photos_attempted=1,
            title="T",
            description="D",
            photo_urls=["https://cdn/x.png"],
            photo_details=[
                UploadResult(
                    url="https://cdn/x.png",
                    storage_id="x",
                    original_name="x.png",
                    byte_size=3,
                )
            ],
        )
        mock_svc_fn.return_value = svc

        resp = client.post(
            "/api/feedback",
            data=_feedback_form(userId="u9", customDate="2026-01-05"),
            files=[_photo("x.png", b"abc")],
        )

        assert resp.status_code == 201
        kwargs = svc.submit.call_args.kwargs
        assert kwargs["title"] == "Button broken"
        assert kwargs["user_id"] == "u9"
        assert kwargs["email_id"] is None
        assert kwargs["custom_date"] == "2026-01-05"
        assert kwargs["custom_timestamp"] is None
        assert len(kwargs["attachments"]) == 1
        assert kwargs["attachments"][0].filename == "x.png"
        assert kwargs["attachments"][0].content == b"abc"


# ===========================================================================
# GET /api/feedback
# ===========================================================================


class TestListFeedback:
    """Tests for the feedback listing endpoint."""

    def test_list_feedback(self, client, feedback_service, mock_sheets_service):
        """Test rows are returned with a count."""
        mock_sheets_service.get_rows.return_value = [
            ["Title", "Description", "User ID"],
            ["Bug", "Crash", "u1"],
            ["Idea"],
        ]

        resp = client.get("/api/feedback")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert body["data"][0] == {"title": "Bug", "description": "Crash", "user_id": "u1"}
        assert body["data"][1] == {"title": "Idea", "description": "", "user_id": ""}

    def test_list_feedback_store_error(self, client, feedback_service, mock_sheets_service):
        """Test read failures return 500."""
        mock_sheets_service.get_rows.side_effect = StoreError("unavailable")

        resp = client.get("/api/feedback")

        assert resp.status_code == 500
        assert "unavailable" in resp.json()["detail"]


# ===========================================================================
# Icon endpoints
# ===========================================================================


class TestIconEndpoints:
    """Tests for the icon registry endpoints."""

    def test_current_icon_default(self, client):
        """Test DEFAULT is active on startup with an absolute URL."""
        resp = client.get("/api/app/current-icon")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["iconName"] == "DEFAULT"
        assert data["displayName"] == "Default"
        assert data["url"] == "http://testserver/uploads/icons/default.png"
        assert "lastUpdated" in data

    @patch("handlers.api_handler.get_icon_service")
    def test_current_icon_none_active(self, mock_svc_fn, client):
        """Test an empty registry returns 404, not 500."""
        mock_svc_fn.return_value = IconService(icons=[])

        resp = client.get("/api/app/current-icon")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "No active icon found"

    def test_list_icons(self, client):
        """Test the admin list includes every icon in order."""
        resp = client.get("/api/admin/icons")

        assert resp.status_code == 200
        icons = resp.json()["data"]
        assert [i["iconName"] for i in icons] == ["DEFAULT", "navratri1", "navratri3"]
        assert [i["isActive"] for i in icons] == [True, False, False]
        assert icons[1]["url"] == "http://testserver/uploads/icons/navratri1.png"

    def test_activate_icon(self, client):
        """Test activation switches the current icon."""
        resp = client.post("/api/admin/icons/activate", json={"iconName": "navratri1"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Icon 'Navratri 1' activated successfully"
        assert body["data"] == {
            "activeIcon": "navratri1",
            "displayName": "Navratri 1",
            "url": "/uploads/icons/navratri1.png",
        }
        current = client.get("/api/app/current-icon").json()["data"]
        assert current["iconName"] == "navratri1"

    def test_activate_missing_name(self, client):
        """Test activation without iconName is a 400."""
        resp = client.post("/api/admin/icons/activate", json={})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "iconName is required"

    def test_activate_unknown_icon(self, client):
        """Test activating an unknown icon is a 400 and changes nothing."""
        resp = client.post("/api/admin/icons/activate", json={"iconName": "nope"})

        assert resp.status_code == 400
        assert "Invalid icon name 'nope'" in resp.json()["detail"]
        assert "DEFAULT, navratri1, navratri3" in resp.json()["detail"]
        current = client.get("/api/app/current-icon").json()["data"]
        assert current["iconName"] == "DEFAULT"

    def test_add_icon(self, client):
        """Test a new icon is registered inactive."""
        resp = client.post(
            "/api/admin/icons/add",
            json={
                "iconName": "diwali",
                "displayName": "Diwali",
                "iconUrl": "https://cdn.example.com/diwali.png",
            },
        )

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "iconName": "diwali",
            "displayName": "Diwali",
            "url": "https://cdn.example.com/diwali.png",
        }
        icons = client.get("/api/admin/icons").json()["data"]
        added = [i for i in icons if i["iconName"] == "diwali"][0]
        assert added["isActive"] is False
        assert added["url"] == "https://cdn.example.com/diwali.png"

    def test_add_icon_missing_fields(self, client):
        """Test all three fields are required."""
        resp = client.post(
            "/api/admin/icons/add", json={"iconName": "x", "displayName": "X"}
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "iconName, displayName, and iconUrl are required"

    def test_add_duplicate_icon(self, client):
        """Test a duplicate id is a 400."""
        resp = client.post(
            "/api/admin/icons/add",
            json={"iconName": "DEFAULT", "displayName": "Again", "iconUrl": "/x.png"},
        )

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Icon 'DEFAULT' already exists"

    def test_registry_resets_with_services(self, client):
        """Test reset_services restores the bootstrap registry."""
        from handlers.api_handler import reset_services

        client.post("/api/admin/icons/activate", json={"iconName": "navratri3"})
        reset_services()

        current = client.get("/api/app/current-icon").json()["data"]
        assert current["iconName"] == "DEFAULT"


# ===========================================================================
# Unknown routes
# ===========================================================================


class TestNotFound:
    """Tests for the catch-all 404 response."""

    def test_unknown_route_lists_endpoints(self, client):
        """Test unmatched paths return the available endpoints."""
        resp = client.get("/api/nothing-here")

        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Endpoint not found"
        assert body["message"] == "GET /api/nothing-here not found"
        assert body["availableEndpoints"]["general"] == ["GET /health - Health check"]
        assert body["suggestion"].startswith("Check the URL and HTTP method")

    @patch("handlers.api_handler.get_icon_service")
    def test_route_raised_404_keeps_detail(self, mock_svc_fn, client):
        """Test a 404 raised by a matched route is not replaced."""
        mock_svc_fn.return_value = IconService(icons=[])

        resp = client.get("/api/app/current-icon")

        assert resp.status_code == 404
        assert resp.json() == {"detail": "No active icon found"}
