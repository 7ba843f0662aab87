"""Pytest configuration and shared fixtures."""

from io import BytesIO
from unittest.mock import Mock

import pytest
from PIL import Image

from models.feedback import Attachment, UploadResult
from services.icon_service import IconService


@pytest.fixture
def icon_service():
    """Create an icon registry with the bootstrap icons."""
    return IconService()


@pytest.fixture
def make_image():
    """Factory producing encoded image bytes of a given size and format."""

    def _make(width: int = 64, height: int = 48, image_format: str = "PNG") -> bytes:
        buffer = BytesIO()
        Image.new("RGB", (width, height), color=(200, 30, 30)).save(
            buffer, format=image_format
        )
        return buffer.getvalue()

    return _make


@pytest.fixture
def sample_attachments(make_image):
    """Three small PNG attachments."""
    return [
        Attachment(content=make_image(), filename=f"photo{i}.png") for i in (1, 2, 3)
    ]


def make_upload_result(name: str) -> UploadResult:
    """Build an UploadResult for a given original filename."""
    return UploadResult(
        url=f"https://cdn.example.com/feedback-photos/{name}",
        storage_id=f"feedback-photos/{name}",
        original_name=name,
        width=64,
        height=48,
        byte_size=1234,
    )


@pytest.fixture
def mock_media_service():
    """Create a mock MediaService that uploads everything successfully."""
    service = Mock()
    service.configured = True
    service.bucket = "feedback-photos-test"
    service.ensure_ready.return_value = None
    service.upload_image.side_effect = lambda content, name: make_upload_result(name)
    return service


@pytest.fixture
def mock_sheets_service():
    """Create a mock SheetsService."""
    service = Mock()
    service.configured = True
    service.append_row.return_value = {"updates": {"updatedRows": 1}}
    service.get_rows.return_value = []
    service.ensure_headers.return_value = True
    return service
