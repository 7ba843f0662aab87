"""Shared constants for the feedback and icon API."""

# Attachment limits for feedback submissions.
# MAX_FILE_SIZE and ALLOWED_FILE_TYPES can be overridden from the environment.
PHOTO_FIELD_NAME = "photos"
MAX_FILES: int = 10
DEFAULT_MAX_FILE_SIZE: int = 10 * 1024 * 1024
DEFAULT_ALLOWED_FILE_TYPES: list[str] = ["jpg", "jpeg", "png", "gif", "webp"]

# Photos larger than this (either side) are scaled down before hosting
MAX_IMAGE_DIMENSION: int = 1200

DEFAULT_MEDIA_FOLDER = "feedback-photos"
DEFAULT_SHEET_NAME = "Sheet1"

# Icons present at process start. The first entry is the active one.
DEFAULT_ICONS: list[dict[str, str]] = [
    {"icon_id": "DEFAULT", "display_name": "Default", "url": "/uploads/icons/default.png"},
    {"icon_id": "navratri1", "display_name": "Navratri 1", "url": "/uploads/icons/navratri1.png"},
    {"icon_id": "navratri3", "display_name": "Navratri 3", "url": "/uploads/icons/navratri3.png"},
]
