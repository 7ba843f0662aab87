"""Services for the feedback and icon API."""

from .feedback_service import FeedbackService
from .icon_service import IconService
from .media_service import MediaService
from .sheets_service import SheetsService

__all__ = [
    "FeedbackService",
    "IconService",
    "MediaService",
    "SheetsService",
]
