"""Data models for the feedback and icon API."""

from .feedback import (
    FEEDBACK_HEADERS,
    Attachment,
    FeedbackRecord,
    SubmissionResult,
    UploadOutcome,
    UploadResult,
)
from .icon import ActivateIconRequest, AddIconRequest, IconRecord

__all__ = [
    "FEEDBACK_HEADERS",
    "Attachment",
    "FeedbackRecord",
    "SubmissionResult",
    "UploadOutcome",
    "UploadResult",
    "IconRecord",
    "ActivateIconRequest",
    "AddIconRequest",
]
