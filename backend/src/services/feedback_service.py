"""Feedback ingestion: validate, host photos, append one record."""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

from models.feedback import (
    FEEDBACK_HEADERS,
    Attachment,
    FeedbackRecord,
    SubmissionResult,
    UploadOutcome,
)
from services.errors import FeedbackValidationError, PerFileUploadError
from services.media_service import MediaService
from services.sheets_service import SheetsService

logger = logging.getLogger(__name__)


def _normalize_header(header: str) -> str:
    """'User ID' -> 'user_id'."""
    return re.sub(r"\s+", "_", header.lower())


def _iso_timestamp(now: datetime) -> str:
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FeedbackService:
    """Orchestrates feedback submissions against the media and record stores."""

    def __init__(
        self,
        media_service: MediaService,
        sheets_service: SheetsService,
        upload_concurrency: int = 1,
    ):
        """Initialize the feedback service.

        Args:
            media_service: Hosts photo attachments
            sheets_service: Record store holding one row per submission
            upload_concurrency: Number of photos uploaded at once. 1 uploads
                sequentially.
        """
        self.media_service = media_service
        self.sheets_service = sheets_service
        self.upload_concurrency = max(1, upload_concurrency)

    def submit(
        self,
        title: str | None,
        description: str | None,
        user_id: str | None = None,
        email_id: str | None = None,
        attachments: list[Attachment] | None = None,
        custom_date: str | None = None,
        custom_timestamp: str | None = None,
    ) -> SubmissionResult:
        """Submit one piece of feedback.

        Photos that fail to upload are dropped; the submission still succeeds
        with fewer photos than attempted. Photos already uploaded are left in
        place if the record append fails.

        Args:
            title: Feedback title (required)
            description: Feedback body (required)
            user_id: Optional submitting user id
            email_id: Optional contact email
            attachments: Photos in submission order
            custom_date: Date (YYYY-MM-DD) to record instead of today
            custom_timestamp: ISO-8601 timestamp to record instead of now

        Returns:
            SubmissionResult describing the stored record

        Raises:
            FeedbackValidationError: If title or description is blank
            UploadFatalError: If the media store is unusable
            StoreError: If the record could not be appended
        """
        if not title or not title.strip():
            raise FeedbackValidationError("Title is required")
        if not description or not description.strip():
            raise FeedbackValidationError("Description is required")

        attachments = attachments or []

        # Caller-supplied date/timestamp are recorded verbatim
        now = datetime.now(UTC)
        timestamp = custom_timestamp or _iso_timestamp(now)
        date = custom_date or now.strftime("%Y-%m-%d")

        outcomes = self._upload_all(attachments)
        details = [outcome.result for outcome in outcomes if outcome.succeeded]
        photo_urls = [result.url for result in details]

        if attachments:
            logger.info(
                "Uploaded %d/%d photos", len(photo_urls), len(attachments)
            )

        record = FeedbackRecord(
            title=title.strip(),
            description=description.strip(),
            photo_urls=photo_urls,
            user_id=(user_id or "").strip(),
            email_id=(email_id or "").strip(),
            date=date,
            timestamp=timestamp,
        )

        self.sheets_service.append_row(record.to_row())
        logger.info("Feedback submitted at %s", timestamp)

        return SubmissionResult(
            id=timestamp,
            submitted_at=timestamp,
            photos_uploaded=len(photo_urls),
            photos_attempted=len(attachments),
            title=record.title,
            description=record.description,
            photo_urls=photo_urls,
            photo_details=details,
        )

    def _upload_all(self, attachments: list[Attachment]) -> list[UploadOutcome]:
        """Upload every attachment, returning outcomes in input order."""
        if not attachments:
            return []

        self.media_service.ensure_ready()

        if self.upload_concurrency == 1 or len(attachments) == 1:
            return [self._upload_one(attachment) for attachment in attachments]

        workers = min(self.upload_concurrency, len(attachments))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map yields results in submission order
            return list(executor.map(self._upload_one, attachments))

    def _upload_one(self, attachment: Attachment) -> UploadOutcome:
        try:
            result = self.media_service.upload_image(
                attachment.content, attachment.filename
            )
        except PerFileUploadError as e:
            logger.warning("Skipping photo %s: %s", attachment.filename, e)
            return UploadOutcome(original_name=attachment.filename, error=str(e))

        return UploadOutcome(original_name=attachment.filename, result=result)

    def list_all(self) -> list[dict[str, str]]:
        """Get every feedback row keyed by normalized header name.

        Row 0 of the sheet is the header. Cells missing from short rows are
        returned as empty strings.

        Raises:
            StoreError: If the sheet could not be read
        """
        rows = self.sheets_service.get_rows()
        if not rows:
            return []

        keys = [_normalize_header(header) for header in rows[0]]
        entries = []
        for row in rows[1:]:
            padded = row + [""] * (len(keys) - len(row))
            entries.append(
                {key: padded[index] or "" for index, key in enumerate(keys)}
            )

        logger.info("Retrieved %d feedback entries", len(entries))
        return entries

    def initialize_headers(self) -> bool:
        """Write the feedback header row if the sheet is empty.

        Returns:
            True if the header row was written
        """
        return self.sheets_service.ensure_headers(FEEDBACK_HEADERS)
