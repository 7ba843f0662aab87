"""Feedback data models."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Column order of the feedback sheet. Rows are written positionally.
FEEDBACK_HEADERS = [
    "Title",
    "Description",
    "Photos",
    "User ID",
    "Email ID",
    "Date",
    "TimeStamp",
]


@dataclass(frozen=True)
class Attachment:
    """One uploaded file accompanying a feedback submission."""

    content: bytes
    filename: str


class UploadResult(BaseModel):
    """Metadata for a photo hosted on the media store."""

    url: str
    storage_id: str = Field(..., serialization_alias="public_id")
    original_name: str
    width: int | None = None
    height: int | None = None
    byte_size: int = Field(..., serialization_alias="bytes")


class UploadOutcome(BaseModel):
    """Result of attempting to upload a single attachment."""

    original_name: str
    result: UploadResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class FeedbackRecord(BaseModel):
    """One row of the feedback sheet."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    photo_urls: list[str] = Field(default_factory=list)
    user_id: str = ""
    email_id: str = ""
    date: str
    timestamp: str

    def to_row(self) -> list[str]:
        """Serialize to a sheet row in FEEDBACK_HEADERS order."""
        return [
            self.title,
            self.description,
            ", ".join(self.photo_urls),
            self.user_id,
            self.email_id,
            self.date,
            self.timestamp,
        ]


class SubmissionResult(BaseModel):
    """Response payload for an accepted feedback submission."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # The timestamp doubles as the submission id
    id: str
    submitted_at: str
    photos_uploaded: int
    photos_attempted: int
    title: str
    description: str
    photo_urls: list[str] = Field(default_factory=list)
    photo_details: list[UploadResult] = Field(default_factory=list)
