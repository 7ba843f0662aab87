"""Icon data models for the active icon registry."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class IconRecord(BaseModel):
    """A named icon asset that client apps can be told to display."""

    icon_id: str = Field(..., min_length=1)
    display_name: str
    url: str
    is_active: bool = False
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ActivateIconRequest(BaseModel):
    """Request body for activating an icon."""

    model_config = ConfigDict(populate_by_name=True)

    icon_name: str | None = Field(None, alias="iconName")


class AddIconRequest(BaseModel):
    """Request body for registering a new icon."""

    model_config = ConfigDict(populate_by_name=True)

    icon_name: str | None = Field(None, alias="iconName")
    display_name: str | None = Field(None, alias="displayName")
    icon_url: str | None = Field(None, alias="iconUrl")
