"""Registry of icon assets and the single icon client apps should display."""

import logging
import threading
from datetime import UTC, datetime

from models.icon import IconRecord
from services.errors import (
    IconAlreadyExistsError,
    IconNotFoundError,
    NoActiveIconError,
)
from utils.constants import DEFAULT_ICONS

logger = logging.getLogger(__name__)


class IconService:
    """In-memory icon registry with at most one active icon.

    The table is shared by concurrently dispatched requests (FastAPI runs sync
    work in a thread pool), so every read and write holds ``_lock`` and callers
    only ever receive copies of the stored records.
    """

    def __init__(self, icons: list[dict] | None = None):
        """Initialize the registry.

        Args:
            icons: Bootstrap icon definitions (icon_id, display_name, url).
                The first one starts active. Defaults to DEFAULT_ICONS.
        """
        self._lock = threading.Lock()
        self._icons: dict[str, IconRecord] = {}

        now = datetime.now(UTC)
        for index, icon in enumerate(DEFAULT_ICONS if icons is None else icons):
            self._icons[icon["icon_id"]] = IconRecord(
                icon_id=icon["icon_id"],
                display_name=icon["display_name"],
                url=icon["url"],
                is_active=index == 0,
                last_updated=now,
            )

    def get_active(self) -> IconRecord:
        """Get the currently active icon.

        Raises:
            NoActiveIconError: If no icon is flagged active
        """
        with self._lock:
            for icon in self._icons.values():
                if icon.is_active:
                    return icon.model_copy()

        logger.error("Icon registry has no active icon")
        raise NoActiveIconError("No active icon found")

    def list_all(self) -> list[IconRecord]:
        """Get all icons in registration order."""
        with self._lock:
            return [icon.model_copy() for icon in self._icons.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._icons)

    def add(self, icon_id: str, display_name: str, url: str) -> IconRecord:
        """Register a new, inactive icon.

        Raises:
            IconAlreadyExistsError: If icon_id is already registered
        """
        with self._lock:
            if icon_id in self._icons:
                raise IconAlreadyExistsError(f"Icon '{icon_id}' already exists")

            icon = IconRecord(
                icon_id=icon_id,
                display_name=display_name,
                url=url,
                is_active=False,
            )
            self._icons[icon_id] = icon

        logger.info("Icon '%s' added", icon_id)
        return icon.model_copy()

    def activate(self, icon_id: str) -> IconRecord:
        """Make icon_id the only active icon.

        Every record is cleared before the target is set, all under the lock,
        so readers never see zero or two active icons.

        Raises:
            IconNotFoundError: If icon_id is not registered
        """
        with self._lock:
            target = self._icons.get(icon_id)
            if target is None:
                raise IconNotFoundError(
                    f"Invalid icon name '{icon_id}'. "
                    f"Available icons: {', '.join(self._icons)}"
                )

            now = datetime.now(UTC)
            for icon in self._icons.values():
                if icon.is_active and icon is not target:
                    icon.last_updated = now
                icon.is_active = False

            target.is_active = True
            target.last_updated = now
            activated = target.model_copy()

        logger.info("Icon '%s' activated", icon_id)
        self._notify_clients(icon_id)
        return activated

    def _notify_clients(self, icon_id: str) -> None:
        # Clients poll /api/app/current-icon; there is no push channel yet.
        logger.info("Notifying all apps: active icon changed to %s", icon_id)
