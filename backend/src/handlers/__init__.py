"""Lambda handlers for the feedback and icon API."""

from .api_handler import api_handler

__all__ = ["api_handler"]
