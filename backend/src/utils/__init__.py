"""Utility modules for the feedback and icon API."""
