#!/usr/bin/env python3
"""
Configuration Check Script - Verifies the environment before starting the API.
Reports missing spreadsheet, media store and credential settings.

Usage: python3 scripts/check_config.py
"""

import json
import os
import sys

PLACEHOLDER_MARKER = "your_"
REQUIRED_CREDENTIAL_KEYS = ["client_email", "private_key", "project_id"]


def is_configured(name: str) -> bool:
    """Check an environment variable is set and not a placeholder value."""
    value = os.environ.get(name, "")
    return bool(value) and PLACEHOLDER_MARKER not in value


def check_sheet_id() -> tuple[bool, str]:
    """Check the spreadsheet id is configured."""
    if not is_configured("GOOGLE_SHEET_ID"):
        return (
            False,
            "Not configured or contains placeholder value "
            "(example: 1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms)",
        )
    return True, f"Sheet ID: {os.environ['GOOGLE_SHEET_ID']}"


def check_media_store() -> tuple[bool, str]:
    """Check the photo bucket is configured."""
    if not is_configured("MEDIA_BUCKET"):
        return False, "MEDIA_BUCKET not configured"
    base_url = os.environ.get("MEDIA_PUBLIC_BASE_URL") or "S3 bucket URL"
    return True, f"Bucket: {os.environ['MEDIA_BUCKET']} (public URLs via {base_url})"


def check_credentials(path: str) -> tuple[bool, str]:
    """Check the Google service account file exists and looks valid."""
    if not os.path.exists(path):
        return False, f"{path}: Google service account credentials file not found"

    try:
        with open(path, encoding="utf-8") as f:
            credentials = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        return False, f"{path}: Invalid JSON format ({e})"

    missing = [k for k in REQUIRED_CREDENTIAL_KEYS if not credentials.get(k)]
    if missing:
        return False, f"{path}: Invalid credentials format, missing {missing}"

    return (
        True,
        f"Service Account: {credentials['client_email']} "
        f"(project {credentials['project_id']})",
    )


def main():
    print("=" * 60)
    print("Feedback & Icon API Configuration Check")
    print("=" * 60)

    credentials_file = os.environ.get("GOOGLE_CREDENTIALS_FILE", "a.json")
    checks = [
        ("GOOGLE_SHEET_ID", check_sheet_id()),
        ("Media store", check_media_store()),
        ("Credentials", check_credentials(credentials_file)),
    ]

    all_passed = True
    for name, (ok, msg) in checks:
        status = "✓" if ok else "✗"
        print(f"  {status} {name}: {msg}")
        all_passed = all_passed and ok

    uploads_dir = os.environ.get("UPLOADS_DIR", "uploads")
    if os.path.isdir(uploads_dir):
        print(f"  ✓ {uploads_dir}/: Directory exists")
    else:
        print(f"  ! {uploads_dir}/: Directory does not exist (created on startup)")

    print("\nOptional configuration:")
    print(f"  PORT: {os.environ.get('PORT', '8000 (default)')}")
    print(f"  MAX_FILE_SIZE: {os.environ.get('MAX_FILE_SIZE', '10485760 (10MB default)')}")
    print(
        "  ALLOWED_FILE_TYPES: "
        f"{os.environ.get('ALLOWED_FILE_TYPES', 'jpg,jpeg,png,gif,webp (default)')}"
    )
    print(f"  UPLOAD_CONCURRENCY: {os.environ.get('UPLOAD_CONCURRENCY', '1 (default)')}")

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ Configuration looks good - the API can be started")
        print("  Make sure the sheet is shared with the service account email")
        return 0
    else:
        print("✗ Please fix the configuration issues before starting the API")
        return 1


if __name__ == "__main__":
    sys.exit(main())
