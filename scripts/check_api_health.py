#!/usr/bin/env python3
"""
API Health Check Script - Verifies API endpoints and response formats.
Run this to check that client apps will get the payloads they expect.

Usage: python3 scripts/check_api_health.py [base_url]
"""

import json
import sys
import urllib.error
import urllib.request
from typing import Any

DEFAULT_URL = "http://localhost:8000"


def fetch_json(url: str, timeout: int = 10) -> dict[str, Any]:
    """Fetch JSON from URL."""
    req = urllib.request.Request(
        url, headers={"User-Agent": "FeedbackIconApi-HealthCheck/1.0"}
    )
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return json.loads(response.read().decode())


def check_endpoint(
    base_url: str, endpoint: str, expected_keys: list[str]
) -> tuple[bool, str]:
    """Check an endpoint returns expected JSON structure."""
    url = f"{base_url}{endpoint}"
    try:
        data = fetch_json(url)
        missing_keys = [k for k in expected_keys if k not in data]
        if missing_keys:
            return False, f"Missing keys: {missing_keys}"
        return True, f"OK ({len(str(data))} bytes)"
    except urllib.error.URLError as e:
        return False, f"Request failed: {e}"
    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {e}"


def check_current_icon_format(base_url: str) -> tuple[bool, str]:
    """Check the current icon payload has the fields apps read."""
    url = f"{base_url}/api/app/current-icon"
    try:
        data = fetch_json(url)

        icon = data.get("data")
        if not isinstance(icon, dict):
            return False, "ERROR: Missing 'data' object"

        required_fields = ["iconName", "displayName", "url", "lastUpdated"]
        missing = [f for f in required_fields if f not in icon]
        if missing:
            return False, f"ERROR: Icon missing fields: {missing}"

        return True, f"OK - active icon: {icon['iconName']}"
    except Exception as e:
        return False, f"FAILED: {e}"


def check_icons_format(base_url: str) -> tuple[bool, str]:
    """Check the admin icon list has exactly one active icon."""
    url = f"{base_url}/api/admin/icons"
    try:
        data = fetch_json(url)

        icons = data.get("data")
        if not isinstance(icons, list):
            return False, "ERROR: 'data' is not an array"

        active = [icon["iconName"] for icon in icons if icon.get("isActive")]
        if len(active) != 1:
            return False, f"ERROR: expected one active icon, got {active}"

        return True, f"OK - {len(icons)} icons, active: {active[0]}"
    except Exception as e:
        return False, f"FAILED: {e}"


def main():
    base_url = sys.argv[1].rstrip("/") if len(sys.argv) > 1 else DEFAULT_URL

    print("=" * 60)
    print("Feedback & Icon API Health Check")
    print("=" * 60)
    print(f"\n{base_url}")
    print("-" * 40)

    all_passed = True

    ok, msg = check_endpoint(base_url, "/health", ["status", "availableRoutes"])
    status = "✓" if ok else "✗"
    print(f"  {status} Health: {msg}")
    all_passed = all_passed and ok

    ok, msg = check_current_icon_format(base_url)
    status = "✓" if ok else "✗"
    print(f"  {status} Current icon: {msg}")
    all_passed = all_passed and ok

    ok, msg = check_icons_format(base_url)
    status = "✓" if ok else "✗"
    print(f"  {status} Icons: {msg}")
    all_passed = all_passed and ok

    ok, msg = check_endpoint(base_url, "/api/feedback", ["success", "count", "data"])
    status = "✓" if ok else "✗"
    print(f"  {status} Feedback: {msg}")
    all_passed = all_passed and ok

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ All checks passed - client apps should work correctly")
        return 0
    else:
        print("✗ Some checks failed - client apps may have issues")
        return 1


if __name__ == "__main__":
    sys.exit(main())
