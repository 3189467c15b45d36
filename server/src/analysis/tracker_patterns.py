"""
Pattern tables used by the request classifier.

The rule set is intentionally small: a list of tracker-related URL
substrings and a single email pattern for PII detection.  Extend
these tables to widen coverage.
"""

from __future__ import annotations

import re

# ============================================================================
# Tracker Substrings
# ============================================================================

# Matched case-insensitively against the full request URL.
TRACKER_KEYWORDS: tuple[str, ...] = (
    "analytics",
    "pixel",
    "tracker",
    "telemetry",
    "adsystem",
    "doubleclick",
    "facebook",
    "tiktok",
    "clarity",
)

# ============================================================================
# PII Patterns
# ============================================================================

EMAIL_PATTERN: re.Pattern[str] = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def find_tracker_keyword(url: str) -> str | None:
    """Return the first tracker keyword contained in *url*, if any."""
    lowered = url.lower()
    for keyword in TRACKER_KEYWORDS:
        if keyword in lowered:
            return keyword
    return None


def contains_email(text: str | None) -> bool:
    """Check whether *text* contains something shaped like an email address."""
    return bool(text) and EMAIL_PATTERN.search(text) is not None
