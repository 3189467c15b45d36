"""
Heuristic decoding of request bodies.

Trackers frequently ship their beacons as base64 blobs.  This module
recovers readable evidence from such bodies when it can, and reports
explicitly whether it did so.  The heuristic accepts false negatives
(readable text left encoded) and false positives (valid-looking
garbage decoded to noise).
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import re

MIN_CANDIDATE_LENGTH = 21

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_PRINTABLE_RE = re.compile(r"[\x20-\x7E]")


@dataclasses.dataclass(frozen=True)
class Decoded:
    """A body that was successfully decoded into readable text."""

    text: str
    original: str


@dataclasses.dataclass(frozen=True)
class Unchanged:
    """A body passed through as-is (not a candidate, or decoding failed)."""

    text: str


DecodeResult = Decoded | Unchanged


def is_candidate(raw: str) -> bool:
    """Check whether *raw* looks like a base64 string worth decoding."""
    return (
        len(raw) >= MIN_CANDIDATE_LENGTH
        and len(raw) % 4 == 0
        and _BASE64_RE.fullmatch(raw) is not None
    )


def decode_payload(raw: str | None) -> DecodeResult | None:
    """Best-effort decode of a request body.

    Args:
        raw: The raw body string, or ``None`` when the request has none.

    Returns:
        ``None`` for an absent/empty body, ``Decoded`` when readable
        text was recovered, otherwise ``Unchanged`` carrying *raw*.
    """
    if not raw:
        return None
    if not is_candidate(raw):
        return Unchanged(raw)
    try:
        text = base64.b64decode(raw, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return Unchanged(raw)
    if not _PRINTABLE_RE.search(text):
        return Unchanged(raw)
    return Decoded(text=text, original=raw)


def decode_text(raw: str | None) -> str | None:
    """Return the best human-readable form of *raw* (or ``None``)."""
    result = decode_payload(raw)
    return result.text if result is not None else None
