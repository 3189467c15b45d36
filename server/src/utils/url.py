"""
URL and hostname utility functions for traffic classification.
"""

from __future__ import annotations

import ipaddress
import re
from urllib import parse

_LOCAL_SUFFIXES = (".localhost", ".local")
_WEB_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string."""
    try:
        parsed = parse.urlparse(url)
        return parsed.hostname or "unknown"
    except ValueError:
        return "unknown"


def normalize_target_url(target: str) -> str:
    """Prepend ``https://`` to a scan target that carries no scheme.

    An existing ``http://`` or ``https://`` scheme (any case) is kept and
    lower-cased, so ``http://`` targets keep their unencrypted scheme.
    Bare hosts that merely begin with "http" (``httpbin.org``) still get
    ``https://``.
    """
    target = target.strip()
    scheme = _WEB_SCHEME_RE.match(target)
    if scheme is None:
        return "https://" + target
    return scheme.group(0).lower() + target[scheme.end() :]


def get_main_domain(target_url: str) -> str:
    """Return the hostname of *target_url* without a leading ``www.``.

    Raises:
        ValueError: If the URL has no hostname.
    """
    hostname = parse.urlparse(target_url).hostname
    if not hostname:
        raise ValueError(f"Invalid target URL: {target_url!r}")
    return re.sub(r"^www\.", "", hostname)


def is_private_host(hostname: str) -> bool:
    """Determine whether *hostname* points at local or private-network traffic.

    Covers ``localhost`` (and ``*.localhost`` / ``*.local``),
    ``192.168.*`` hostnames, and any IP literal that is private,
    loopback, link-local, or unspecified.
    """
    host = hostname.strip("[]").lower()
    if host == "localhost" or host.endswith(_LOCAL_SUFFIXES):
        return True
    if host.startswith("192.168"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified
