"""Pure helpers for comparing company domains and profile URLs."""

from __future__ import annotations

import re

_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_WWW = re.compile(r"^www\.")
_WHITESPACE = re.compile(r"\s")


def normalize_domain(value: str | None) -> str | None:
    """Reduce a URL or domain to a comparable form.

    Lower-cases the input and strips the scheme, a leading ``www.`` and any
    trailing slash until nothing changes, so applying it twice is a no-op.
    Returns ``None`` when no domain can be derived (empty, whitespace-only or
    containing inner whitespace).
    """
    if value is None:
        return None
    current = value.strip().lower()
    while True:
        stripped = _SCHEME.sub("", current, count=1)
        stripped = _WWW.sub("", stripped, count=1)
        stripped = stripped.rstrip("/")
        if stripped == current:
            break
        current = stripped
    if not current or _WHITESPACE.search(current):
        return None
    return current


def urls_match(left: str | None, right: str | None) -> bool:
    """Return True when both URLs normalise to the same non-empty value."""
    normalized_left = normalize_domain(left)
    if normalized_left is None:
        return False
    return normalized_left == normalize_domain(right)


__all__ = ["normalize_domain", "urls_match"]
