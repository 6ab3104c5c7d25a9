from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_user_url(text: Optional[str]) -> Optional[str]:
    """Turn what a user typed into a fetchable URL ("example.com" -> "https://example.com")."""
    if text is None:
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    if _SCHEME_RE.match(trimmed):
        return trimmed
    return f"https://{trimmed}"


def is_valid_http_url(url: str) -> bool:
    try:
        p = urlparse(url)
    except ValueError:
        return False
    return p.scheme.lower() in ("http", "https") and bool(p.hostname)
