from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, MutableMapping, Optional

import httpx
from bs4 import BeautifulSoup  # type: ignore

from .log import get_logger

log = get_logger(__name__)

ACCEPT = "text/html,application/xhtml+xml"

# Draft key -> PageMetadata attribute.
_DRAFT_FIELDS = {
    "title": "title",
    "description": "description",
    "siteName": "site_name",
    "image": "image",
    "language": "language",
}


@dataclass
class PageMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None
    image: Optional[str] = None
    language: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.title, self.description, self.site_name, self.image, self.language))

    def to_dict(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for key, attr in _DRAFT_FIELDS.items():
            value = getattr(self, attr)
            if value:
                out[key] = value
        return out


def fetch_metadata(
    url: str,
    *,
    timeout_s: float,
    user_agent: str,
    max_bytes: int,
    transport: Optional[httpx.BaseTransport] = None,
) -> PageMetadata:
    """Fetch ``url`` and guess its title/description/site/image/language.

    Best effort: timeouts, network errors and non-HTML responses all give
    an empty PageMetadata instead of raising.
    """
    timeout = httpx.Timeout(timeout_s, connect=timeout_s)
    headers = {"User-Agent": user_agent, "Accept": ACCEPT}
    try:
        with httpx.Client(follow_redirects=True, headers=headers, timeout=timeout, transport=transport) as client:
            r = client.get(url)
            content_type = r.headers.get("content-type", "").lower()
            if content_type and "text/html" not in content_type:
                log.debug("Skipping metadata for %s: content-type %s", url, content_type)
                return PageMetadata()
            return extract_metadata(r.content[:max_bytes])
    except Exception as e:
        log.debug("Metadata fetch failed for %s: %s", url, e)
        return PageMetadata()


def extract_metadata(content: bytes | str) -> PageMetadata:
    if not content:
        return PageMetadata()
    soup = BeautifulSoup(content, "lxml")

    meta: Dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = (tag.get("property") or tag.get("name") or "").strip().lower()
        value = (tag.get("content") or "").strip()
        if key and value:
            meta[key] = value

    page_title = soup.title.get_text(strip=True) if soup.title else None
    html_tag = soup.find("html")
    lang = html_tag.get("lang") if html_tag is not None else None

    return PageMetadata(
        title=_first(meta.get("og:title"), meta.get("twitter:title"), page_title),
        description=_first(meta.get("og:description"), meta.get("twitter:description"), meta.get("description")),
        site_name=_first(meta.get("og:site_name"), meta.get("application-name")),
        image=_first(meta.get("og:image"), meta.get("twitter:image")),
        language=_first(lang if isinstance(lang, str) else None),
    )


def apply_metadata(draft: MutableMapping[str, Any], meta: PageMetadata) -> MutableMapping[str, Any]:
    """Fill the draft fields that are still empty; never overwrites user input."""
    for key, attr in _DRAFT_FIELDS.items():
        value = getattr(meta, attr)
        if value and not (draft.get(key) or "").strip():
            draft[key] = value
    return draft


def _first(*values: Optional[str]) -> Optional[str]:
    for v in values:
        if v and v.strip():
            return v.strip()
    return None
