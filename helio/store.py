"""JSON-file bookmark store.

The whole collection lives in one pretty-printed document::

    {"version": 1, "bookmarks": [...]}

Every mutation is a full read-modify-write of that file; newest bookmarks are
kept first. Mutations through one ``BookmarkStore`` are serialized by a
per-instance lock, but nothing coordinates separate processes sharing a file.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import BookmarkNotFoundError, BookmarkValidationError
from .log import get_logger
from .model import (
    OPTIONAL_FIELDS,
    Bookmark,
    canonical_fields,
    clean_optional,
    normalize_tags,
    utc_now_iso,
)

log = get_logger(__name__)

STORE_VERSION = 1


@dataclass
class StoreContainer:
    version: int = STORE_VERSION
    bookmarks: List[Bookmark] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "bookmarks": [b.to_dict() for b in self.bookmarks]}


@dataclass
class ParsedContainer:
    """Result of shape-checking a persisted document.

    ``ok`` is False when the document was unusable; ``container`` is then a
    fresh empty container and ``reason`` says what was wrong.
    """

    ok: bool
    container: StoreContainer
    reason: Optional[str] = None


def parse_container(raw_doc: Union[str, bytes]) -> ParsedContainer:
    if isinstance(raw_doc, bytes):
        try:
            raw_doc = raw_doc.decode("utf-8")
        except UnicodeDecodeError as e:
            return _invalid(f"not valid UTF-8 ({e})")
    try:
        data = json.loads(raw_doc)
    except ValueError as e:
        return _invalid(f"not valid JSON ({e})")
    if not isinstance(data, dict):
        return _invalid("top level is not an object")
    if data.get("version") != STORE_VERSION:
        return _invalid(f"unsupported version {data.get('version')!r}")
    raw = data.get("bookmarks")
    if not isinstance(raw, list):
        return _invalid("'bookmarks' is missing or not a list")

    bookmarks: List[Bookmark] = []
    seen = set()
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            return _invalid(f"bookmarks[{i}] is not an object")
        if not all(isinstance(entry.get(k), str) for k in ("id", "url", "title")):
            return _invalid(f"bookmarks[{i}] lacks a string id/url/title")
        if entry["id"] in seen:
            return _invalid(f"duplicate id {entry['id']!r} at bookmarks[{i}]")
        seen.add(entry["id"])
        bookmarks.append(Bookmark.from_dict(entry))
    return ParsedContainer(ok=True, container=StoreContainer(bookmarks=bookmarks))


def _invalid(reason: str) -> ParsedContainer:
    return ParsedContainer(ok=False, container=StoreContainer(), reason=reason)


class BookmarkStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    # -- persistence -----------------------------------------------------

    def load(self) -> StoreContainer:
        with self._lock:
            try:
                raw_doc = self.path.read_bytes()
            except FileNotFoundError:
                log.info("Creating empty bookmark store: %s", self.path)
                container = StoreContainer()
                self.persist(container)
                return container

            parsed = parse_container(raw_doc)
            if not parsed.ok:
                # Left on disk as-is so the user can recover it by hand.
                log.warning("Ignoring unreadable bookmark store %s: %s", self.path, parsed.reason)
            return parsed.container

    def persist(self, container: StoreContainer) -> None:
        # Plain overwrite: a crash mid-write can leave a truncated file.
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            text = json.dumps(container.to_dict(), indent=2, ensure_ascii=False)
            self.path.write_text(text, encoding="utf-8")

    # -- queries ---------------------------------------------------------

    def list(self) -> List[Bookmark]:
        return self.load().bookmarks

    def get(self, bookmark_id: str) -> Optional[Bookmark]:
        for b in self.load().bookmarks:
            if b.id == bookmark_id:
                return b
        return None

    def search(self, query: str) -> List[Bookmark]:
        bookmarks = self.load().bookmarks
        q = (query or "").strip().lower()
        if not q:
            return bookmarks
        return [b for b in bookmarks if q in _haystack(b)]

    # -- mutations -------------------------------------------------------

    def create(self, draft: Mapping[str, Any]) -> Bookmark:
        data = canonical_fields(draft)
        url = _required(data.get("url"), "URL")
        title = _required(data.get("title"), "Title")

        with self._lock:
            container = self.load()
            now = utc_now_iso()
            bookmark = Bookmark(
                id=str(uuid.uuid4()),
                url=url,
                title=title,
                created_at=now,
                updated_at=now,
                tags=normalize_tags(data.get("tags")),
                **{name: clean_optional(data.get(name)) for name in OPTIONAL_FIELDS},
            )
            container.bookmarks.insert(0, bookmark)
            self.persist(container)
        log.debug("Created bookmark %s (%s)", bookmark.id, bookmark.url)
        return bookmark

    def update(self, bookmark_id: str, changes: Mapping[str, Any]) -> Bookmark:
        """Apply a partial update.

        Keys that are absent (or None) keep the stored value. A blank string
        clears an optional field; blank url/title is rejected.
        """
        data = {k: v for k, v in canonical_fields(changes).items() if v is not None}
        url = _required(data["url"], "URL") if "url" in data else None
        title = _required(data["title"], "Title") if "title" in data else None

        with self._lock:
            container = self.load()
            for i, existing in enumerate(container.bookmarks):
                if existing.id == bookmark_id:
                    break
            else:
                raise BookmarkNotFoundError(bookmark_id)

            if url is not None:
                existing.url = url
            if title is not None:
                existing.title = title
            if "tags" in data:
                existing.tags = normalize_tags(data["tags"])
            for name in OPTIONAL_FIELDS:
                if name in data:
                    setattr(existing, name, clean_optional(data[name]))
            existing.updated_at = max(utc_now_iso(), existing.created_at)

            container.bookmarks[i] = existing
            self.persist(container)
        log.debug("Updated bookmark %s", bookmark_id)
        return existing

    def delete(self, bookmark_id: str) -> bool:
        with self._lock:
            container = self.load()
            remaining = [b for b in container.bookmarks if b.id != bookmark_id]
            if len(remaining) == len(container.bookmarks):
                return False
            container.bookmarks = remaining
            self.persist(container)
        log.debug("Deleted bookmark %s", bookmark_id)
        return True


def _required(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BookmarkValidationError(f"{label} is required")
    return value.strip()


def _haystack(b: Bookmark) -> str:
    return " ".join(
        [
            b.title,
            b.url,
            b.description or "",
            b.notes or "",
            b.site_name or "",
            " ".join(b.tags),
        ]
    ).lower()
