from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

# Attribute name -> key in the JSON file / API payloads.
JSON_KEYS: Dict[str, str] = {
    "id": "id",
    "url": "url",
    "title": "title",
    "description": "description",
    "tags": "tags",
    "notes": "notes",
    "site_name": "siteName",
    "image": "image",
    "language": "language",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}
_ATTR_BY_KEY: Dict[str, str] = {v: k for k, v in JSON_KEYS.items()}

OPTIONAL_FIELDS = ("description", "notes", "site_name", "image", "language")

# Fields a caller may supply when creating or updating a bookmark.
INPUT_FIELDS = ("url", "title", "tags") + OPTIONAL_FIELDS

TagsInput = Union[None, str, Iterable[str]]


@dataclass
class Bookmark:
    id: str
    url: str
    title: str
    created_at: str
    updated_at: str
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    site_name: Optional[str] = None
    image: Optional[str] = None
    language: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the file-format keys; absent optional fields are omitted."""
        out: Dict[str, Any] = {"id": self.id, "url": self.url, "title": self.title}
        if self.description is not None:
            out["description"] = self.description
        out["tags"] = list(self.tags)
        for attr in ("notes", "site_name", "image", "language"):
            value = getattr(self, attr)
            if value is not None:
                out[JSON_KEYS[attr]] = value
        out["createdAt"] = self.created_at
        out["updatedAt"] = self.updated_at
        return out

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Bookmark":
        tags = data.get("tags")
        return Bookmark(
            id=str(data["id"]),
            url=str(data["url"]),
            title=str(data["title"]),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or data.get("createdAt") or ""),
            description=_opt_str(data.get("description")),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            notes=_opt_str(data.get("notes")),
            site_name=_opt_str(data.get("siteName")),
            image=_opt_str(data.get("image")),
            language=_opt_str(data.get("language")),
        )


def normalize_tags(value: TagsInput) -> List[str]:
    """Split every element on commas, trim the pieces and drop empty ones.

    Accepts a single string ("a, b ,c") or any iterable of strings
    (["a,b", " c "]). Applying it to its own output returns the same list.
    """
    if value is None:
        return []
    items = [value] if isinstance(value, str) else list(value)
    out: List[str] = []
    for item in items:
        for piece in str(item).split(","):
            piece = piece.strip()
            if piece:
                out.append(piece)
    return out


def clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def canonical_field(key: str) -> str:
    """Map a JSON key (siteName) or attribute name (site_name) to the attribute name."""
    return _ATTR_BY_KEY.get(key, key)


def canonical_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {canonical_field(k): v for k, v in data.items()}


def utc_now_iso() -> str:
    # Millisecond precision with a Z suffix; sorts lexicographically.
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
