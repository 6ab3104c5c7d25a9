import pytest

from helio.model import Bookmark, canonical_fields, clean_optional, normalize_tags, utc_now_iso


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, []),
        ("", []),
        ("a, b ,c", ["a", "b", "c"]),
        (["a,b", " c ", "", " , "], ["a", "b", "c"]),
        (("python", "web dev"), ["python", "web dev"]),
        (["x,,y", "z,"], ["x", "y", "z"]),
    ],
)
def test_normalize_tags(value, expected):
    assert normalize_tags(value) == expected


def test_normalize_tags_is_idempotent():
    once = normalize_tags([" news, tech ", "AI", "", "a,b"])
    assert normalize_tags(once) == once


def test_normalize_tags_keeps_order_and_duplicates():
    assert normalize_tags("b, a, b") == ["b", "a", "b"]


def test_clean_optional_blank_becomes_none():
    assert clean_optional(None) is None
    assert clean_optional("") is None
    assert clean_optional("   \t") is None
    assert clean_optional("  hi ") == "hi"


def test_to_dict_uses_file_keys_and_omits_absent_fields():
    b = Bookmark(
        id="1",
        url="https://example.com",
        title="Example",
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-01T00:00:00.000Z",
        site_name="Example Site",
    )
    d = b.to_dict()
    assert d == {
        "id": "1",
        "url": "https://example.com",
        "title": "Example",
        "tags": [],
        "siteName": "Example Site",
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
    }
    assert "description" not in d
    assert "notes" not in d


def test_from_dict_reads_what_to_dict_writes():
    b = Bookmark(
        id="1",
        url="u",
        title="t",
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-02T00:00:00.000Z",
        description="d",
        tags=["a"],
        notes="n",
        site_name="s",
        image="i",
        language="en",
    )
    assert Bookmark.from_dict(b.to_dict()) == b


def test_canonical_fields_accepts_json_keys():
    assert canonical_fields({"siteName": "x", "site_name": "y", "title": "t"}) in (
        {"site_name": "x", "title": "t"},
        {"site_name": "y", "title": "t"},
    )
    assert canonical_fields({"siteName": "x"}) == {"site_name": "x"}


def test_utc_now_iso_format():
    ts = utc_now_iso()
    assert ts.endswith("Z")
    assert len(ts) == len("2026-01-01T00:00:00.000Z")
