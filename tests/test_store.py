import json
import threading
from pathlib import Path

import pytest

from helio.errors import BookmarkNotFoundError, BookmarkValidationError
from helio.store import BookmarkStore, parse_container


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_load_initializes_missing_file(store: BookmarkStore, data_file: Path):
    assert not data_file.exists()
    container = store.load()
    assert container.version == 1
    assert container.bookmarks == []
    assert _read(data_file) == {"version": 1, "bookmarks": []}


def test_file_is_pretty_printed(store: BookmarkStore, data_file: Path):
    store.create({"url": "https://a.example", "title": "A"})
    text = data_file.read_text(encoding="utf-8")
    assert text.startswith('{\n  "version": 1,\n  "bookmarks": [')


def test_create_normalizes_fields(store: BookmarkStore):
    b = store.create(
        {
            "url": "  example.com ",
            "title": " Example ",
            "description": "   ",
            "tags": ["a, b", " c", ""],
            "notes": " note ",
            "siteName": "",
            "language": "en",
        }
    )
    assert b.url == "example.com"
    assert b.title == "Example"
    assert b.description is None
    assert b.tags == ["a", "b", "c"]
    assert b.notes == "note"
    assert b.site_name is None
    assert b.image is None
    assert b.language == "en"
    assert b.created_at == b.updated_at


def test_create_without_tags_stores_empty_list(store: BookmarkStore, data_file: Path):
    b = store.create({"url": "example.com", "title": "Example"})
    assert b.tags == []
    stored = _read(data_file)["bookmarks"][0]
    assert stored["tags"] == []
    assert "description" not in stored


@pytest.mark.parametrize(
    "draft",
    [
        {"url": "", "title": "T"},
        {"url": "   ", "title": "T"},
        {"url": "https://x", "title": "  "},
        {"title": "T"},
        {"url": "https://x"},
        {"url": None, "title": "T"},
    ],
)
def test_create_requires_url_and_title(store: BookmarkStore, data_file: Path, draft):
    with pytest.raises(BookmarkValidationError):
        store.create(draft)
    assert not data_file.exists()


def test_create_prepends_newest_first(store: BookmarkStore):
    first = store.create({"url": "https://1", "title": "one"})
    second = store.create({"url": "https://2", "title": "two"})
    assert [b.id for b in store.list()] == [second.id, first.id]


def test_ids_are_unique(store: BookmarkStore):
    ids = [store.create({"url": f"https://{i}", "title": str(i)}).id for i in range(25)]
    assert len(set(ids)) == len(ids)


def test_create_then_get_round_trip(store: BookmarkStore):
    created = store.create({"url": "https://x", "title": "X", "tags": "a,b", "image": "https://x/i.png"})
    assert store.get(created.id) == created


def test_get_unknown_returns_none(store: BookmarkStore):
    store.create({"url": "https://x", "title": "X"})
    assert store.get("nope") is None


def test_update_only_notes_preserves_other_fields(store: BookmarkStore):
    created = store.create({"url": "https://x", "title": "X", "tags": ["a"], "description": "d"})
    updated = store.update(created.id, {"notes": "remember this"})
    assert updated.notes == "remember this"
    assert updated.url == created.url
    assert updated.title == created.title
    assert updated.tags == created.tags
    assert updated.description == "d"
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at
    assert store.get(created.id) == updated


def test_update_advances_updated_at(store: BookmarkStore, monkeypatch):
    import helio.store as store_mod

    stamps = iter(["2026-01-01T00:00:00.000Z", "2026-01-02T00:00:00.000Z"])
    monkeypatch.setattr(store_mod, "utc_now_iso", lambda: next(stamps))
    created = store.create({"url": "https://x", "title": "X"})
    updated = store.update(created.id, {"notes": "n"})
    assert updated.created_at == "2026-01-01T00:00:00.000Z"
    assert updated.updated_at == "2026-01-02T00:00:00.000Z"


def test_update_blank_clears_but_omitted_keeps(store: BookmarkStore, data_file: Path):
    created = store.create({"url": "https://x", "title": "X", "description": "keep me", "notes": "n"})

    kept = store.update(created.id, {"title": "X2"})
    assert kept.description == "keep me"

    cleared = store.update(created.id, {"description": ""})
    assert cleared.description is None
    assert cleared.notes == "n"
    assert "description" not in _read(data_file)["bookmarks"][0]


def test_update_none_is_treated_as_omitted(store: BookmarkStore):
    created = store.create({"url": "https://x", "title": "X", "description": "d"})
    updated = store.update(created.id, {"description": None, "url": None})
    assert updated.description == "d"
    assert updated.url == "https://x"


def test_update_tags_string_is_normalized(store: BookmarkStore):
    created = store.create({"url": "example.com", "title": "Example"})
    updated = store.update(created.id, {"tags": "a, b ,c"})
    assert updated.tags == ["a", "b", "c"]


def test_update_without_tags_keeps_them(store: BookmarkStore):
    created = store.create({"url": "x", "title": "X", "tags": ["a"]})
    assert store.update(created.id, {"title": "Y"}).tags == ["a"]


def test_update_trims_url_and_title(store: BookmarkStore):
    created = store.create({"url": "x", "title": "X"})
    updated = store.update(created.id, {"url": "  https://y ", "title": " Y "})
    assert (updated.url, updated.title) == ("https://y", "Y")


def test_update_rejects_blank_url_or_title(store: BookmarkStore):
    created = store.create({"url": "x", "title": "X"})
    with pytest.raises(BookmarkValidationError):
        store.update(created.id, {"title": "   "})
    with pytest.raises(BookmarkValidationError):
        store.update(created.id, {"url": ""})
    assert store.get(created.id) == created


def test_update_accepts_snake_and_camel_case(store: BookmarkStore):
    created = store.create({"url": "x", "title": "X"})
    assert store.update(created.id, {"siteName": "S"}).site_name == "S"
    assert store.update(created.id, {"site_name": "T"}).site_name == "T"


def test_update_ignores_immutable_and_unknown_keys(store: BookmarkStore):
    created = store.create({"url": "x", "title": "X"})
    updated = store.update(created.id, {"id": "other", "createdAt": "1999", "bogus": 1})
    assert updated.id == created.id
    assert updated.created_at == created.created_at


def test_update_unknown_id_raises_not_found(store: BookmarkStore):
    store.create({"url": "x", "title": "X"})
    with pytest.raises(BookmarkNotFoundError) as exc:
        store.update("missing", {"notes": "n"})
    assert exc.value.bookmark_id == "missing"


def test_update_keeps_position(store: BookmarkStore):
    a = store.create({"url": "a", "title": "A"})
    b = store.create({"url": "b", "title": "B"})
    store.update(a.id, {"title": "A2"})
    assert [x.id for x in store.list()] == [b.id, a.id]


def test_delete_is_terminal(store: BookmarkStore):
    created = store.create({"url": "example.com", "title": "Example"})
    assert store.delete(created.id) is True
    assert store.get(created.id) is None
    assert store.delete(created.id) is False


def test_delete_missing_does_not_write(store: BookmarkStore, data_file: Path):
    store.create({"url": "x", "title": "X"})
    before = data_file.stat().st_mtime_ns
    text = data_file.read_text(encoding="utf-8")
    assert store.delete("missing") is False
    assert data_file.read_text(encoding="utf-8") == text
    assert data_file.stat().st_mtime_ns == before


def _seed(store: BookmarkStore):
    py = store.create(
        {
            "url": "https://docs.python.org",
            "title": "Python Docs",
            "description": "Reference manual",
            "tags": ["lang", "reference"],
        }
    )
    rust = store.create(
        {"url": "https://rust-lang.org", "title": "Rust", "notes": "Try the Book", "siteName": "Rust Foundation"}
    )
    news = store.create({"url": "https://news.ycombinator.com", "title": "Hacker News", "tags": "news, tech"})
    return py, rust, news


@pytest.mark.parametrize(
    "query, expected",
    [
        ("python docs", ["py"]),
        ("DOCS.PYTHON", ["py"]),
        ("manual", ["py"]),
        ("the book", ["rust"]),
        ("foundation", ["rust"]),
        ("tech", ["news"]),
        ("lang reference", ["py"]),
        ("https://", ["news", "rust", "py"]),
        ("nothing-like-this", []),
    ],
)
def test_search_substring(store: BookmarkStore, query, expected):
    py, rust, news = _seed(store)
    names = {py.id: "py", rust.id: "rust", news.id: "news"}
    assert [names[b.id] for b in store.search(query)] == expected


def test_search_blank_returns_everything(store: BookmarkStore):
    _seed(store)
    everything = store.list()
    assert store.search("") == everything
    assert store.search("   \t") == everything


def test_search_has_no_tokenization(store: BookmarkStore):
    _seed(store)
    # Both words exist, but not as one contiguous substring.
    assert store.search("docs python") == []


def test_search_does_not_look_at_image_or_language(store: BookmarkStore):
    store.create({"url": "https://x", "title": "X", "image": "https://cdn/zebra.png", "language": "zulu"})
    assert store.search("zebra") == []
    assert store.search("zulu") == []


@pytest.mark.parametrize(
    "payload",
    [
        '{"version": 2, "bookmarks": []}',
        '{"version": 1}',
        '{"version": 1, "bookmarks": {}}',
        '[1, 2, 3]',
        '{"version": 1, "bookmarks": ["nope"]}',
        '{"version": 1, "bookmarks": [{"id": 1, "url": "u", "title": "t"}]}',
        "{not json",
    ],
)
def test_corrupt_store_reads_as_empty_and_is_left_alone(store: BookmarkStore, data_file: Path, payload):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(payload, encoding="utf-8")
    assert store.list() == []
    assert data_file.read_text(encoding="utf-8") == payload


def test_corrupt_store_with_torn_utf8_reads_as_empty(store: BookmarkStore, data_file: Path):
    data_file.parent.mkdir(parents=True)
    whole = json.dumps({"version": 1, "bookmarks": [{"title": "Café ééé"}]}, ensure_ascii=False).encode("utf-8")
    # Cut one byte into the first two-byte "é".
    torn = whole[: whole.index("é".encode("utf-8")) + 1]
    data_file.write_bytes(torn)
    assert store.list() == []
    assert data_file.read_bytes() == torn


def test_corrupt_store_with_duplicate_ids_reads_as_empty(store: BookmarkStore, data_file: Path):
    entry = {"id": "same", "url": "https://x", "title": "X"}
    payload = json.dumps({"version": 1, "bookmarks": [entry, dict(entry, title="Y")]})
    data_file.parent.mkdir(parents=True)
    data_file.write_text(payload, encoding="utf-8")
    assert store.list() == []
    assert store.delete("same") is False
    assert data_file.read_text(encoding="utf-8") == payload


def test_parse_container_rejects_bad_utf8_and_duplicates():
    assert "UTF-8" in (parse_container(b'{"version": 1, "bookmarks": ["\xc3').reason or "")
    dup = '{"version": 1, "bookmarks": [{"id": "a", "url": "u", "title": "t"}, {"id": "a", "url": "v", "title": "w"}]}'
    assert "duplicate id" in (parse_container(dup).reason or "")
    assert parse_container(b'{"version": 1, "bookmarks": []}').ok


def test_parse_container_reports_reason():
    bad = parse_container('{"version": 3, "bookmarks": []}')
    assert bad.ok is False
    assert "version" in (bad.reason or "")
    assert bad.container.bookmarks == []

    good = parse_container('{"version": 1, "bookmarks": []}')
    assert good.ok is True
    assert good.reason is None


def test_parse_container_reads_records():
    text = json.dumps(
        {
            "version": 1,
            "bookmarks": [
                {
                    "id": "abc",
                    "url": "https://x",
                    "title": "X",
                    "tags": ["a"],
                    "siteName": "S",
                    "createdAt": "2026-01-01T00:00:00.000Z",
                    "updatedAt": "2026-01-01T00:00:00.000Z",
                }
            ],
        }
    )
    parsed = parse_container(text)
    assert parsed.ok
    [b] = parsed.container.bookmarks
    assert (b.id, b.site_name, b.tags) == ("abc", "S", ["a"])


def test_other_io_errors_propagate(tmp_path: Path):
    # A directory where the file should be: reading it is not "missing".
    path = tmp_path / "bookmarks.json"
    path.mkdir()
    with pytest.raises(OSError):
        BookmarkStore(path).load()


def test_concurrent_creates_on_one_store_are_not_lost(store: BookmarkStore):
    def _worker(n: int) -> None:
        for i in range(5):
            store.create({"url": f"https://{n}/{i}", "title": f"{n}-{i}"})

    threads = [threading.Thread(target=_worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store.list()) == 20
