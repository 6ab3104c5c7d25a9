import sys
from pathlib import Path

import pytest

# Allow `import helio` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _block_network_fetches(monkeypatch):
    """Tests must never fetch real web pages."""

    def _blocked(*_args, **_kwargs):
        raise AssertionError("metadata fetch attempted during tests")

    import helio.api as api

    monkeypatch.setattr(api, "fetch_metadata", _blocked)


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "bookmarks.json"


@pytest.fixture
def store(data_file: Path):
    from helio.store import BookmarkStore

    return BookmarkStore(data_file)
