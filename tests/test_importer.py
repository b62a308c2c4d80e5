from pathlib import Path

import pytest

from deadmarks.errors import InputError, StoreError
from deadmarks.importer import import_bookmarks, import_file
from deadmarks.model import Bookmark, StatusFilter


def _rows(store):
    return sorted(store.list_filtered(StatusFilter.ALL), key=lambda b: b.id)


def test_later_import_marks_duplicate_of_first_id(store):
    import_bookmarks(store, [Bookmark(title="T1", url="https://a.example/")])
    stats = import_bookmarks(store, [Bookmark(title="T2", url="https://a.example/")])

    first, second = _rows(store)
    assert stats.imported == 1
    assert stats.duplicates == 1
    assert first.duplicate is False
    assert first.duplicate_of is None
    assert second.duplicate is True
    assert second.duplicate_of == first.id
    assert second.title == "T2"


def test_same_url_within_one_batch_is_not_flagged_by_default(store):
    stats = import_bookmarks(
        store,
        [
            Bookmark(title="One", url="https://same.example/"),
            Bookmark(title="Two", url="https://same.example/"),
        ],
    )
    rows = _rows(store)
    assert len(rows) == 2
    assert stats.duplicates == 0
    assert not any(b.duplicate for b in rows)


def test_within_batch_detection_can_be_enabled(store):
    stats = import_bookmarks(
        store,
        [
            Bookmark(title="One", url="https://same.example/"),
            Bookmark(title="Two", url="https://same.example/"),
            Bookmark(title="Three", url="https://same.example/"),
        ],
        detect_within_batch=True,
    )
    one, two, three = _rows(store)
    assert stats.duplicates == 2
    assert one.duplicate is False
    assert two.duplicate_of == one.id
    assert three.duplicate_of == one.id


def test_existing_duplicate_points_at_oldest_row(store):
    import_bookmarks(store, [Bookmark(title="A", url="https://x.example/")])
    import_bookmarks(store, [Bookmark(title="B", url="https://x.example/")])
    import_bookmarks(store, [Bookmark(title="C", url="https://x.example/")])
    a, b, c = _rows(store)
    assert b.duplicate_of == a.id
    assert c.duplicate_of == a.id


def test_snapshot_queries_once_per_distinct_url(store, monkeypatch):
    seen = []
    real = store.find_by_exact_url

    def _spy(url):
        seen.append(url)
        return real(url)

    monkeypatch.setattr(store, "find_by_exact_url", _spy)
    import_bookmarks(
        store,
        [
            Bookmark(title="1", url="https://a.example/"),
            Bookmark(title="2", url="https://b.example/"),
            Bookmark(title="3", url="https://a.example/"),
        ],
    )
    assert seen == ["https://a.example/", "https://b.example/"]


def test_failed_insert_rolls_back_whole_batch(store, monkeypatch):
    import_bookmarks(store, [Bookmark(title="Before", url="https://before.example/")])

    real_insert = store.insert
    calls = {"n": 0}

    def _flaky(b):
        calls["n"] += 1
        if calls["n"] == 3:
            raise StoreError("disk full")
        return real_insert(b)

    monkeypatch.setattr(store, "insert", _flaky)
    with pytest.raises(StoreError):
        import_bookmarks(
            store,
            [Bookmark(title=str(i), url=f"https://{i}.example/") for i in range(5)],
        )
    assert [b.title for b in _rows(store)] == ["Before"]


def test_import_file_parses_and_stores(store, fixtures_dir: Path):
    bms = import_file(store, fixtures_dir / "sample_bookmarks.html")
    assert len(bms) == 5
    assert store.count() == 5
    assert all(b.id is not None for b in bms)


def test_import_file_missing_raises_input_error(store, tmp_path: Path):
    with pytest.raises(InputError):
        import_file(store, tmp_path / "missing.html")
    assert store.count() == 0
