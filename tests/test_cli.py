from pathlib import Path

from deadmarks.cli import main
from deadmarks.model import Bookmark, StatusFilter
from deadmarks.store import BookmarkStore


def _args(db: Path, *rest: str):
    return ["--db", str(db), "--no-color", *rest]


def test_parse_then_search(tmp_path: Path, fixtures_dir: Path, capsys):
    db = tmp_path / "data" / "bookmarks.db"

    assert main(_args(db, "parse", "--file", str(fixtures_dir / "sample_bookmarks.html"))) == 0
    assert "Successfully imported 5 bookmarks" in capsys.readouterr().out

    assert main(_args(db, "search", "--query", "python")) == 0
    out = capsys.readouterr().out
    assert "Title: Python docs" in out
    assert "URL: https://docs.python.org/3/" in out
    assert "Folder: Reading" in out

    assert main(_args(db, "search", "--query", "zzz-nothing")) == 0
    assert "No bookmarks found matching your query" in capsys.readouterr().out


def test_reimport_flags_duplicates(tmp_path: Path, fixtures_dir: Path):
    db = tmp_path / "bookmarks.db"
    sample = str(fixtures_dir / "sample_bookmarks.html")
    assert main(_args(db, "parse", "--file", sample)) == 0
    assert main(_args(db, "parse", "--file", sample)) == 0
    with BookmarkStore(db) as s:
        rows = s.list_filtered(StatusFilter.ALL)
    assert len(rows) == 10
    assert sum(1 for b in rows if b.duplicate) == 5


def test_parse_missing_file_returns_2(tmp_path: Path):
    assert main(_args(tmp_path / "b.db", "parse", "--file", str(tmp_path / "nope.html"))) == 2


def test_search_shows_status_lines(tmp_path: Path, capsys):
    db = tmp_path / "b.db"
    with BookmarkStore(db) as s:
        s.ensure_schema()
        bid = s.insert(Bookmark(title="Gone page", url="https://gone.example/"))
        s.update_status(bid, dead=True, redirect=False, redirect_url="")
    assert main(_args(db, "search", "--query", "gone")) == 0
    assert "Status: Dead link" in capsys.readouterr().out


def test_export_single_and_all(tmp_path: Path, fixtures_dir: Path):
    db = tmp_path / "b.db"
    assert main(_args(db, "parse", "--file", str(fixtures_dir / "sample_bookmarks.html"))) == 0

    out = tmp_path / "out" / "valid.html"
    assert main(_args(db, "export", "--output", str(out))) == 0
    assert "https://github.com/" in out.read_text(encoding="utf-8")

    dead = tmp_path / "dead.html"
    assert main(_args(db, "export", "--output", str(dead), "--status", "dead")) == 0
    assert "<TITLE>Dead Links</TITLE>" in dead.read_text(encoding="utf-8")

    out_dir = tmp_path / "all"
    assert main(_args(db, "export", "--output-dir", str(out_dir))) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["bookmarks.html", "dead-links.html", "redirects.html"]


def test_validate_empty_db_writes_report(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DEADMARKS_OUTPUT_DIR", str(tmp_path / "reports"))
    db = tmp_path / "b.db"
    assert main(_args(db, "validate")) == 0
    report = tmp_path / "reports" / "validation_report.txt"
    assert "Total URLs processed: 0" in report.read_text(encoding="utf-8")


def test_store_error_returns_2(tmp_path: Path):
    # A directory where the database file should be cannot be opened.
    db = tmp_path / "is-a-dir"
    db.mkdir()
    assert main(_args(db, "search", "--query", "x")) == 2


def test_unwritable_export_returns_2(tmp_path: Path):
    db = tmp_path / "b.db"
    taken = tmp_path / "taken"
    taken.mkdir()
    assert main(_args(db, "export", "--output", str(taken))) == 2
