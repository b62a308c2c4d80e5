from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from . import __version__
from .config import Settings, load_settings
from .errors import DeadmarksError
from .importer import import_file
from .log import LogConfig, get_logger, setup_logging
from .model import Bookmark, StatusFilter
from .store import BookmarkStore
from .validate import validate_bookmarks
from .writer_netscape import export_all, export_bookmarks

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="deadmarks",
        description="Import a browser bookmark export, check links, export clean subsets.",
    )
    p.add_argument("-V", "--version", action="version", version=f"deadmarks {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--db", default=None, help="SQLite database path (overrides env/config).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    parse = sub.add_parser("parse", help="Import a Netscape bookmarks HTML file into the database.")
    parse.add_argument("--file", required=True, help="Path to the bookmarks HTML export.")

    search = sub.add_parser("search", help="Find bookmarks whose title or URL contains a substring.")
    search.add_argument("--query", required=True, help="Substring to look for.")

    sub.add_parser("validate", help="Check every stored URL and record dead/redirecting links.")

    export = sub.add_parser("export", help="Export stored bookmarks as Netscape bookmarks HTML.")
    target = export.add_mutually_exclusive_group(required=True)
    target.add_argument("--output", help="Output HTML path for a single export.")
    target.add_argument(
        "--output-dir",
        help="Directory for bookmarks.html, dead-links.html and redirects.html.",
    )
    export.add_argument(
        "--status",
        choices=[f.value for f in StatusFilter],
        default=StatusFilter.VALID.value,
        help="Which bookmarks to export with --output (default: valid).",
    )

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.db:
        cfg.db_path = args.db
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    commands = {
        "parse": _cmd_parse,
        "search": _cmd_search,
        "validate": _cmd_validate,
        "export": _cmd_export,
    }
    try:
        with BookmarkStore(cfg.db_path) as store:
            return commands[args.cmd](args, cfg, store)
    except DeadmarksError as e:
        log.error("%s failed: %s", args.cmd, e)
        return 2


def _cmd_parse(args, cfg: Settings, store: BookmarkStore) -> int:
    src = Path(args.file)
    if not src.exists():
        log.error("Input file not found: %s", src)
        return 2
    store.ensure_schema()
    bookmarks = import_file(store, src, detect_within_batch=cfg.detect_duplicates_within_batch)
    print(f"Successfully imported {len(bookmarks)} bookmarks")
    return 0


def _cmd_search(args, cfg: Settings, store: BookmarkStore) -> int:
    store.ensure_schema()
    found = store.search(args.query)
    if not found:
        print("No bookmarks found matching your query")
        return 0
    for b in found:
        print(_format_search_hit(b))
    return 0


def _format_search_hit(b: Bookmark) -> str:
    lines = [f"\nTitle: {b.title}", f"URL: {b.url}", f"Folder: {b.folder}"]
    if b.dead:
        lines.append("Status: Dead link")
    if b.redirect:
        lines.append("Status: Redirects to another location")
    return "\n".join(lines)


def _cmd_validate(args, cfg: Settings, store: BookmarkStore) -> int:
    store.ensure_schema()
    print("Validating bookmarks...")
    validate_bookmarks(
        store,
        jobs=cfg.validate_jobs,
        timeout_s=cfg.validate_timeout_s,
        user_agent=cfg.user_agent,
        report_path=cfg.report_path,
    )
    print("Validation complete")
    return 0


def _cmd_export(args, cfg: Settings, store: BookmarkStore) -> int:
    store.ensure_schema()
    if args.output_dir:
        counts = export_all(store, args.output_dir)
        for name, n in counts.items():
            print(f"Exported {n} bookmarks to {Path(args.output_dir) / name}")
        return 0
    out = Path(args.output)
    export_bookmarks(store, out, StatusFilter(args.status))
    print(f"Successfully exported {args.status} bookmarks to {out}")
    return 0
