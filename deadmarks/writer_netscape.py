from __future__ import annotations

import html
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .errors import OutputError
from .log import get_logger
from .model import Bookmark, StatusFilter
from .store import BookmarkStore

log = get_logger(__name__)

_TITLES = {
    StatusFilter.VALID: "Bookmarks",
    StatusFilter.ALL: "Bookmarks",
    StatusFilter.DEAD: "Dead Links",
    StatusFilter.REDIRECT: "Redirecting Bookmarks",
}

EXPORT_ALL_FILES = {
    StatusFilter.VALID: "bookmarks.html",
    StatusFilter.DEAD: "dead-links.html",
    StatusFilter.REDIRECT: "redirects.html",
}


def group_by_folder(bookmarks: Iterable[Bookmark]) -> Dict[str, List[Bookmark]]:
    # dict keeps first-seen order, so folders come out in read order.
    groups: Dict[str, List[Bookmark]] = {}
    for b in bookmarks:
        groups.setdefault(b.folder or "", []).append(b)
    return groups


def render_bookmarks_html(
    bookmarks: Iterable[Bookmark],
    *,
    title: str = "Bookmarks",
    annotate_redirects: bool = False,
) -> str:
    """Render a Netscape bookmark document.

    Links with an empty folder label are written directly under the root list;
    every other folder gets its own H3 heading and nested list. With
    ``annotate_redirects`` each link is followed by its resolved target.
    """
    lines: List[str] = []
    lines.append("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    lines.append("<!-- This is an automatically generated file.")
    lines.append("     It will be read and overwritten.")
    lines.append("     DO NOT EDIT! -->")
    lines.append('<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">')
    lines.append(f"<TITLE>{html.escape(title)}</TITLE>")
    lines.append(f"<H1>{html.escape(title)}</H1>")
    lines.append("<DL><p>")

    for folder, items in group_by_folder(bookmarks).items():
        if folder:
            lines.append(f"    <DT><H3>{html.escape(folder)}</H3>")
            lines.append("    <DL><p>")
        for b in items:
            lines.append(f"        {_link_line(b, annotate_redirects)}")
        if folder:
            lines.append("    </DL><p>")

    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"


def _link_line(b: Bookmark, annotate_redirects: bool) -> str:
    line = f'<DT><A HREF="{html.escape(b.url, quote=True)}">{html.escape(b.title)}</A>'
    if annotate_redirects:
        line += f" (Redirects to: {html.escape(b.redirect_url)})"
    return line


def write_bookmarks_html(
    out_path: Path,
    bookmarks: Iterable[Bookmark],
    *,
    title: str = "Bookmarks",
    annotate_redirects: bool = False,
) -> None:
    text = render_bookmarks_html(bookmarks, title=title, annotate_redirects=annotate_redirects)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OutputError(f"cannot write {out_path}: {e}") from e


def export_bookmarks(
    store: BookmarkStore,
    out_path: Union[str, Path],
    status_filter: StatusFilter = StatusFilter.VALID,
) -> int:
    status_filter = StatusFilter(status_filter)
    out_path = Path(out_path)
    rows = store.list_filtered(status_filter)
    write_bookmarks_html(
        out_path,
        rows,
        title=_TITLES[status_filter],
        annotate_redirects=status_filter is StatusFilter.REDIRECT,
    )
    log.info("Exported %d %s bookmarks to %s", len(rows), status_filter.value, out_path)
    return len(rows)


def export_all(store: BookmarkStore, out_dir: Union[str, Path]) -> Dict[str, int]:
    """Write valid, dead and redirecting bookmarks to their own files in ``out_dir``."""
    out_dir = Path(out_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"cannot create export directory {out_dir}: {e}") from e
    counts: Dict[str, int] = {}
    for status_filter, name in EXPORT_ALL_FILES.items():
        counts[name] = export_bookmarks(store, out_dir / name, status_filter)
    return counts
