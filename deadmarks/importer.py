from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence, Union

from .log import get_logger
from .model import Bookmark, ImportStats
from .parse_netscape import parse_bookmarks_file
from .store import BookmarkStore

log = get_logger(__name__)


def import_bookmarks(
    store: BookmarkStore,
    bookmarks: Sequence[Bookmark],
    *,
    detect_within_batch: bool = False,
) -> ImportStats:
    """Insert a parsed batch, flagging records whose URL is already stored.

    The URL -> id snapshot is taken once, before the first insert. Unless
    ``detect_within_batch`` is set, two records of the same batch sharing a
    URL are both stored as originals. The batch is all-or-nothing.
    """
    stats = ImportStats()
    with store.transaction():
        existing: Dict[str, int] = {}
        for url in dict.fromkeys(b.url for b in bookmarks):
            found = store.find_by_exact_url(url)
            if found is not None:
                existing[url] = found
        log.debug("Duplicate snapshot: %d of the batch URLs already stored.", len(existing))

        for b in bookmarks:
            original_id = existing.get(b.url)
            b.duplicate = original_id is not None
            b.duplicate_of = original_id
            b.id = store.insert(b)
            if b.duplicate:
                stats.duplicates += 1
            elif detect_within_batch:
                existing[b.url] = b.id
            stats.imported += 1

    log.info("Imported %d bookmarks (%d duplicates of stored URLs).", stats.imported, stats.duplicates)
    return stats


def import_file(
    store: BookmarkStore,
    path: Union[str, Path],
    *,
    detect_within_batch: bool = False,
) -> List[Bookmark]:
    bookmarks = parse_bookmarks_file(path)
    log.info("Parsed %d bookmarks from %s", len(bookmarks), path)
    import_bookmarks(store, bookmarks, detect_within_batch=detect_within_batch)
    return bookmarks
