from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from bs4 import BeautifulSoup  # type: ignore
from bs4.builder import ParserRejectedMarkup  # type: ignore

from .errors import InputError
from .log import get_logger
from .model import Bookmark

log = get_logger(__name__)


def parse_bookmarks_file(path: Union[str, Path]) -> List[Bookmark]:
    path = Path(path)
    try:
        with path.open("rb") as fp:
            return parse_bookmarks(fp)
    except OSError as e:
        raise InputError(f"cannot read bookmarks file {path}: {e}") from e


def parse_bookmarks(fp: BinaryIO) -> List[Bookmark]:
    """Parse a Netscape bookmark export into flat records.

    Folder attribution is the text of the most recent <H3> in document
    order. There is no folder stack: links that follow a nested <DL> after it
    closes keep the nested folder's label.
    """
    try:
        data = fp.read()
    except OSError as e:
        raise InputError(f"cannot read bookmarks stream: {e}") from e
    try:
        soup = BeautifulSoup(data, "lxml")
    except (ParserRejectedMarkup, UnicodeDecodeError) as e:
        raise InputError(f"cannot decode bookmarks document: {e}") from e

    bookmarks: List[Bookmark] = []
    current_folder = ""
    skipped = 0
    # find_all walks descendants depth-first, i.e. document order.
    for el in soup.find_all(["h3", "a"]):
        if el.name == "h3":
            text = _first_text(el)
            if text is not None:
                current_folder = text
            continue

        url = el.get("href") or ""
        title = _first_text(el) or ""
        if not url or not title:
            skipped += 1
            continue
        bookmarks.append(Bookmark(title=title, url=url, folder=current_folder))

    log.debug("Parsed %d bookmarks (%d links skipped without url/title).", len(bookmarks), skipped)
    return bookmarks


def _first_text(el) -> Optional[str]:
    for s in el.strings:
        return s.strip()
    return None
