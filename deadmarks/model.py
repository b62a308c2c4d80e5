from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class Bookmark:
    title: str
    url: str
    folder: str = ""
    id: Optional[int] = None

    dead: bool = False
    redirect: bool = False
    redirect_url: str = ""

    duplicate: bool = False
    duplicate_of: Optional[int] = None


@dataclass
class ProbeResult:
    id: Optional[int]
    url: str
    dead: bool = False
    redirect: bool = False
    redirect_url: str = ""
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class ValidationStats:
    total: int = 0
    valid: int = 0
    dead: int = 0
    redirects: int = 0

    def add(self, r: ProbeResult) -> None:
        # Dead wins over redirect so every result lands in exactly one bucket.
        self.total += 1
        if r.dead:
            self.dead += 1
        elif r.redirect:
            self.redirects += 1
        else:
            self.valid += 1


@dataclass
class ImportStats:
    imported: int = 0
    duplicates: int = 0


class StatusFilter(str, Enum):
    VALID = "valid"
    DEAD = "dead"
    REDIRECT = "redirect"
    ALL = "all"
