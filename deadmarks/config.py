from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from . import __version__


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Storage / output
    db_path: str = "data/bookmarks.db"
    output_dir: str = "output"
    report_name: str = "validation_report.txt"

    # Validation
    validate_jobs: int = 10
    validate_timeout_s: int = 10
    user_agent: str = f"deadmarks/{__version__}"

    # Import
    detect_duplicates_within_batch: bool = False

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @property
    def report_path(self) -> Path:
        return Path(self.output_dir) / self.report_name

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.db_path = _env_str("DEADMARKS_DB_PATH", s.db_path)
        s.output_dir = _env_str("DEADMARKS_OUTPUT_DIR", s.output_dir)
        s.report_name = _env_str("DEADMARKS_REPORT_NAME", s.report_name)

        s.validate_jobs = _env_int("DEADMARKS_VALIDATE_JOBS", s.validate_jobs)
        s.validate_timeout_s = _env_int("DEADMARKS_VALIDATE_TIMEOUT_S", s.validate_timeout_s)
        s.user_agent = _env_str("DEADMARKS_USER_AGENT", s.user_agent)

        s.detect_duplicates_within_batch = _env_bool(
            "DEADMARKS_DETECT_DUPLICATES_WITHIN_BATCH",
            s.detect_duplicates_within_batch,
        )

        s.log_level = _env_str("DEADMARKS_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("DEADMARKS_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k) and k != "report_path":
                setattr(s, k, v)
        return s


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
