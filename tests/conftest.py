import sys
from pathlib import Path

import httpx
import pytest

# Allow `import deadmarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from deadmarks.store import BookmarkStore  # noqa: E402


@pytest.fixture(autouse=True)
def _block_real_network(monkeypatch):
    """Tests must never reach the network; use httpx.MockTransport instead."""

    def _blocked(*_args, **_kwargs):
        raise AssertionError("Real HTTP request attempted during tests")

    monkeypatch.setattr(httpx.HTTPTransport, "handle_request", _blocked)
    # Proxy mounts from the environment would bypass an injected MockTransport.
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store(tmp_path):
    with BookmarkStore(tmp_path / "bookmarks.db") as s:
        s.ensure_schema()
        yield s


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"
