from __future__ import annotations

import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import httpx

from . import __version__
from .errors import OutputError, ValidationScanError
from .log import get_logger
from .model import ProbeResult, ValidationStats
from .store import BookmarkStore

log = get_logger(__name__)

DEFAULT_JOBS = 10
DEFAULT_TIMEOUT_S = 10
DEFAULT_REPORT_PATH = Path("output") / "validation_report.txt"

_REPORT_TEMPLATE = (
    "Bookmark Validation Report\n"
    "========================\n\n"
    "Total URLs processed: {total}\n"
    "Valid URLs: {valid}\n"
    "Dead links: {dead}\n"
    "Redirects: {redirects}\n"
)

_DONE = object()


@dataclass
class _Failure:
    error: Exception


# Deadline of the probe running on this thread, shared by every redirect hop.
_deadline = threading.local()


def _start_hop(request: httpx.Request) -> None:
    deadline = getattr(_deadline, "at", None)
    if deadline is None:
        return
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise httpx.TimeoutException("probe deadline exceeded", request=request)
    # Each network step of this hop may use at most what is left of the budget.
    request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()


def _end_hop(response: httpx.Response) -> None:
    deadline = getattr(_deadline, "at", None)
    if deadline is not None and time.monotonic() > deadline:
        raise httpx.TimeoutException("probe deadline exceeded", request=response.request)


def make_client(
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    user_agent: str = f"deadmarks/{__version__}",
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    return httpx.Client(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout_s, connect=timeout_s),
        headers={"User-Agent": user_agent},
        transport=transport,
        event_hooks={"request": [_start_hop], "response": [_end_hop]},
    )


def probe_url(
    client: httpx.Client,
    bookmark_id: Optional[int],
    url: str,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> ProbeResult:
    """GET one URL and classify it. Network failures are results, not errors.

    ``timeout_s`` bounds the whole exchange, redirects included, when the
    client comes from ``make_client``.
    """
    r = ProbeResult(id=bookmark_id, url=url)
    _deadline.at = time.monotonic() + timeout_s
    try:
        # Headers are enough to classify; the body is never read.
        with client.stream("GET", url) as resp:
            r.status = resp.status_code
            if resp.history:
                r.redirect = True
                r.redirect_url = str(resp.url)
            if resp.status_code >= 400:
                r.dead = True
    # Hostnames that fail IDNA encoding (empty or oversized labels, bad
    # punycode) raise UnicodeError subclasses before any DNS lookup.
    except (httpx.HTTPError, httpx.InvalidURL, UnicodeError, ValueError) as e:
        r.dead = True
        r.redirect = False
        r.redirect_url = ""
        r.status = None
        r.error = f"{type(e).__name__}: {e}"
        log.debug("Probe failed for %s: %s", url, r.error)
    finally:
        _deadline.at = None
    return r


def validate_bookmarks(
    store: BookmarkStore,
    *,
    jobs: int = DEFAULT_JOBS,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    user_agent: str = f"deadmarks/{__version__}",
    report_path: Optional[Union[str, Path]] = DEFAULT_REPORT_PATH,
    client: Optional[httpx.Client] = None,
) -> ValidationStats:
    """Probe every stored URL and apply the outcome as one unit.

    All probes finish before the store is touched; the updates then run in a
    single transaction, so a run either lands completely or not at all. The
    report is written only after the commit.
    """
    own_client = client is None
    if client is None:
        client = make_client(timeout_s=timeout_s, user_agent=user_agent)
    try:
        results = collect_results(store, client, jobs=jobs, timeout_s=timeout_s)
    finally:
        if own_client:
            client.close()

    stats = ValidationStats()
    with store.transaction():
        for r in results:
            store.update_status(r.id, dead=r.dead, redirect=r.redirect, redirect_url=r.redirect_url)
            stats.add(r)

    log.info(
        "Validation complete: %d URLs, %d valid, %d dead, %d redirects.",
        stats.total,
        stats.valid,
        stats.dead,
        stats.redirects,
    )
    if report_path is not None:
        write_report(stats, Path(report_path))
    return stats


def collect_results(
    store: BookmarkStore,
    client: httpx.Client,
    *,
    jobs: int = DEFAULT_JOBS,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> List[ProbeResult]:
    """Run probes for every stored row with at most ``jobs`` in flight.

    A producer thread reads rows and blocks on a free slot before launching
    each probe. Probes push one result each onto a queue, which this thread
    drains. The end-of-stream marker is queued only after every launched
    probe has returned. The first failure stops further launches and is
    raised once the queue is drained.
    """
    jobs = max(1, int(jobs))
    results: "queue.Queue[object]" = queue.Queue()
    slots = threading.BoundedSemaphore(jobs)
    stop = threading.Event()

    def _probe(bookmark_id: int, url: str) -> None:
        try:
            results.put(probe_url(client, bookmark_id, url, timeout_s=timeout_s))
        except Exception as e:
            results.put(_Failure(e))
        finally:
            slots.release()

    def _produce() -> None:
        launched = 0
        try:
            # Leaving the executor block joins every submitted probe.
            with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="deadmarks-probe") as ex:
                for row in store.iter_urls():
                    if stop.is_set():
                        break
                    try:
                        bookmark_id, url = _scan_row(row)
                    except ValidationScanError as e:
                        results.put(_Failure(e))
                        continue
                    slots.acquire()
                    ex.submit(_probe, bookmark_id, url)
                    launched += 1
        except Exception as e:
            results.put(_Failure(e))
        finally:
            log.debug("Producer finished after launching %d probes.", launched)
            results.put(_DONE)

    producer = threading.Thread(target=_produce, name="deadmarks-producer", daemon=True)
    producer.start()

    collected: List[ProbeResult] = []
    failure: Optional[Exception] = None
    while True:
        item = results.get()
        if item is _DONE:
            break
        if isinstance(item, _Failure):
            if failure is None:
                failure = item.error
                stop.set()
                log.error("Aborting validation run: %s", failure)
            continue
        if failure is not None:
            continue
        collected.append(item)  # type: ignore[arg-type]
        if len(collected) % 100 == 0:
            log.info("Validated %d URLs...", len(collected))
    producer.join()

    if failure is not None:
        raise failure
    return collected


def _scan_row(row) -> Tuple[int, str]:
    bookmark_id, url = row["id"], row["url"]
    if not isinstance(bookmark_id, int) or not isinstance(url, str):
        raise ValidationScanError(f"cannot read bookmark row (id={bookmark_id!r}, url={url!r})")
    return bookmark_id, url


def format_report(stats: ValidationStats) -> str:
    return _REPORT_TEMPLATE.format(
        total=stats.total,
        valid=stats.valid,
        dead=stats.dead,
        redirects=stats.redirects,
    )


def write_report(stats: ValidationStats, path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_report(stats), encoding="utf-8")
    except OSError as e:
        raise OutputError(f"cannot write validation report {path}: {e}") from e
    log.info("Wrote validation report: %s", path)
    return path
