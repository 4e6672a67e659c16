"""External link checking.

The :class:`ExternalChecker` drains a channel of external
:class:`LinkReference` objects while the document walk is still running.
Each distinct URL is probed exactly once per run: the dispatcher claims the
URL in the shared :class:`VisitedSet` before submitting a probe, and the
claim (membership test plus insertion) happens under a single lock.

Probes run on a ``ThreadPoolExecutor`` with at most
``settings.checker_concurrency`` requests in flight.  The default of 1
serialises probes, which keeps runs deterministic and avoids rate limits
masquerading as dead links.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Iterator

import httpx

from deadlinks.config import Settings, settings as default_settings
from deadlinks.logging import get_logger
from deadlinks.models import LinkReference, LinkVerdict, VerdictKind

logger = get_logger(__name__)

# Put on the channel by the producer once it is done.
END_OF_STREAM = object()

_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; deadlinks/1.0; link checker)"
}


# ---------------------------------------------------------------------------
# Visited set
# ---------------------------------------------------------------------------

class VisitedSet:
    """URLs already claimed for probing in this run."""

    def __init__(self) -> None:
        # dict keeps claim order for the report
        self._urls: dict[str, None] = {}
        self._lock = threading.Lock()

    def claim(self, url: str) -> bool:
        """Mark *url* as visited.  Return ``False`` if it already was."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls[url] = None
            return True

    def urls(self) -> list[str]:
        with self._lock:
            return list(self._urls)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls())


# ---------------------------------------------------------------------------
# Single probe
# ---------------------------------------------------------------------------

def is_alive_status(status_code: int) -> bool:
    """2xx and 3xx responses count as alive."""
    return 200 <= status_code <= 399


def build_client(settings: Settings = default_settings) -> httpx.Client:
    """Return the HTTP client used for probes."""
    return httpx.Client(
        headers=_DEFAULT_HEADERS,
        timeout=settings.request_timeout,
        follow_redirects=True,
    )


def probe(client: httpx.Client, url: str) -> tuple[int | None, str | None]:
    """Issue one GET for *url*.

    Returns ``(status_code, None)`` when the server answered, or
    ``(None, reason)`` on a transport failure (DNS, refused connection,
    timeout, invalid URL or host name).  The body is never read.
    """
    try:
        with client.stream("GET", url) as response:
            return response.status_code, None
    except httpx.TimeoutException:
        return None, "timeout"
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return None, type(exc).__name__
    except ValueError as exc:
        # Host names that fail IDNA encoding (idna.IDNAError is a UnicodeError)
        return None, type(exc).__name__


def check_reference(client: httpx.Client, reference: LinkReference) -> LinkVerdict:
    """Probe *reference* and turn the outcome into a verdict."""
    status_code, reason = probe(client, reference.url)

    if status_code is not None and is_alive_status(status_code):
        logger.info("Status code: %s of %s", status_code, reference.url)
        return LinkVerdict(
            kind=VerdictKind.ALIVE, reference=reference, status_code=status_code
        )

    if status_code is not None:
        reason = f"HTTP {status_code}"
    logger.error(
        "Cannot find external: %s (in %s): %s",
        reference.url,
        reference.source_path,
        reason,
    )
    return LinkVerdict(
        kind=VerdictKind.DEAD_EXTERNAL,
        reference=reference,
        status_code=status_code,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# Channel consumer
# ---------------------------------------------------------------------------

class ExternalChecker:
    """Consume ``(sequence, reference)`` items and probe each URL once.

    Args:
        settings: Run configuration (timeout, concurrency).
        client: Optional pre-built ``httpx.Client``.  When omitted a client
            is created for the duration of :meth:`run` and closed afterwards.
        visited: Optional shared :class:`VisitedSet`; a fresh one by default.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        client: httpx.Client | None = None,
        visited: VisitedSet | None = None,
    ) -> None:
        self.settings = settings
        self.visited = visited if visited is not None else VisitedSet()
        self._client = client
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop claiming new URLs; probes already in flight still finish."""
        self._cancelled.set()

    def run(self, channel: queue.Queue) -> list[tuple[int, LinkVerdict]]:
        """Drain *channel* until :data:`END_OF_STREAM` and return verdicts.

        Each verdict is paired with the sequence number it was sent with so
        the caller can restore discovery order.  References whose URL was
        already claimed are not probed again; once the owning probe is done
        they receive a copy of its verdict carrying their own reference.
        The returned list is ordered by sequence number, so the first
        verdict for each URL is the one that owns the probe.
        """
        concurrency = self.settings.checker_concurrency
        owns_client = self._client is None
        client = self._client if self._client is not None else build_client(self.settings)
        slots = threading.BoundedSemaphore(concurrency)
        pending: list[tuple[int, Future]] = []
        duplicates: list[tuple[int, LinkReference]] = []

        try:
            with ThreadPoolExecutor(
                max_workers=concurrency, thread_name_prefix="deadlinks-probe"
            ) as pool:
                while True:
                    item = channel.get()
                    if item is END_OF_STREAM:
                        break
                    if self._cancelled.is_set():
                        continue

                    sequence, reference = item
                    if not self.visited.claim(reference.url):
                        logger.debug("Already visited: %s", reference.url)
                        duplicates.append((sequence, reference))
                        continue

                    slots.acquire()
                    future = pool.submit(check_reference, client, reference)
                    future.add_done_callback(lambda _f: slots.release())
                    pending.append((sequence, future))

                results = [(sequence, future.result()) for sequence, future in pending]
        finally:
            if owns_client:
                client.close()

        logger.info(
            "Checked %d external URL(s), %d dead.",
            len(results),
            sum(1 for _, v in results if v.kind is VerdictKind.DEAD_EXTERNAL),
        )

        owners = {verdict.reference.url: verdict for _, verdict in results}
        for sequence, reference in duplicates:
            owner = owners.get(reference.url)
            if owner is not None:
                results.append((sequence, replace(owner, reference=reference)))
        results.sort(key=lambda pair: pair[0])
        return results
