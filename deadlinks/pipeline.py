"""The link-checking pipeline.

One producer (walk -> read -> extract -> classify, with internal links
resolved inline) runs in the calling thread.  External links are pushed
onto a bounded ``queue.Queue`` that the :class:`ExternalChecker` drains on
a separate thread, so probing overlaps with the walk.  A full channel
blocks the producer until the checker catches up.

Verdicts are reported in discovery order regardless of the order in which
probes complete.
"""

from __future__ import annotations

import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import httpx

from deadlinks.checker import END_OF_STREAM, ExternalChecker
from deadlinks.classifier import classify
from deadlinks.config import Settings, settings as default_settings
from deadlinks.logging import get_logger
from deadlinks.models import LinkReference, LinkVerdict, Route, VerdictKind
from deadlinks.resolver import resolve_internal
from deadlinks.scanner import ensure_root, extract_links, read_documents, walk_documents

logger = get_logger(__name__)

_SEND_POLL_SECONDS = 0.1


@dataclass
class CheckResult:
    """Everything one run produced, in discovery order."""

    root: Path
    documents: int = 0
    verdicts: List[LinkVerdict] = field(default_factory=list)
    # One verdict per distinct external URL, i.e. the visited set
    visited: List[LinkVerdict] = field(default_factory=list)

    def of_kind(self, kind: VerdictKind) -> List[LinkVerdict]:
        return [v for v in self.verdicts if v.kind is kind]

    @property
    def dead_internal(self) -> List[LinkVerdict]:
        return self.of_kind(VerdictKind.DEAD_INTERNAL)

    @property
    def dead_external(self) -> List[LinkVerdict]:
        return self.of_kind(VerdictKind.DEAD_EXTERNAL)

    @property
    def should_be_relative(self) -> List[LinkVerdict]:
        return self.of_kind(VerdictKind.SHOULD_BE_RELATIVE)

    @property
    def has_dead_links(self) -> bool:
        return any(v.is_dead for v in self.verdicts)

    def verdict_for(self, url: str) -> LinkVerdict | None:
        """Return the shared verdict of an external URL, however often it occurs."""
        for verdict in self.visited:
            if verdict.reference.url == url:
                return verdict
        return None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _route(reference: LinkReference, settings: Settings) -> LinkVerdict | None:
    """Return the local verdict for *reference*, or ``None`` if it is external."""
    route = classify(reference, settings)

    if route is Route.EXTERNAL:
        return None
    if route is Route.INTERNAL:
        return resolve_internal(reference)
    if route is Route.DEAD_INTERNAL:
        logger.error("Forbidden link prefix: %s (in %s)", reference.url, reference.source_path)
        return LinkVerdict(
            kind=VerdictKind.DEAD_INTERNAL, reference=reference, reason="forbidden prefix"
        )
    if route is Route.SHOULD_BE_RELATIVE:
        logger.warning("Should be relative: %s (in %s)", reference.url, reference.source_path)
        return LinkVerdict(kind=VerdictKind.SHOULD_BE_RELATIVE, reference=reference)

    logger.debug("Ignoring: %s", reference.url)
    return LinkVerdict(kind=VerdictKind.IGNORED, reference=reference)


def _send(channel: queue.Queue, item: Any, consumer: Future) -> None:
    """Put *item* on *channel*, blocking while it is full.

    If the consumer dies while we wait, its exception is raised here instead
    of blocking forever.
    """
    while True:
        try:
            channel.put(item, timeout=_SEND_POLL_SECONDS)
            return
        except queue.Full:
            if consumer.done():
                consumer.result()
                raise RuntimeError("External checker stopped before the walk finished")


def _close(channel: queue.Queue, consumer: Future) -> None:
    """Send the end-of-stream marker unless the consumer is already gone."""
    while not consumer.done():
        try:
            channel.put(END_OF_STREAM, timeout=_SEND_POLL_SECONDS)
            return
        except queue.Full:
            continue


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_check(
    root: str | Path,
    settings: Settings = default_settings,
    client: httpx.Client | None = None,
) -> CheckResult:
    """Scan *root* and return every link verdict.

    Raises:
        ScanRootError: If *root* is missing or unreadable.  Nothing else
            about individual files or links is raised.
    """
    root = ensure_root(root)
    result = CheckResult(root=root)
    channel: queue.Queue = queue.Queue(maxsize=settings.channel_capacity)
    checker = ExternalChecker(settings, client=client)
    local: list[tuple[int, LinkVerdict]] = []
    sequence = 0

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="deadlinks-checker") as executor:
        consumer = executor.submit(checker.run, channel)
        try:
            for path, text in read_documents(walk_documents(root, settings)):
                result.documents += 1
                logger.info("Checking: %s", path)
                for reference in extract_links(text, str(path)):
                    verdict = _route(reference, settings)
                    if verdict is None:
                        _send(channel, (sequence, reference), consumer)
                    else:
                        local.append((sequence, verdict))
                    sequence += 1
        except BaseException:
            checker.cancel()
            raise
        finally:
            _close(channel, consumer)
        remote = consumer.result()

    merged = sorted(local + remote, key=lambda pair: pair[0])
    result.verdicts = [verdict for _, verdict in merged]
    # remote is in sequence order, so the first verdict per URL owns the probe
    owners: Dict[str, LinkVerdict] = {}
    for _, verdict in remote:
        owners.setdefault(verdict.reference.url, verdict)
    result.visited = list(owners.values())
    return result
