"""Filesystem resolution of internal links."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote

from deadlinks.logging import get_logger
from deadlinks.models import LinkReference, LinkVerdict, VerdictKind

logger = get_logger(__name__)


def _strip_target(url: str) -> str:
    """Drop any ``#fragment`` or ``?query`` and percent-decode the path."""
    for marker in ("#", "?"):
        url = url.split(marker, 1)[0]
    return unquote(url)


def resolve_internal(reference: LinkReference) -> LinkVerdict:
    """Check that an internal link points at an existing file or directory.

    The link is resolved against the directory of the document that
    contains it.  Anchors are not validated, only the path.
    """
    target = Path(reference.source_path).parent / _strip_target(reference.url)
    try:
        resolved = target.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        logger.error("Cannot find internal: %s (in %s)", reference.url, reference.source_path)
        return LinkVerdict(
            kind=VerdictKind.DEAD_INTERNAL,
            reference=reference,
            reason=type(exc).__name__,
        )

    logger.debug("Internal link ok: %s -> %s", reference.url, resolved)
    return LinkVerdict(kind=VerdictKind.ALIVE, reference=reference)
