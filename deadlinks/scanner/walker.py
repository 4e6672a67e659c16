"""Document discovery: walk a directory tree and yield Markdown files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator

from deadlinks.config import Settings, settings as default_settings
from deadlinks.errors import ScanRootError
from deadlinks.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _is_ignored(relative: str, ignored_directories: Iterable[str]) -> bool:
    """Return ``True`` if any ignored name occurs in *relative*."""
    return any(name and name in relative for name in ignored_directories)


def _on_walk_error(exc: OSError) -> None:
    logger.warning("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def ensure_root(root: str | Path) -> Path:
    """Check that *root* is a readable directory and return it as a Path.

    Raises:
        ScanRootError: If the directory is missing or cannot be listed.
    """
    path = Path(root)
    if not path.exists():
        raise ScanRootError(f"Scan root does not exist: {path}")
    if not path.is_dir():
        raise ScanRootError(f"Scan root is not a directory: {path}")
    try:
        with os.scandir(path):
            pass
    except OSError as exc:
        raise ScanRootError(f"Cannot read scan root {path}: {exc}") from exc
    return path


def walk_documents(
    root: str | Path, settings: Settings = default_settings
) -> Iterator[Path]:
    """Lazily yield document paths under *root* in sorted, depth-first order.

    Only files ending with one of ``settings.extensions`` are yielded.  Any
    path whose location relative to *root* mentions one of
    ``settings.ignored_directories`` is skipped, and ignored directories are
    pruned so their contents are never listed.
    """
    root = Path(root)
    extensions = tuple(settings.extensions)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_walk_error):
        current = Path(dirpath)
        relative_dir = current.relative_to(root)

        kept = []
        for name in sorted(dirnames):
            relative = str(relative_dir / name)
            if _is_ignored(relative, settings.ignored_directories):
                logger.info("Ignoring directory: %s", current / name)
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            if not name.endswith(extensions):
                continue
            if _is_ignored(str(relative_dir / name), settings.ignored_directories):
                logger.info("Ignoring: %s", current / name)
                continue
            yield current / name


def read_documents(paths: Iterable[Path]) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, text)`` for each readable document in *paths*.

    Files that cannot be read as UTF-8 (permission errors, broken symlinks,
    binary content) are logged and skipped.
    """
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable document %s: %s", path, exc)
            continue
        yield path, text
