"""Logging setup shared by the CLI and the pipeline modules."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Install a single stderr handler on the root logger.

    Calling this more than once replaces the previous handler, so the CLI
    can be invoked repeatedly in the same process (e.g. from tests).
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_deadlinks", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._deadlinks = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # httpx logs every request at INFO; only surface that when asked to.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
