"""Exceptions raised by the dead-link checker.

Only setup problems surface as exceptions; per-file and per-link failures
are turned into verdicts or log lines by the pipeline.
"""

from __future__ import annotations


class DeadLinksError(Exception):
    """Base class for all errors raised by this package."""


class ScanRootError(DeadLinksError):
    """The directory to scan does not exist or cannot be read."""
