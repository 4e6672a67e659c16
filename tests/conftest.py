"""Shared fixtures: explicit settings and throwaway document trees."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from deadlinks.config import DEFAULT_EXTENSIONS, DEFAULT_IGNORED_DIRECTORIES, Settings


@pytest.fixture
def make_settings(tmp_path) -> Callable[..., Settings]:
    """Build a :class:`Settings` that ignores the caller's environment."""

    def _make(**overrides) -> Settings:
        values = dict(
            forbidden_link_prefix="",
            current_repo_url="",
            requires_gh_auth="",
            extensions=DEFAULT_EXTENSIONS,
            ignored_directories=DEFAULT_IGNORED_DIRECTORIES,
            request_timeout=5.0,
            channel_capacity=100,
            checker_concurrency=1,
            report_path=tmp_path / "dead_links.json",
            report_alive_links=False,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def docs_root(tmp_path) -> Path:
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def write_doc(docs_root) -> Callable[[str, str], Path]:
    """Write a document below ``docs_root`` and return its path."""

    def _write(relative: str, content: str = "") -> Path:
        path = docs_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
