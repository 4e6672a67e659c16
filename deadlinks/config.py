"""Settings for a link-checking run.

Classification prefixes and walk filters are read from the environment,
as are the probe timeout and checker limits.  A ``.env`` file in the
working directory is read first; variables already set in the environment
take precedence over it.  The CLI overrides individual fields per run with
``dataclasses.replace``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Real environment variables always win over the .env file
load_dotenv(Path.cwd() / ".env", override=False)

DEFAULT_EXTENSIONS = (".md", ".markdown")
DEFAULT_IGNORED_DIRECTORIES = (
    "archive",
    "embedded",
    "embedded-hal",
    "atmel",
    "node_modules",
    "STM32",
    "legacy",
)


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Parse a comma-separated environment variable into a tuple."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Link classification prefixes (empty string = disabled)
    # ------------------------------------------------------------------
    forbidden_link_prefix: str = field(
        default_factory=lambda: os.environ.get("FORBIDDEN_LINK_PREFIX", "")
    )
    current_repo_url: str = field(
        default_factory=lambda: os.environ.get("CURRENT_REPO_URL", "")
    )
    requires_gh_auth: str = field(
        default_factory=lambda: os.environ.get("REQUIRES_GH_AUTH", "")
    )

    # ------------------------------------------------------------------
    # Document walker
    # ------------------------------------------------------------------
    extensions: tuple[str, ...] = field(
        default_factory=lambda: _env_list("DOC_EXTENSIONS", DEFAULT_EXTENSIONS)
    )
    ignored_directories: tuple[str, ...] = field(
        default_factory=lambda: _env_list(
            "IGNORED_DIRECTORIES", DEFAULT_IGNORED_DIRECTORIES
        )
    )

    # ------------------------------------------------------------------
    # External checker
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "10.0"))
    )
    channel_capacity: int = field(
        default_factory=lambda: int(os.environ.get("LINK_CHANNEL_CAPACITY", "100"))
    )
    checker_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("CHECKER_CONCURRENCY", "1"))
    )

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------
    report_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("DEADLINKS_REPORT", "dead_links.json")
        )
    )
    report_alive_links: bool = field(
        default_factory=lambda: _env_flag("REPORT_ALIVE_LINKS")
    )

    def __post_init__(self) -> None:
        if self.channel_capacity < 1:
            raise ValueError("channel_capacity must be at least 1")
        if self.checker_concurrency < 1:
            raise ValueError("checker_concurrency must be at least 1")


# Module-level singleton, import this everywhere:
#   from deadlinks.config import settings
settings = Settings()
