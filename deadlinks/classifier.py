"""Routing of extracted links.

Every link gets exactly one :class:`Route`.  Rules are evaluated in a fixed
order and the first match wins, so configured prefixes take precedence over
the generic internal/external checks.
"""

from __future__ import annotations

from deadlinks.config import Settings, settings as default_settings
from deadlinks.models import LinkReference, Route

_INTERNAL_PREFIXES = ("..", "/")
_EXTERNAL_SCHEMES = ("http://", "https://")


def _has_prefix(url: str, prefix: str) -> bool:
    """An empty prefix is treated as "not configured" and never matches."""
    return bool(prefix) and url.startswith(prefix)


def classify(reference: LinkReference, settings: Settings = default_settings) -> Route:
    """Return the route for *reference*."""
    url = reference.url

    if url.startswith("#"):
        return Route.IGNORED
    if _has_prefix(url, settings.forbidden_link_prefix):
        return Route.DEAD_INTERNAL
    if _has_prefix(url, settings.current_repo_url):
        return Route.SHOULD_BE_RELATIVE
    if _has_prefix(url, settings.requires_gh_auth):
        return Route.IGNORED
    if url.startswith(_INTERNAL_PREFIXES):
        return Route.INTERNAL
    if url.startswith(_EXTERNAL_SCHEMES) and "localhost" not in url:
        return Route.EXTERNAL
    return Route.IGNORED
