"""
URL helpers shared by navigation inference and document assembly.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlparse

from cleanread.extractor.errors import InvalidInputError


def resolve_url(base_url: str, target: str) -> str:
    """Resolve ``target`` (absolute or relative) against an absolute base URL."""
    return urljoin(base_url, target.strip())


def relativize_url(absolute_url: str) -> str:
    """Reduce an absolute URL to ``path?query#fragment`` for in-app routing.

    >>> relativize_url("https://example.com/foo/bar?x=1#sec")
    '/foo/bar?x=1#sec'
    """
    if not absolute_url:
        return ""
    parsed = urlparse(absolute_url)
    relative = parsed.path
    if parsed.query:
        relative += "?" + parsed.query
    if parsed.fragment:
        relative += "#" + parsed.fragment
    return relative


def is_same_site_different_page(base_url: str, target: str) -> bool:
    """True when ``target`` resolves to the base URL's host but another path."""
    try:
        base = urlparse(base_url)
        resolved = urlparse(urljoin(base_url, target.strip()))
    except ValueError:
        return False
    if not base.netloc:
        return False
    return resolved.netloc.lower() == base.netloc.lower() and resolved.path != base.path


def validate_document_url(url: str) -> str:
    """Require an absolute http(s) URL with a host."""
    if not url:
        raise InvalidInputError("url cannot be empty")
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise InvalidInputError(f"invalid url: {url}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(f"invalid url: {url}")
    return url
