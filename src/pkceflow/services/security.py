"""Redirect URI helpers for callers filtering deep-link events."""

from __future__ import annotations

from urllib.parse import urlparse


def is_redirect_for(url: str, redirect_uri: str) -> bool:
    """Check whether a delivered URL is a redirect to ``redirect_uri``.

    Scheme and host are compared case-insensitively, path exactly. Query and
    fragment are ignored since they carry the callback parameters.

    Args:
        url: URL delivered by the platform
        redirect_uri: Configured redirect URI

    Returns:
        True if the URL targets the redirect URI
    """
    try:
        candidate = urlparse(url)
        expected = urlparse(redirect_uri)
    except ValueError:
        return False

    return (
        candidate.scheme.lower() == expected.scheme.lower()
        and candidate.netloc.lower() == expected.netloc.lower()
        and candidate.path.rstrip("/") == expected.path.rstrip("/")
    )
