"""Redirect URI validation, matching and construction."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from core.consts import (
    LOOPBACK_HOSTS,
    WILDCARD_REDIRECT_HOSTS,
    WILDCARD_REDIRECT_PATH_PREFIX,
    WILDCARD_REDIRECT_PATH_SUFFIX,
)


class RedirectUriError(ValueError):
    """Redirect URI rejected at registration."""


def validate_redirect_uri(uri: str) -> None:
    """Raise RedirectUriError unless `uri` may be registered."""
    if "*" in uri:
        _validate_wildcard_redirect(uri)
        return
    parts = urlsplit(uri)
    if not parts.scheme or not parts.hostname:
        raise RedirectUriError(f"invalid redirect_uri: {uri}")
    if parts.fragment:
        raise RedirectUriError(f"redirect_uri must not contain a fragment: {uri}")
    if parts.scheme == "https":
        return
    if parts.scheme == "http" and parts.hostname in LOOPBACK_HOSTS:
        return
    raise RedirectUriError(f"redirect_uri must use https (or http on localhost): {uri}")


def _validate_wildcard_redirect(uri: str) -> None:
    parts = urlsplit(uri)
    if parts.scheme != "https":
        raise RedirectUriError(f"wildcard redirect_uri must use https: {uri}")
    if "*" in (parts.netloc or "") or parts.hostname not in WILDCARD_REDIRECT_HOSTS:
        raise RedirectUriError(f"wildcard redirect_uri host not allowed: {uri}")
    path = parts.path
    if (
        "*" not in path
        or not path.startswith(WILDCARD_REDIRECT_PATH_PREFIX)
        or not path.endswith(WILDCARD_REDIRECT_PATH_SUFFIX)
    ):
        raise RedirectUriError(f"wildcard redirect_uri path not allowed: {uri}")
    if parts.query or parts.fragment:
        raise RedirectUriError(f"wildcard redirect_uri must not carry a query: {uri}")


def wildcard_match(pattern: str, candidate: str) -> bool:
    """Glob-style match where `*` stands for any run of characters."""
    segments = pattern.split("*")
    first, last = segments[0], segments[-1]
    if len(candidate) < len(first) + len(last):
        return False
    if not candidate.startswith(first) or not candidate.endswith(last):
        return False
    pos = len(first)
    end = len(candidate) - len(last)
    for segment in segments[1:-1]:
        idx = candidate.find(segment, pos, end)
        if idx < 0:
            return False
        pos = idx + len(segment)
    return True


def is_redirect_allowed(registered: list[str], candidate: str) -> bool:
    """True when `candidate` equals or wildcard-matches a registered URI."""
    for pattern in registered:
        if pattern == candidate:
            return True
        if "*" in pattern and wildcard_match(pattern, candidate):
            return True
    return False


def build_redirect(redirect_uri: str, **params: str | None) -> str:
    """Merge non-empty params into the redirect URI query string."""
    parts = urlsplit(redirect_uri)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in params
    ]
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment)
    )
