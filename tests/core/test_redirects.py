from urllib.parse import parse_qs, urlsplit

import pytest

from core.security.redirects import (
    RedirectUriError,
    build_redirect,
    is_redirect_allowed,
    validate_redirect_uri,
    wildcard_match,
)

CHATGPT_PATTERN = "https://chatgpt.com/aip/g-*/oauth/callback"


@pytest.mark.parametrize(
    "uri",
    [
        "https://app.example.com/cb",
        "http://localhost:8080/cb",
        "http://127.0.0.1/cb",
        CHATGPT_PATTERN,
        "https://chat.openai.com/aip/g-*/oauth/callback",
    ],
)
def test_valid_redirects(uri):
    validate_redirect_uri(uri)


@pytest.mark.parametrize(
    "uri",
    [
        "not a url",
        "/relative/cb",
        "http://app.example.com/cb",
        "ftp://app.example.com/cb",
        "https://app.example.com/cb#frag",
        "https://*.example.com/cb",
        "https://evil.com/aip/g-*/oauth/callback",
        "http://chatgpt.com/aip/g-*/oauth/callback",
        "https://chatgpt.com/other/*/oauth/callback",
        "https://chatgpt.com/aip/g-*/other",
    ],
)
def test_invalid_redirects(uri):
    with pytest.raises(RedirectUriError):
        validate_redirect_uri(uri)


def test_chatgpt_wildcard_matches_gpt_id():
    assert wildcard_match(CHATGPT_PATTERN, "https://chatgpt.com/aip/g-abc123/oauth/callback")


def test_chatgpt_wildcard_rejects_other_host_and_path():
    assert not wildcard_match(CHATGPT_PATTERN, "https://evil.com/aip/g-abc/oauth/callback")
    assert not wildcard_match(CHATGPT_PATTERN, "https://chatgpt.com/aip/g-abc/other")
    assert not wildcard_match(CHATGPT_PATTERN, "https://chatgpt.com/oauth/callback")


def test_wildcard_interior_segments_in_order():
    pattern = "https://h/a*b*c"
    assert wildcard_match(pattern, "https://h/aXbYc")
    assert wildcard_match(pattern, "https://h/abc")
    assert not wildcard_match(pattern, "https://h/acb")


def test_wildcard_prefix_and_suffix_do_not_overlap():
    assert not wildcard_match("https://h/ab*ba", "https://h/aba")


def test_is_redirect_allowed_exact_or_wildcard():
    registered = ["https://app.example.com/cb", CHATGPT_PATTERN]
    assert is_redirect_allowed(registered, "https://app.example.com/cb")
    assert is_redirect_allowed(registered, "https://chatgpt.com/aip/g-1/oauth/callback")
    assert not is_redirect_allowed(registered, "https://app.example.com/cb2")


def test_build_redirect_merges_query():
    url = build_redirect("https://app.example.com/cb?x=1", code="abc", state="s t")

    parts = urlsplit(url)
    assert parts.netloc == "app.example.com"
    assert parse_qs(parts.query) == {"x": ["1"], "code": ["abc"], "state": ["s t"]}


def test_build_redirect_skips_empty_state():
    url = build_redirect("https://app.example.com/cb", code="abc", state=None)
    assert parse_qs(urlsplit(url).query) == {"code": ["abc"]}
