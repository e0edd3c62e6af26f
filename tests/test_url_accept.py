from __future__ import annotations

import pytest

from sitewire.app.url import URL
from sitewire.app.accept import Accept
from sitewire.core.error import URLInvalidError, URLSchemeError


def test_url_parts():
    url = URL("https://www.example.com:8443/foo/bar?x=1#top")
    assert url.scheme == "https"
    assert url.host == "www.example.com"
    assert url.port == 8443
    assert url.path == "/foo/bar"
    assert url.query == "x=1"
    assert url.fragment == "top"
    assert str(url) == "https://www.example.com:8443/foo/bar?x=1#top"


def test_url_default_port_and_path():
    url = URL("https://Example.COM:443")
    assert url.port is None
    assert url.host == "example.com"
    assert str(url) == "https://example.com/"


def test_url_without_scheme_is_http_host():
    url = URL("www.example.com/foo")
    assert url.scheme == "http"
    assert url.host == "www.example.com"
    assert url.path == "/foo"


def test_url_relative():
    url = URL("/foo/bar?x=1")
    assert url.host is None
    assert str(url) == "/foo/bar?x=1"


def test_url_unsupported_scheme():
    with pytest.raises(URLSchemeError):
        URL("ftp://example.com/")


def test_url_invalid_port():
    with pytest.raises(URLInvalidError) as exc:
        URL("http://www.example.com:abc/")
    assert exc.value.code == "U02"
    assert isinstance(exc.value.__cause__, ValueError)


def test_url_set_copy_and_equality():
    url = URL("http://example.com/foo?x=1")
    other = url.copy().set(scheme="https", query=None)
    assert str(other) == "https://example.com/foo"
    assert str(url) == "http://example.com/foo?x=1"
    assert other == "https://example.com/foo"
    assert URL(other) == other


def test_accept_empty_header_accepts_everything():
    accept = Accept("")
    assert accept.priority("text/html") == 1.0
    assert accept.best_response_type(["text/html", "application/json"]) == "text/html"


def test_accept_specificity():
    accept = Accept("text/html;q=0.9, text/*;q=0.5, */*;q=0.1")
    assert accept.priority("text/html") == 0.9
    assert accept.priority("text/plain") == 0.5
    assert accept.priority("application/json") == 0.1


def test_accept_best_response_type():
    accept = Accept("application/json")
    assert accept.best_response_type(["text/html", "text/plain", "application/json"]) == "application/json"
    assert accept.best_response_type(["text/html"]) is None


def test_accept_ties_keep_candidate_order():
    accept = Accept("application/json, application/xml")
    assert accept.best_response_type(["application/xml", "application/json"]) == "application/xml"


def test_accept_set_priority_outranks_header():
    accept = Accept("text/html")
    accept.set_priority("application/json", 1.5)
    assert accept.priority("application/json") == 1.5
    assert accept.best_response_type(["text/html", "application/json"]) == "application/json"
