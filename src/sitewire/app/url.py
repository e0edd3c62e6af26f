"""Mutable URL value used for host matching and link building."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from ..core.error import URLInvalidError, URLSchemeError


SUPPORTED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}


class URL:
    """
    A URL split into its parts.

    Notes:
    - scheme and host are lower-cased
    - port is None when it is the default port of the scheme
    - a URL with a host always has a path, at least "/"
    - a URL without a host renders as a relative URL (path, query, fragment)
    """

    def __init__(self, value: "str | URL | None" = None) -> None:
        self.scheme: str | None = None
        self.host: str | None = None
        self.port: int | None = None
        self.path: str = ""
        self.query: str | None = None
        self.fragment: str | None = None

        if value is None:
            return
        if isinstance(value, URL):
            self.scheme = value.scheme
            self.host = value.host
            self.port = value.port
            self.path = value.path
            self.query = value.query
            self.fragment = value.fragment
            return

        self._parse(str(value))

    def _parse(self, value: str) -> None:
        value = value.strip()
        if "://" not in value and not value.startswith("/") and value and not value.startswith("?"):
            # "www.example.com/foo" is a host, not a relative path
            first = value.split("/", 1)[0]
            if "." in first or ":" in first:
                value = "http://" + value

        try:
            parts = urlsplit(value)
            port = parts.port
        except ValueError as e:
            raise URLInvalidError(value, str(e)) from e

        scheme = parts.scheme.lower() or None
        if scheme is not None and scheme not in SUPPORTED_SCHEMES:
            raise URLSchemeError(scheme)

        self.scheme = scheme
        self.host = parts.hostname.lower() if parts.hostname else None
        self.port = None if port is None or DEFAULT_PORTS.get(scheme or "") == port else port
        self.path = parts.path
        self.query = parts.query or None
        self.fragment = parts.fragment or None

        if self.host and not self.path:
            self.path = "/"

    # -------------------------
    # mutation
    # -------------------------

    def set(self, **parts: str | int | None) -> "URL":
        """Set one or more parts and return self."""
        for key, value in parts.items():
            if key not in ("scheme", "host", "port", "path", "query", "fragment"):
                raise AttributeError(f"URL has no part '{key}'")
            if key == "scheme" and value is not None and value not in SUPPORTED_SCHEMES:
                raise URLSchemeError(str(value))
            setattr(self, key, value)
        return self

    def set_path(self, path: str) -> "URL":
        self.path = path if path.startswith("/") else "/" + path
        return self

    def copy(self) -> "URL":
        return URL(self)

    # -------------------------
    # rendering
    # -------------------------

    @property
    def netloc(self) -> str:
        if not self.host:
            return ""
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        if not self.host:
            return urlunsplit(("", "", self.path, self.query or "", self.fragment or ""))
        return urlunsplit((
            self.scheme or "http",
            self.netloc,
            self.path or "/",
            self.query or "",
            self.fragment or "",
        ))

    def __repr__(self) -> str:
        return f"URL({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (URL, str)):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))
