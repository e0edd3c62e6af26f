"""WSGI request parsing."""

from __future__ import annotations

from typing import Any, Mapping, TYPE_CHECKING
from dataclasses import dataclass
from urllib.parse import parse_qs, quote
import json

from .accept import Accept
from .cookie import Cookie, RequestCookies
from .session import SESSION_COOKIE, Session, SessionStore, default_store
from .url import URL

if TYPE_CHECKING:
    from ..dispatch.site import VirtualHost


WSGIEnviron = Mapping[str, Any]


@dataclass(frozen=True)
class File:
    """Uploaded file container from multipart/form-data."""
    filename: str
    content_type: str | None
    size: int | None
    file: Any


class Request:
    """
    Represents an HTTP request constructed from a WSGI environ.

    Notes:
    - headers keys are normalized to lower-case
    - url is the full requested URL, webroot is the URL the application
      is mounted at (SCRIPT_NAME, always ending in "/")
    - accept is mutable: the dispatcher boosts a URL suffix type in it
    - wsgi.input is read once; body and the parsed forms are cached
    - files() streams multipart/form-data through multipart.MultipartParser
    """

    DEFAULT_MAX_BODY_SIZE = 10 * 1024 * 1024  # 10MB

    def __init__(
        self,
        environ: WSGIEnviron,
        *,
        max_body_size: int | None = None,
        session_store: SessionStore | None = None,
    ) -> None:
        self.environ: WSGIEnviron = environ
        self.max_body_size = self.DEFAULT_MAX_BODY_SIZE if max_body_size is None else int(max_body_size)

        self.method: str = str(environ.get("REQUEST_METHOD", "GET")).upper()
        self.path: str = str(environ.get("PATH_INFO", "")).lstrip("/")
        self.query: dict[str, list[str]] = parse_qs(str(environ.get("QUERY_STRING", "")))

        # header names are lower-cased, "-" separated
        self.headers: dict[str, str] = {}
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                self.headers[key[5:].replace("_", "-").lower()] = str(value)
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                self.headers[key.replace("_", "-").lower()] = str(value)

        self.cookie: RequestCookies = RequestCookies.parse(self.headers.get("cookie"))

        self.webroot: URL = self._build_webroot()
        self.url: URL = self._build_url()
        self.accept: Accept = Accept(self.headers.get("accept"))

        self.session_store: SessionStore = session_store if session_store is not None else default_store
        self.session: Session = self.session_store.load(self.cookie.get(SESSION_COOKIE))
        self._session_cookie: Cookie | None = None
        self._cookie_params: dict[str, Any] | None = None

        self._body: bytes | None = None
        self._parsed: dict[str, Any] = {}

    # -------------------------
    # URL helpers
    # -------------------------

    def _host(self) -> str:
        host = self.headers.get("host")
        if host:
            return host
        name = str(self.environ.get("SERVER_NAME", "localhost"))
        port = str(self.environ.get("SERVER_PORT", ""))
        return f"{name}:{port}" if port else name

    def _build_webroot(self) -> URL:
        scheme = str(self.environ.get("wsgi.url_scheme", "http"))
        script = quote(str(self.environ.get("SCRIPT_NAME", "")).rstrip("/"))
        return URL(f"{scheme}://{self._host()}{script}/")

    def _build_url(self) -> URL:
        url = URL(self.webroot)
        path = str(self.environ.get("SCRIPT_NAME", "")).rstrip("/") + str(self.environ.get("PATH_INFO", ""))
        url.set_path(quote(path) or "/")
        qs = str(self.environ.get("QUERY_STRING", ""))
        url.query = qs or None
        return url

    @property
    def get(self) -> dict[str, list[str]]:
        return self.query

    def set_accept(self, accept: Accept) -> None:
        self.accept = accept

    # -------------------------
    # session
    # -------------------------

    def start_session(self, vhost: "VirtualHost", config: Mapping[str, Any] | None = None) -> Session:
        """
        Bind the session to the VirtualHost serving this request.

        The cookie is scoped to the VirtualHost path. Nothing is stored
        until save_session().
        """
        cookie_cfg = dict((config or {}).get("cookie") or {})
        self._cookie_params = {
            "http_only": bool(cookie_cfg.get("httponly", True)),
            "secure": bool(cookie_cfg.get("secure", vhost.is_secure())),
            "path": vhost.host.path,
            "max_age": int(cookie_cfg.get("lifetime", self.session_store.lifetime)),
        }
        return self.session

    def save_session(self) -> None:
        """
        Store the session.

        A new session is only stored, and only gets a cookie, once it
        holds data.
        """
        session = self.session
        if session.new and not session:
            return
        self.session_store.save(session)
        if session.new and self._cookie_params is not None and self._session_cookie is None:
            self._session_cookie = Cookie(SESSION_COOKIE, str(session.id), **self._cookie_params)

    def session_cookie(self) -> str | None:
        """Set-Cookie value for a newly started session, if any."""
        return self._session_cookie.to_header() if self._session_cookie else None


    # -------------------------
    # body
    # -------------------------

    @property
    def content_type(self) -> str:
        """Mime type of the body, lower-cased and without parameters."""
        return (self.headers.get("content-type") or "").split(";", 1)[0].strip().lower()

    def _content_param(self, name: str) -> str | None:
        for part in (self.headers.get("content-type") or "").split(";")[1:]:
            key, _, value = part.strip().partition("=")
            if key.lower() == name:
                return value.strip().strip('"')
        return None

    @property
    def charset(self) -> str:
        return self._content_param("charset") or "utf-8"

    @property
    def body(self) -> bytes:
        """
        The raw body, read from wsgi.input on first access.

        Empty once files() has handed the stream to the multipart parser.

        Raises:
            ValueError: the body is larger than max_body_size
        """
        if self._body is None:
            self._body = self._read_stream()
        return self._body

    def _read_stream(self) -> bytes:
        stream = self.environ.get("wsgi.input")
        if stream is None:
            return b""

        try:
            length = int(self.environ.get("CONTENT_LENGTH") or -1)
        except (TypeError, ValueError):
            length = -1

        if length > self.max_body_size:
            raise ValueError(f"Request body too large: {length} > {self.max_body_size}")
        if length >= 0:
            return stream.read(length)

        data = stream.read(self.max_body_size + 1)
        if len(data) > self.max_body_size:
            raise ValueError(f"Request body too large: more than {self.max_body_size} bytes")
        return data

    def json(self) -> Any:
        """
        The decoded application/json body.

        Returns None for other content types and for an empty body.
        Invalid JSON raises json.JSONDecodeError.
        """
        if "json" not in self._parsed:
            raw = self.body if self.content_type == "application/json" else b""
            self._parsed["json"] = json.loads(raw.decode(self.charset)) if raw else None
        return self._parsed["json"]

    def form(self) -> dict[str, list[str]] | None:
        """The urlencoded form body, None for other content types."""
        if self.content_type != "application/x-www-form-urlencoded":
            return None
        if "form" not in self._parsed:
            self._parsed["form"] = parse_qs(self.body.decode(self.charset))
        return self._parsed["form"]

    @property
    def post(self) -> dict[str, list[str]]:
        return self.form() or {}

    def files(self) -> dict[str, str | File] | None:
        """
        The fields of a multipart/form-data body; uploads become File objects.

        Must be called before anything reads body.
        """
        if self.content_type != "multipart/form-data":
            return None
        if "files" in self._parsed:
            return self._parsed["files"]
        if self._body is not None:
            raise ValueError("Body was already read; files() must be called first")

        boundary = self._content_param("boundary")
        if not boundary:
            raise ValueError("multipart/form-data boundary not found")

        from multipart import MultipartParser

        self._body = b""
        fields: dict[str, str | File] = {}
        for part in MultipartParser(self.environ["wsgi.input"], boundary):
            if not part.name:
                continue
            if part.filename:
                fields[part.name] = File(str(part.filename), part.content_type or None, part.size, part.file)
            else:
                fields[part.name] = str(part.value)

        self._parsed["files"] = fields
        return fields

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"
