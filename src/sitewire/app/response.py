from __future__ import annotations

from typing import Any, Iterable, Optional

from ..core.http_status_codes import http_status_codes
from .writers import WriterRegistry, default_writers


Header = tuple[str, str]


class Response:
    """
    Represents an HTTP response.
    """

    def __init__(
        self,
        body: str | bytes = b"",
        status: int = 200,
        headers: Iterable[Header] | None = None,
        cookie: str | None = None,
        content_type: str = "text/html",
        charset: str = "utf-8",
        include_charset: bool = False
    ) -> None:
        self.charset: str = charset
        self.include_charset: bool = include_charset

        if isinstance(body, str):
            self.body: bytes = body.encode(charset)
            self.is_text: bool = True
        else:
            self.body = body
            self.is_text = False

        self.status_code: int = status
        self.status_text: str = f"{status} {http_status_codes.get(status, '')}".strip()

        ct = content_type
        if include_charset and (ct.startswith("text/") or ct == "application/json"):
            ct = f"{ct}; charset={charset}"

        self.headers: list[Header] = list(headers) if headers else [("Content-Type", ct)]

        if cookie:
            self.headers.append(("Set-Cookie", cookie))

        # ---- auto Content-Length (if not already present) ----
        has_len = any(k.lower() == "content-length" for k, _ in self.headers)
        if not has_len and isinstance(self.body, (bytes, bytearray)):
            self.headers.append(("Content-Length", str(len(self.body))))

    @property
    def content_type(self) -> str:
        for k, v in self.headers:
            if k.lower() == "content-type":
                return v.split(";", 1)[0].strip()
        return ""

    def header(self, name: str) -> str | None:
        name = name.lower()
        for k, v in self.headers:
            if k.lower() == name:
                return v
        return None

    def append_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    def __iter__(self):
        """
        Allow Response to be returned directly from WSGI apps.
        """
        yield self.body

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.status_text}>"


class TextResponse(Response):
    """A string body with an explicit MIME type, text/plain by default."""

    def __init__(
        self,
        body: str,
        content_type: str = "text/plain",
        status: int = 200,
        *,
        charset: str = "utf-8",
    ) -> None:
        self.text: str = body
        super().__init__(
            body=body,
            status=status,
            content_type=content_type,
            charset=charset,
            include_charset=True,
        )


class DataResponse(Response):
    """
    A structured record serialized for the negotiated MIME type.
    """

    def __init__(
        self,
        data: Any,
        content_type: str = "application/json",
        status: int = 200,
        *,
        writers: WriterRegistry | None = None,
        charset: str = "utf-8",
    ) -> None:
        self.data: Any = data
        writers = writers or default_writers
        super().__init__(
            body=writers.write(content_type, data),
            status=status,
            content_type=f"{content_type}; charset={charset}",
            charset=charset,
        )


class HtmlResponse(TextResponse):
    def __init__(self, body: str = "", status: int = 200, *, charset: str = "utf-8") -> None:
        super().__init__(body, "text/html", status, charset=charset)


class JsonResponse(DataResponse):
    """A dict serialized as JSON."""

    def __init__(self, body: Optional[dict] = None, status: int = 200, *, charset: str = "utf-8") -> None:
        super().__init__({} if body is None else body, "application/json", status, charset=charset)


class Redirect(Response):
    """
    HTTP redirect response (302 unless told otherwise).
    """

    def __init__(self, location: Any, status: int = 302) -> None:
        self.location: str = str(location)
        super().__init__(
            body=b"",
            status=status,
            headers=[("Location", self.location)],
        )


# ====================
# control flow
# ====================

class ResponseInterrupt(Exception):
    """
    Raised from handler code to finish the request with a response.

    This is not an error: the dispatcher treats it exactly like a
    returned response.
    """

    def __init__(self, response: Response) -> None:
        self.response: Response = response
        super().__init__(response.status_text)


class RedirectRequest(ResponseInterrupt):
    """Finish the request with a redirect."""

    def __init__(self, location: Any, status: int = 302) -> None:
        super().__init__(Redirect(location, status))

    @property
    def location(self) -> str:
        return self.response.header("Location") or ""
