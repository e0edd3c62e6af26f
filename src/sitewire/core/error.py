from __future__ import annotations
from typing import Any, TYPE_CHECKING

from .http_status_codes import http_status_codes

if TYPE_CHECKING:
    from ..app.response import Response


class SitewireError(Exception):
    """
    Base exception class for all sitewire errors.

    Attributes:
        code: Stable error code for programmatic handling.
        message: Human-readable error message.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code: str = code
        self.message: str = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code} -> {self.message}"


# =========================
# HTTP
# =========================

class HTTPError(SitewireError):
    """
    An error that maps onto an HTTP status code.

    The error doubles as a response: an attached body can be set with
    `response`, otherwise the error renders itself as plain text.
    """

    def __init__(
        self,
        status: int,
        message: str,
        cause: BaseException | None = None,
        response: "Response | None" = None,
    ) -> None:
        super().__init__(f"H{status}", message)
        self.status_code: int = status
        self.cause: BaseException | None = cause
        self.response: "Response | None" = response
        if cause is not None:
            self.__cause__ = cause

    @property
    def status_text(self) -> str:
        return f"{self.status_code} {http_status_codes.get(self.status_code, '')}".strip()

    def to_response(self) -> "Response":
        """Return the attached body with this error's status, or a plain text body."""
        from ..app.response import Response, TextResponse

        if self.response is None:
            return TextResponse(f"{self.status_text}\n\n{self.message}\n", status=self.status_code)

        res = self.response
        return Response(
            res.body,
            status=self.status_code,
            headers=[h for h in res.headers if h[0].lower() != "content-length"],
        )


# =========================
# URL
# =========================

class URLSchemeError(SitewireError):
    """Raised when a URL uses a scheme that is not supported."""

    def __init__(self, scheme: str) -> None:
        super().__init__("U01", f"Unsupported URL scheme. '{scheme}'")


class URLInvalidError(SitewireError):
    """Raised when a URL cannot be parsed, e.g. a non-numeric port."""

    def __init__(self, url: str, reason: str) -> None:
        self.url: str = url
        super().__init__("U02", f"Invalid URL. '{url}' ({reason})")


# =========================
# Config
# =========================

class ConfigError(SitewireError):
    """Raised when configuration cannot be read."""

    def __init__(self, message: str) -> None:
        super().__init__("CF01", message)


# =========================
# Resolve
# =========================

class ResolverKindError(SitewireError):
    """Raised when no resolver is registered for a kind."""

    def __init__(self, kind: str) -> None:
        super().__init__("R01", f"No resolver registered for this kind. '{kind}'")


# =========================
# Template
# =========================

class TemplateNotFoundError(SitewireError):
    """Raised when a template file cannot be found."""

    def __init__(self, name: str) -> None:
        super().__init__("T01", f"This template is not found. '{name}'")


class TemplatesInvalidTypeError(SitewireError):
    """Raised when a template directory does not exist."""

    def __init__(self, path: Any) -> None:
        super().__init__("T02", f"This template directory is invalid. '{path}'")


class TemplateKeyNotSetError(SitewireError):
    """Raised when required template variables are missing."""

    def __init__(self, key: str) -> None:
        super().__init__(
            "T03",
            f"The required keys for this template are not set. '{key}'",
        )


# =========================
# Database / Model
# =========================

class DBError(SitewireError):
    """Base class for database errors."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message)


class DBMConnectionInvalidError(DBError):
    def __init__(self, message: str = "Database connection is not available.") -> None:
        super().__init__("D01", message)


class DBOperationalError(DBError):
    def __init__(self, message: str) -> None:
        super().__init__("D02", message)


class DBIntegrityError(DBError):
    def __init__(self, message: str) -> None:
        super().__init__("D03", message)


class DBProgrammingError(DBError):
    def __init__(self, message: str) -> None:
        super().__init__("D04", message)


class ModelNotFoundError(SitewireError):
    """Raised when a model lookup by identifier finds nothing."""

    def __init__(self, model: str, object_id: Any) -> None:
        self.model: str = model
        self.object_id: Any = object_id
        super().__init__("M01", f"{model} not found: {object_id}")
