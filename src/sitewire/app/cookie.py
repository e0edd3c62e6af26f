from __future__ import annotations

from http.cookies import SimpleCookie

from ..core.error import SitewireError


_FORBIDDEN = ("\r", "\n", ";")


def _attribute_name(key: str) -> str:
    return "-".join(p.capitalize() for p in key.split("_"))


class Cookie:
    """
    One Set-Cookie value.

    Attributes are keyword arguments; max_age renders as Max-Age.
    A None attribute is left out.
    """

    def __init__(
        self,
        name: str,
        value: str,
        *,
        http_only: bool = True,
        secure: bool = True,
        **attributes: str | int | None,
    ) -> None:
        if not name:
            raise SitewireError("C01", "Cookie name cannot be empty")
        if any(c in value for c in _FORBIDDEN):
            raise SitewireError("C01", f"This cookie value is invalid. '{value}'")
        self.name: str = name
        self.value: str = value
        self.http_only: bool = http_only
        self.secure: bool = secure
        self.attributes: dict[str, str | int | None] = attributes

    def set(self, key: str, value: str | int | None) -> None:
        self.attributes[key] = value

    def to_header(self) -> str:
        parts = [f"{self.name}={self.value}"]
        parts += [f"{_attribute_name(k)}={v}" for k, v in self.attributes.items() if v is not None]
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        return "; ".join(parts)

    __str__ = to_header

    def __repr__(self) -> str:
        return f"<Cookie {self.to_header()}>"


class RequestCookies(dict[str, str]):
    """The cookies sent with a request, name -> value."""

    @classmethod
    def parse(cls, header: str | None) -> "RequestCookies":
        cookies = cls()
        if header:
            jar = SimpleCookie()
            jar.load(header)
            cookies.update((name, morsel.value) for name, morsel in jar.items())
        return cookies
