"""
Sites and virtual hosts.

A VirtualHost is one location served by this setup: a scheme, a host name
and a path prefix, serving one or more locales. A Site groups the
VirtualHosts that serve the same content, e.g. a .com and a .de domain, or
a www. and a non-www. variant where one redirects to the other.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping
import re

from ..app.config import indexed
from ..app.url import URL


def canonicalize_locale(locale: str) -> str:
    """
    Canonical form of a locale: "en-us" -> "en_US", "zh-hant-tw" -> "zh_Hant_TW".
    """
    locale = re.split(r"[.@]", locale.strip(), maxsplit=1)[0]
    parts = [p for p in re.split(r"[-_]", locale) if p]
    if not parts:
        return ""

    out = [parts[0].lower()]
    for p in parts[1:]:
        if len(p) == 4 and p.isalpha():
            out.append(p.title())
        elif (len(p) == 2 and p.isalpha()) or (len(p) == 3 and p.isdigit()):
            out.append(p.upper())
        else:
            out.append(p)
    return "_".join(out)


class VirtualHost:
    """
    One URL prefix that requests are matched against.

    The locale may be None (any locale), one locale or a list of them.
    A VirtualHost with a redirect never matches a locale.
    """

    def __init__(self, url: "str | URL", locale: "str | Iterable[str] | None" = None) -> None:
        self.url: URL = URL(url)
        if not self.url.path.endswith("/"):
            self.url.path += "/"
        self.site: "Site | None" = None
        self.redirect: URL | None = None
        self.locales: list[str] = []
        self.set_locale(locale)

    @property
    def host(self) -> URL:
        """The base URL of this VirtualHost."""
        return self.url

    def set_site(self, site: "Site") -> "VirtualHost":
        self.site = site
        return self

    def set_locale(self, locale: "str | Iterable[str] | None") -> "VirtualHost":
        if locale is None:
            return self
        values = [locale] if isinstance(locale, str) else list(locale)
        for value in values:
            canonical = canonicalize_locale(value)
            if canonical and canonical not in self.locales:
                self.locales.append(canonical)
        return self

    def set_redirect(self, target: "str | URL | None") -> "VirtualHost":
        """Redirect this host to target; an empty target disables redirecting."""
        if target:
            self.redirect = URL(target)
            self.redirect.path = self.redirect.path.rstrip("/")
        else:
            self.redirect = None
        return self

    def match_locale(self, locale: str | None) -> bool:
        if self.redirect is not None:
            return False
        if locale is None:
            return True
        return canonicalize_locale(locale) in self.locales

    def match(self, url: "str | URL") -> bool:
        """True when url has this host's scheme and host and lies below its path."""
        url = URL(url)
        if url.host != self.url.host or url.scheme != self.url.scheme:
            return False
        path = url.path if url.path.endswith("/") else url.path + "/"
        return path.startswith(self.url.path)

    def get_path(self, url: "str | URL") -> str:
        """The path of url relative to this VirtualHost, starting with "/"."""
        path = URL(url).path
        base = self.url.path
        if path.startswith(base):
            path = path[len(base):]
        elif path + "/" == base:
            path = ""
        return "/" + path.lstrip("/")

    def get_redirect(self, url: "str | URL") -> URL | None:
        if self.redirect is None:
            return None
        target = self.redirect.copy()
        target.path = target.path.rstrip("/") + self.get_path(url)
        return target

    def url_for(self, path: str = "", current_url: "URL | None" = None) -> URL:
        """
        A URL below this VirtualHost.

        When current_url has the same scheme, host and port, the result
        is relative (no scheme and host).
        """
        url = self.url.copy()
        url.path = url.path + path.lstrip("/")
        if isinstance(current_url, URL):
            if (
                url.host == current_url.host
                and url.scheme == current_url.scheme
                and url.port == current_url.port
            ):
                url.host = None
                url.scheme = None
        return url

    def is_secure(self) -> bool:
        return self.url.scheme == "https"

    def has_www(self) -> bool:
        return (self.url.host or "").lower().startswith("www.")

    def __repr__(self) -> str:
        return f"<VirtualHost {self.url} {','.join(self.locales) or '*'}>"


class Site:
    """A named group of VirtualHosts that serve the same content."""

    def __init__(self, name: str = "default") -> None:
        self.name: str = name
        self.vhosts: list[VirtualHost] = []
        self._locales: dict[str, bool] = {}

    def add_virtual_host(self, vhost: VirtualHost) -> "Site":
        vhost.set_site(self)
        self.vhosts.append(vhost)
        for locale in vhost.locales:
            self._locales[locale] = True
        return self

    @property
    def virtual_hosts(self) -> list[VirtualHost]:
        return self.vhosts

    @property
    def locales(self) -> list[str]:
        return list(self._locales)

    def match(self, url: "str | URL") -> VirtualHost | None:
        url = URL(url)
        for vhost in self.vhosts:
            if vhost.match(url):
                return vhost
        return None

    def check_redirect(self, url: "str | URL") -> "URL | bool":
        """
        Where a request to url should go instead, or False.

        Uses the first matching VirtualHost: its redirect if it has one,
        else the same URL with the VirtualHost's scheme if that differs.
        """
        url = URL(url)
        for vhost in self.vhosts:
            if not vhost.match(url):
                continue

            redirect = vhost.get_redirect(url)
            if redirect is not None:
                return redirect

            if vhost.host.scheme != url.scheme:
                return url.copy().set(scheme=vhost.host.scheme)
            return False
        return False

    def url_for(self, path: str, locale: str | None = None) -> URL | None:
        for vhost in self.vhosts:
            if vhost.match_locale(locale):
                return vhost.url_for(path)
        return None

    def __repr__(self) -> str:
        return f"<Site {self.name} ({len(self.vhosts)} hosts)>"


def setup_sites(config: Mapping[str, Any] | None) -> dict[str, Site]:
    """
    Build the Site / VirtualHost structure from the [site] configuration.

    The url, language, site and redirect keys share one index space:
    index i of each describes the same VirtualHost.

        [site]
        url[0] = "https://www.example.com"
        url[1] = "https://example.com"
        redirect[1] = "https://www.example.com"
        url[2] = "https://www.foobar.de"
        site[2] = "foobar"
        language[2] = "de"

    gives a "default" site with a www. and a redirecting non-www. host and
    a "foobar" site with a German host. Without a language, default_language
    applies.
    """
    config = config or {}
    urls = indexed(config.get("url"))
    languages = indexed(config.get("language"))
    names = indexed(config.get("site"))
    redirects = indexed(config.get("redirect"))
    default_language = config.get("default_language")

    sites: dict[str, Site] = {}
    for idx, url in urls.items():
        language = languages.get(idx, default_language)
        name = names.get(idx) or "default"
        redirect = redirects.get(idx)

        if name not in sites:
            sites[name] = Site(name)

        vhost = VirtualHost(url, language)
        if redirect:
            vhost.set_redirect(redirect)
        sites[name].add_virtual_host(vhost)

    return sites
