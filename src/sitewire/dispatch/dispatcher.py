"""
Take one request from its URL to a response.

The Dispatcher finds the VirtualHost serving the request, resolves the app
for the path below it, runs the app through an AppRunner and turns any
error into a response whose body matches what the client accepts.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping
import mimetypes
import traceback

from ..app.config import Config
from ..app.request import Request
from ..app.resolver import ResolveManager, Resolution
from ..app.response import DataResponse, Response, ResponseInterrupt, RedirectRequest, TextResponse
from ..app.template import TemplateRenderer
from ..app.url import URL
from ..app.writers import WriterRegistry, default_writers
from ..core.error import HTTPError, SitewireError
from ..core.log import get_logger
from .result import Failure, Result
from .runner import AppRunner
from .similarity import similar_text
from .site import Site, VirtualHost, setup_sites


# suffixes whose type must not depend on the platform's mime.types
_SUFFIX_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "txt": "text/plain",
}

SUFFIX_PRIORITY = 1.5


def suffix_type(ext: str) -> str | None:
    """MIME type for a URL suffix like "json"."""
    ext = ext.lower().lstrip(".")
    if ext in _SUFFIX_TYPES:
        return _SUFFIX_TYPES[ext]
    mime, _ = mimetypes.guess_type(f"resource.{ext}", strict=False)
    return mime


class Dispatcher:
    """
    Dispatch one request.

    Usage:
        dispatcher = Dispatcher(request, FileResolver("app"), config)
        response = dispatcher.dispatch()

    The resolver is asked for kind "app"; a plain resolver is registered
    under that kind automatically.
    """

    default_language = "en"

    def __init__(
        self,
        request: Request,
        resolver: Any,
        config: Mapping[str, Any] | None = None,
        *,
        template: TemplateRenderer | None = None,
        writers: WriterRegistry | None = None,
        i18n: Any = None,
    ) -> None:
        self.request: Request = request
        if not isinstance(resolver, ResolveManager):
            resolver = ResolveManager(app=resolver)
        self.resolver: ResolveManager = resolver
        self.writers: WriterRegistry = writers or default_writers
        self.i18n: Any = i18n
        self.application: Any = None
        self.logger = get_logger(self)

        self._template: TemplateRenderer | None = template
        self.variables: dict[str, Any] = {}

        self.vhost: VirtualHost | None = None
        self.route: str | None = None
        self.app: Any = None
        self.arguments: list[str] = []
        self.suffix: str | None = None

        self.sites: dict[str, Site] = {}
        self.set_config(config)

    # -------------------------
    # configuration
    # -------------------------

    def set_config(self, config: Mapping[str, Any] | None) -> "Dispatcher":
        self.config: Config = Config.from_mapping(config)
        self.configure_sites()
        return self

    def configure_sites(self) -> "Dispatcher":
        """(Re)build the sites from the [site] configuration."""
        self.sites = setup_sites(self.config.section("site"))
        return self

    def set_sites(self, sites: Mapping[str, Site] | Iterable[Site]) -> "Dispatcher":
        sites = sites.values() if isinstance(sites, Mapping) else sites
        self.sites = {}
        for site in sites:
            self.add_site(site)
        return self

    def add_site(self, site: Site) -> "Dispatcher":
        self.sites[site.name] = site
        return self

    def set_application(self, application: Any) -> "Dispatcher":
        self.application = application
        return self

    @property
    def dev(self) -> bool:
        return bool(self.config.dget("site", "dev", False))

    # -------------------------
    # variables
    # -------------------------

    def get_template(self) -> TemplateRenderer:
        if self._template is None:
            self._template = TemplateRenderer()
        tpl = self._template
        tpl.assign("request", self.request)
        tpl.assign("config", self.config)
        tpl.assign("dev", self.dev)
        return tpl

    def set_template(self, template: TemplateRenderer) -> "Dispatcher":
        self._template = template
        return self

    def set_variable(self, name: str, value: Any) -> "Dispatcher":
        self.variables[name] = value
        return self

    def get_variable(self, name: str) -> Any:
        builtin = {
            "request": lambda: self.request,
            "resolver": lambda: self.resolver,
            "config": lambda: self.config,
            "template": self.get_template,
            "tpl": self.get_template,
            "vhost": lambda: self.vhost,
            "app": lambda: self.application,
            "i18n": lambda: self.i18n,
        }
        if name in builtin:
            return builtin[name]()
        return self.variables.get(name)

    def get_variables(self) -> dict[str, Any]:
        """Everything an app receives: the built-in variables plus set_variable() values."""
        names = ("request", "resolver", "config", "template", "tpl", "vhost", "app", "i18n")
        out = {name: self.get_variable(name) for name in names}
        out.update(self.variables)
        return {k: v for k, v in out.items() if v is not None}

    # -------------------------
    # virtual hosts
    # -------------------------

    def determine_virtual_host(self) -> VirtualHost:
        """
        Find the VirtualHost for the request.

        Raises:
            RedirectRequest: the host redirects elsewhere (301)
            HTTPError: unknown host and the policy refuses it (404)
        """
        url = self.request.url
        vhost = self.find_virtual_host(url, self.sites.values())

        if vhost is None:
            result = self.handle_unknown_host(self.request.webroot, self.sites.values(), self.config)
            if result is None:
                raise HTTPError(404, f"Not found: {url}")
            if isinstance(result, URL):
                self.logger.info("Redirecting unknown host %s to %s", url.host, result)
                raise RedirectRequest(result, 301)

            vhost = result
            if vhost.site is not None and vhost.site.name not in self.sites:
                self.add_site(vhost.site)
        else:
            redirect = vhost.get_redirect(url)
            if redirect is not None:
                self.logger.debug("Redirecting %s to %s", url, redirect)
                raise RedirectRequest(redirect, 301)

        if self.i18n is not None and vhost.locales:
            locale = self.request.session.get("locale")
            if locale not in vhost.locales:
                locale = vhost.locales[0]
            self.i18n.set_locale(locale)

        self.vhost = vhost
        return vhost

    @staticmethod
    def handle_unknown_host(
        webroot: "URL | str",
        sites: Iterable[Site],
        config: Mapping[str, Any] | None,
    ) -> "URL | VirtualHost | None":
        """
        Apply site.unknown_host_policy to a request for an unconfigured host.

        - ERROR: None
        - REDIRECT: the URL of the best matching VirtualHost, None without one
        - IGNORE (default): a new VirtualHost for webroot, added to the best
          matching site or to a new one
        """
        webroot = URL(webroot)
        sites = list(sites)
        policy = str(Config.from_mapping(config).dget("site", "unknown_host_policy", "IGNORE")).upper()
        best_matching = Dispatcher.find_best_matching(webroot, sites)

        if policy == "ERROR" or (policy == "REDIRECT" and best_matching is None):
            return None

        if policy == "REDIRECT":
            return best_matching.url_for(webroot.path)

        url = webroot.copy().set(query=None, fragment=None)
        vhost = VirtualHost(url, Dispatcher.default_language)
        if best_matching is not None and best_matching.site is not None:
            site = best_matching.site
        else:
            site = Site(url.host or "default")
        site.add_virtual_host(vhost)
        return vhost

    @staticmethod
    def find_virtual_host(url: "URL | str", sites: Iterable[Site]) -> VirtualHost | None:
        for site in sites:
            vhost = site.match(url)
            if vhost is not None:
                return vhost
        return None

    @staticmethod
    def find_best_matching(url: "URL | str", sites: Iterable[Site]) -> VirtualHost | None:
        """The VirtualHost whose URL is textually closest to url; the first one wins ties."""
        candidate = str(URL(url).set(query=None, fragment=None))

        best: VirtualHost | None = None
        best_score = -1.0
        for site in sites:
            for vhost in site.virtual_hosts:
                _, score = similar_text(candidate, str(vhost.host))
                if score > best_score:
                    best, best_score = vhost, score
        return best

    # -------------------------
    # dispatch
    # -------------------------

    def resolve_app(self) -> Resolution | None:
        vhost = self.determine_virtual_host()
        path = vhost.get_path(self.request.url)

        resolution = self.resolver.resolve("app", path)
        if resolution is None:
            self.route = None
            self.app = None
            self.arguments = []
            self.suffix = None
            return None

        self.route = resolution.route
        self.app = resolution.path
        self.arguments = list(resolution.remainder)
        self.suffix = resolution.ext

        if self.suffix:
            mime = suffix_type(self.suffix)
            if mime is not None:
                self.request.accept.set_priority(mime, SUFFIX_PRIORITY)
        return resolution

    def _run(self) -> Result:
        self.resolve_app()
        self.request.start_session(self.vhost, self.config)

        if self.route is None:
            raise HTTPError(404, f"Could not resolve {self.request.url}")

        runner = AppRunner(self.app, self.arguments)
        runner.set_variables(self.get_variables())
        runner.set_variable("dispatcher", self)
        return runner.execute()

    def dispatch(self) -> Response:
        """
        Produce the response for the request. Never raises for request
        problems; errors become responses with a negotiated body.
        """
        try:
            result = self._run()
        except ResponseInterrupt as e:
            return e.response
        except Exception as e:
            result = Failure(e)

        if result.ok:
            return result.response

        error = result.error
        if not isinstance(error, HTTPError):
            error = HTTPError(
                500,
                f"Exception of type {type(error).__name__} thrown: {error}",
                cause=error,
            )
        self.logger.info("%s - %s: %s", error.status_text, self.request.url, error.message)

        self.prepare_error_response(error)
        return error.to_response()

    def prepare_error_response(self, error: HTTPError) -> None:
        """
        Attach a body to error in the best type the client accepts.

        text/html renders the error template, structured types get a
        record built by the writers and text/plain is left to the error.
        The template, message and trace describe the underlying cause when
        there is one; the status stays the error's.
        """
        ex = error.cause or error
        candidates = ["text/html", "text/plain", *self.writers.mime_types()]
        mime = self.request.accept.best_response_type(candidates)

        if mime == "text/html":
            try:
                tpl = self.get_template()
                tpl.assign("exception", ex)
                tpl.set_exception_template(ex, error.status_code)
                rendered = tpl.render_return()
                if isinstance(rendered, HTTPError):
                    rendered = TextResponse(rendered.to_response().text)
                error.response = rendered
            except Exception as e:
                self.logger.error("Could not render error page: %s: %s", type(e).__name__, e)
                error.response = TextResponse(
                    f"{error.status_text}\n\n{error.message}\n\n"
                    f"While rendering the error page: {type(e).__name__}: {e}\n"
                )
            return

        if mime is not None and mime != "text/plain" and mime in self.writers:
            trace = "".join(traceback.format_exception(type(ex), ex, ex.__traceback__))
            record = {
                "message": ex.message if isinstance(ex, SitewireError) else str(ex),
                "status_code": error.status_code,
                "exception": trace.rstrip("\n").split("\n"),
                "status": error.status_text,
            }
            error.response = DataResponse(record, mime, writers=self.writers)
