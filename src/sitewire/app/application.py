"""WSGI entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from ..core import log
from ..core.error import HTTPError, SitewireError
from .config import Config
from .request import Request
from .resolver import FileResolver, ResolveManager
from .response import Response
from .session import SessionStore, default_store
from .template import TemplateRenderer
from .writers import WriterRegistry, default_writers


class Application:
    """
    A WSGI application serving the sites in config.

    Every request gets its own Request and Dispatcher; the resolver, the
    session store and the writers are shared.

    Usage (wsgi.py):
        from sitewire import Application
        app = Application.from_directory(Path(__file__).parent)
    """

    def __init__(
        self,
        config: Mapping[str, Any] | None,
        resolver: Any,
        template_dirs: Iterable[str | Path] = (),
        writers: WriterRegistry | None = None,
        variables: Mapping[str, Any] | None = None,
        *,
        session_store: SessionStore | None = None,
        i18n: Any = None,
    ) -> None:
        self.config: Config = Config.from_mapping(config)
        if not isinstance(resolver, ResolveManager):
            resolver = ResolveManager(app=resolver)
        self.resolver: ResolveManager = resolver
        self.template_dirs: list[Path] = [Path(d) for d in template_dirs]
        self.writers: WriterRegistry = writers or default_writers
        self.variables: dict[str, Any] = dict(variables or {})
        self.session_store: SessionStore = session_store if session_store is not None else default_store
        self.i18n: Any = i18n
        self.logger = log.get_logger(self)

    @classmethod
    def from_directory(cls, root: str | Path, **kwargs: Any) -> "Application":
        """
        Build the application of a project directory:

            <root>/config.ini   configuration (optional)
            <root>/app/         scripts served by a FileResolver
            <root>/templates/   templates (optional)

        A [log] section (level, path) configures logging.
        """
        root = Path(root)
        ini = root / "config.ini"
        config = Config.from_ini(ini) if ini.is_file() else Config()

        log_cfg = config.section("log")
        if log_cfg:
            log_path = log_cfg.get("path")
            if log_path and not Path(log_path).is_absolute():
                log_path = str(root / log_path)
            log.configure(str(log_cfg.get("level", "INFO")).upper(), log_path)

        templates = root / "templates"
        template_dirs = [templates] if templates.is_dir() else []
        return cls(config, FileResolver(root / "app"), template_dirs, **kwargs)

    def make_template(self) -> TemplateRenderer:
        return TemplateRenderer(*self.template_dirs)

    def handle(self, request: Request) -> Response:
        """Dispatch one request and finish its session."""
        from ..dispatch.dispatcher import Dispatcher

        dispatcher = Dispatcher(
            request,
            self.resolver,
            self.config,
            template=self.make_template(),
            writers=self.writers,
            i18n=self.i18n,
        )
        dispatcher.set_application(self)
        for name, value in self.variables.items():
            dispatcher.set_variable(name, value)

        res = dispatcher.dispatch()

        request.save_session()
        cookie = request.session_cookie()
        if cookie:
            res.append_header("Set-Cookie", cookie)
        return res

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        try:
            request = Request(environ, session_store=self.session_store)
        except SitewireError as e:
            self.logger.info("Bad request: %s", e.message)
            res = HTTPError(400, e.message, cause=e).to_response()
        else:
            res = self.handle(request)
        start_response(res.status_text, res.headers)
        return [res.body]
