from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Any, Iterable
import html
import re
import traceback

from ..core.error import (
    HTTPError,
    SitewireError,
    TemplateKeyNotSetError,
    TemplateNotFoundError,
    TemplatesInvalidTypeError,
)
from ..core.http_status_codes import http_status_codes
from ..core.log import get_logger
from .response import HtmlResponse, Response


_VAR_RE = re.compile(r"\{\{\s*(!?)([\w\.]+)\s*\}\}")
_EXTENDS_RE = re.compile(r"<Extends\s+([\w\./]+)\s*/>")
_INSERT_RE = re.compile(r"<Insert\s+([\w\.]+)>(.*?)</Insert>", flags=re.DOTALL)
_IMPORT_RE = re.compile(r"<Import\s+([\w\./]+)\s*/>")


def bundled_template_dir() -> Path:
    return Path(str(resources.files("sitewire.assets").joinpath("templates")))


class Markup(str):
    """A string that is inserted without escaping."""


def _lookup(values: dict[str, Any], key: str) -> Any:
    """Resolve "a.b.c" through mappings and attributes."""
    head, *rest = key.split(".")
    if head not in values:
        raise TemplateKeyNotSetError(key)
    value = values[head]
    for part in rest:
        if isinstance(value, dict):
            value = value.get(part, "")
        else:
            value = getattr(value, part, "")
    return value


class Template:
    """
    Represents an HTML template with optional inheritance, insertions, and imports.

    `{{ key }}` is replaced by the HTML-escaped value, `{{ !key }}` by the
    raw value. Dotted keys read attributes or mapping items.
    """

    def __init__(self, template: str, search_path: Iterable[str | Path], **kwargs: Any) -> None:
        self.template: str = template
        self.search_path: list[Path] = [Path(p) for p in search_path]
        self.kwargs: dict[str, Any] = kwargs
        self._doc: str = self._assemble()

    def _find(self, template: str) -> Path:
        template_file = template if template.endswith(".html") else f"{template}.html"
        for base in self.search_path:
            path = base / template_file
            if path.is_file():
                return path
        raise TemplateNotFoundError(template_file)

    def _open(self, template: str, **kwargs: Any) -> str:
        doc = self._find(template).read_text(encoding="utf-8")
        return self._render(doc, **kwargs)

    def _render(self, doc: str, **kwargs: Any) -> str:
        """
        Replace {{key}} with kwargs values in the template.
        """
        def replace(m: re.Match) -> str:
            raw, key = m.group(1), m.group(2)
            value = _lookup(kwargs, key)
            if value is None:
                return ""
            if raw or isinstance(value, Markup):
                return str(value)
            return html.escape(str(value))

        return _VAR_RE.sub(replace, doc)

    def _assemble(self) -> str:
        doc = self._open(self.template, **self.kwargs)

        # Handle <Extends base /> logic
        extends_match = _EXTENDS_RE.search(doc)
        if extends_match:
            base_template = extends_match.group(1)
            format_values = self.kwargs.copy()
            for target, content in _INSERT_RE.findall(doc):
                format_values[target] = Markup(content.strip())
            doc = self._open(base_template, **format_values)

        # Handle <Import template /> logic
        def replace_import(m: re.Match) -> str:
            return self._open(m.group(1), **self.kwargs)

        return _IMPORT_RE.sub(replace_import, doc)

    def __repr__(self) -> str:
        return self._doc

    __str__ = __repr__


class TemplateRenderer:
    """
    Render collaborator handed to apps as `template` / `tpl`.

    Values are collected with assign() and rendered into the template set
    with set_template() or set_exception_template().
    """

    def __init__(self, *template_dirs: str | Path, include_bundled: bool = True) -> None:
        self.search_path: list[Path] = [bundled_template_dir()] if include_bundled else []
        self._bundled: bool = include_bundled
        for d in template_dirs:
            self.add_directory(d)

        self.values: dict[str, Any] = {}
        self.template: str | None = None
        self.status: int = 200
        self.logger = get_logger(self)

    def add_directory(self, path: str | Path) -> None:
        p = Path(path)
        if not p.is_dir():
            raise TemplatesInvalidTypeError(p)
        # application templates shadow the bundled ones
        at = len(self.search_path) - 1 if self._bundled else len(self.search_path)
        self.search_path.insert(at, p)

    def assign(self, name: str, value: Any) -> "TemplateRenderer":
        self.values[name] = value
        return self

    def set_template(self, name: str) -> "TemplateRenderer":
        self.template = name
        return self

    def exists(self, name: str) -> bool:
        name = name if name.endswith(".html") else f"{name}.html"
        return any((base / name).is_file() for base in self.search_path)

    def set_exception_template(self, exception: BaseException, status: int | None = None) -> "TemplateRenderer":
        """
        Select error/<ClassName>.html for the exception, walking its MRO.

        Also assigns the values the bundled error pages use. status
        defaults to the exception's status_code, else 500.
        """
        for cls in type(exception).__mro__:
            name = f"error/{cls.__name__}"
            if self.exists(name):
                self.template = name
                break
        else:
            self.template = "error/HTTPError"

        if status is None:
            status = getattr(exception, "status_code", 500)
        message = exception.message if isinstance(exception, SitewireError) else str(exception)
        self.status = status
        self.assign("status_code", status)
        self.assign("status", http_status_codes.get(status, "Internal Server Error"))
        self.assign("message", message)
        self.assign("exception_type", type(exception).__name__)
        trace = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        # traces are only shown in development mode
        self.assign("trace", trace if self.values.get("dev") else "")
        return self

    def render(self, name: str | None = None, **kwargs: Any) -> str:
        name = name or self.template
        if name is None:
            raise TemplateNotFoundError("<none>")
        values = {**self.values, **kwargs}
        return str(Template(name, self.search_path, **values))

    def render_return(self) -> "Response | HTTPError":
        """
        Render the selected template into a response.

        Template problems are returned as an HTTPError rather than raised.
        """
        try:
            return HtmlResponse(self.render(), status=self.status)
        except SitewireError as e:
            self.logger.error("Could not render template %s: %s", self.template, e)
            return HTTPError(500, f"Could not render template: {e.message}", cause=e)
