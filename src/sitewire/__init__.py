"""
SITEWIRE - virtual-host aware request dispatch for WSGI.

Top-level public API exports the most commonly used types.
"""

from __future__ import annotations

from .app import (
    Application,
    Request,
    Response,
    HtmlResponse,
    TextResponse,
    JsonResponse,
    DataResponse,
    Redirect,
    RedirectRequest,
    ResponseInterrupt,
    URL,
    Config,
    FileResolver,
    RouteResolver,
    ResolveManager,
    TemplateRenderer,
    Model,
)
from .dispatch import (
    VirtualHost,
    Site,
    setup_sites,
    Dispatcher,
    AppRunner,
    Arguments,
)
from .core.error import HTTPError

__all__ = [
    "Application",
    "Request",
    "Response",
    "HtmlResponse",
    "TextResponse",
    "JsonResponse",
    "DataResponse",
    "Redirect",
    "RedirectRequest",
    "ResponseInterrupt",
    "URL",
    "Config",
    "FileResolver",
    "RouteResolver",
    "ResolveManager",
    "TemplateRenderer",
    "Model",
    "VirtualHost",
    "Site",
    "setup_sites",
    "Dispatcher",
    "AppRunner",
    "Arguments",
    "HTTPError",
    "__version__",
]

__version__ = "0.1.0"
