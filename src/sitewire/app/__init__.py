"""Application-layer public API for sitewire."""

# ---- Request / Response ----
from .request import Request, File
from .response import (
    Response,
    HtmlResponse,
    TextResponse,
    JsonResponse,
    DataResponse,
    Redirect,
    ResponseInterrupt,
    RedirectRequest,
)
from .url import URL
from .accept import Accept

# ---- Session / Cookie ----
from .cookie import Cookie, RequestCookies
from .session import FlashMessage, Session, SessionStore

# ---- Configuration ----
from .config import Config

# ---- Resolution ----
from .resolver import Resolution, FileResolver, RouteResolver, ResolveManager

# ---- Templates / Writers ----
from .template import TemplateRenderer, Markup
from .writers import WriterRegistry

# ---- Data access ----
from .db import DatabaseManager
from .model import Model

# ---- WSGI ----
from .application import Application


__all__ = [
    # request / response
    "Request",
    "File",
    "Response",
    "HtmlResponse",
    "TextResponse",
    "JsonResponse",
    "DataResponse",
    "Redirect",
    "ResponseInterrupt",
    "RedirectRequest",
    "URL",
    "Accept",

    # session / cookie
    "Cookie",
    "RequestCookies",
    "FlashMessage",
    "Session",
    "SessionStore",

    # configuration
    "Config",

    # resolution
    "Resolution",
    "FileResolver",
    "RouteResolver",
    "ResolveManager",

    # templates / writers
    "TemplateRenderer",
    "Markup",
    "WriterRegistry",

    # data access
    "DatabaseManager",
    "Model",

    # wsgi
    "Application",
]
