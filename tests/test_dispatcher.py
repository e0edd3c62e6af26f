from __future__ import annotations

import json
from pathlib import Path

import pytest

from sitewire.app.request import Request
from sitewire.app.resolver import RouteResolver
from sitewire.app.response import TextResponse
from sitewire.app.session import SessionStore
from sitewire.app.url import URL
from sitewire.app.template import TemplateRenderer
from sitewire.core.error import HTTPError, ModelNotFoundError
from sitewire.dispatch.dispatcher import Dispatcher
from sitewire.dispatch.site import Site, VirtualHost, setup_sites

from conftest import make_environ


CONFIG = {
    "site": {
        "url": {0: "https://www.example.com", 1: "https://example.com"},
        "redirect": {1: "https://www.example.com"},
        "language": {0: ["en", "nl"]},
    },
}


class Images:
    def index(self, *args):
        return TextResponse("index " + ",".join(args))

    def show(self, image_id: int):
        return TextResponse(f"image {image_id}")

    def boom(self):
        raise RuntimeError("kaboom")


class Echo:
    def index(self, request: Request, dispatcher: Dispatcher):
        assert dispatcher.request is request
        return TextResponse(request.url.path)


def nothing():
    return None


ROUTES = {
    "/images": Images,
    "/echo": Echo,
    "/nothing": nothing,
}


class FakeI18n:
    def __init__(self) -> None:
        self.locale = None

    def set_locale(self, locale: str) -> None:
        self.locale = locale


def make_dispatcher(
    path: str = "/",
    *,
    host: str = "www.example.com",
    scheme: str = "https",
    accept: str | None = None,
    config: dict | None = None,
    **kwargs,
) -> Dispatcher:
    headers = {"Accept": accept} if accept else None
    env = make_environ(scheme=scheme, host=host, path=path, headers=headers)
    request = Request(env, session_store=SessionStore())
    return Dispatcher(request, RouteResolver(ROUTES), CONFIG if config is None else config, **kwargs)


def test_dispatch_calls_controller():
    res = make_dispatcher("/images/show/3").dispatch()
    assert res.status_code == 200
    assert res.body == b"image 3"


def test_dispatch_state_after_resolving():
    dispatcher = make_dispatcher("/images/foo/bar")
    dispatcher.resolve_app()
    assert dispatcher.route == "/images"
    assert dispatcher.app is Images
    assert dispatcher.arguments == ["foo", "bar"]
    assert dispatcher.suffix is None
    assert str(dispatcher.vhost.host) == "https://www.example.com/"


def test_dispatch_injects_request_and_dispatcher():
    res = make_dispatcher("/echo").dispatch()
    assert res.status_code == 200
    assert res.body == b"/echo"


def test_unresolved_route_is_404():
    dispatcher = make_dispatcher("/foo")
    res = dispatcher.dispatch()
    assert res.status_code == 404
    assert dispatcher.route is None
    assert dispatcher.app is None
    assert dispatcher.arguments == []


def test_error_page_html_by_default():
    res = make_dispatcher("/foo").dispatch()
    assert res.content_type == "text/html"
    assert b"404" in res.body
    assert b"Could not resolve https://www.example.com/foo" in res.body


def test_error_body_json():
    res = make_dispatcher("/foo", accept="application/json").dispatch()
    assert res.status_code == 404
    assert res.content_type == "application/json"
    data = json.loads(res.body)
    assert data["status_code"] == 404
    assert data["status"] == "404 Not Found"
    assert data["message"] == "Could not resolve https://www.example.com/foo"
    assert isinstance(data["exception"], list)


def test_error_body_xml():
    res = make_dispatcher("/foo", accept="application/xml").dispatch()
    assert res.status_code == 404
    assert res.content_type == "application/xml"
    assert b"<status_code>404</status_code>" in res.body


def test_error_body_plain_text():
    res = make_dispatcher("/foo", accept="text/plain").dispatch()
    assert res.status_code == 404
    assert res.content_type == "text/plain"
    assert res.body == b"404 Not Found\n\nCould not resolve https://www.example.com/foo\n"


def test_unexpected_exception_becomes_500():
    res = make_dispatcher("/images/boom", accept="application/json").dispatch()
    assert res.status_code == 500
    data = json.loads(res.body)
    assert data["message"] == "kaboom"
    assert data["status"] == "500 Internal Server Error"
    assert data["exception"][-1] == "RuntimeError: kaboom"


def test_error_page_uses_template_of_the_cause(tmp_path: Path):
    (tmp_path / "error").mkdir()
    (tmp_path / "error" / "RuntimeError.html").write_text(
        "runtime {{ status_code }}: {{ message }}", encoding="utf-8"
    )
    res = make_dispatcher("/images/boom", template=TemplateRenderer(tmp_path)).dispatch()
    assert res.status_code == 500
    assert res.content_type == "text/html"
    assert res.body == b"runtime 500: kaboom"


def test_model_lookup_error_keeps_its_status(tmp_path: Path):
    (tmp_path / "error").mkdir()
    (tmp_path / "error" / "ModelNotFoundError.html").write_text(
        "{{ status_code }} {{ status }}: {{ message }}", encoding="utf-8"
    )
    dispatcher = make_dispatcher("/x", template=TemplateRenderer(tmp_path))
    error = HTTPError(404, "Image not found: 7", cause=ModelNotFoundError("Image", 7))
    dispatcher.prepare_error_response(error)
    res = error.to_response()
    assert res.status_code == 404
    assert res.body == b"404 Not Found: Image not found: 7"


def test_suffix_outranks_accept_header():
    dispatcher = make_dispatcher("/nothing.json", accept="text/html")
    res = dispatcher.dispatch()
    assert dispatcher.suffix == "json"
    assert dispatcher.request.accept.priority("application/json") == 1.5
    assert res.status_code == 500
    assert res.content_type == "application/json"
    assert json.loads(res.body)["message"] == "App did not produce any response"


def test_suffix_on_controller_method_outranks_accept_header():
    dispatcher = make_dispatcher("/images/show.json", accept="text/html")
    res = dispatcher.dispatch()
    assert dispatcher.suffix == "json"
    assert dispatcher.arguments == ["show.json"]
    assert res.status_code == 400
    assert res.content_type == "application/json"
    assert json.loads(res.body)["message"] == "Invalid arguments - missing integer as argument 0"


def test_virtual_host_redirect_is_301():
    res = make_dispatcher("/foo/bar", host="example.com").dispatch()
    assert res.status_code == 301
    assert res.header("Location") == "https://www.example.com/foo/bar"


def test_unknown_host_error_policy():
    config = {"site": {**CONFIG["site"], "unknown_host_policy": "error"}}
    res = make_dispatcher("/images", host="evil.example.net", config=config).dispatch()
    assert res.status_code == 404


def test_unknown_host_redirect_policy():
    config = {"site": {**CONFIG["site"], "unknown_host_policy": "REDIRECT"}}
    res = make_dispatcher("/images", host="www.example.co", config=config).dispatch()
    assert res.status_code == 301
    assert res.header("Location") == "https://www.example.com/"


def test_unknown_host_joins_best_matching_site():
    dispatcher = make_dispatcher("/images/show/1", host="evil.example.net")
    res = dispatcher.dispatch()
    assert res.status_code == 200
    assert str(dispatcher.vhost.host) == "https://evil.example.net/"
    assert dispatcher.vhost.site is dispatcher.sites["default"]
    assert dispatcher.vhost.locales == ["en"]


def test_unknown_host_without_sites_gets_new_site():
    dispatcher = make_dispatcher("/x", host="evil.example.net", config={})
    dispatcher.determine_virtual_host()
    assert str(dispatcher.vhost.host) == "https://evil.example.net/"
    assert dispatcher.vhost.site is not None
    assert dispatcher.sites[dispatcher.vhost.site.name] is dispatcher.vhost.site


def test_handle_unknown_host_policies():
    sites = list(setup_sites(CONFIG["site"]).values())
    webroot = URL("https://evil.example.net/")

    assert Dispatcher.handle_unknown_host(webroot, sites, {"site": {"unknown_host_policy": "ERROR"}}) is None
    assert Dispatcher.handle_unknown_host(webroot, [], {"site": {"unknown_host_policy": "ERROR"}}) is None

    assert Dispatcher.handle_unknown_host(webroot, [], {"site": {"unknown_host_policy": "REDIRECT"}}) is None
    target = Dispatcher.handle_unknown_host(webroot, sites, {"site": {"unknown_host_policy": "redirect"}})
    assert isinstance(target, URL)
    assert target.host in ("www.example.com", "example.com")

    assert isinstance(Dispatcher.handle_unknown_host(webroot, sites, {}), VirtualHost)
    assert isinstance(Dispatcher.handle_unknown_host(webroot, [], None), VirtualHost)


def test_find_best_matching():
    bar = VirtualHost("www.foo.bar")
    xxx = VirtualHost("www.foo.xxx")
    site = Site()
    site.add_virtual_host(bar)
    site.add_virtual_host(xxx)

    assert Dispatcher.find_best_matching("www.foo.baz", [site]) is bar
    assert Dispatcher.find_best_matching("www.foo.xxy", [site]) is xxx
    assert Dispatcher.find_best_matching("www.foo.baz", []) is None


def test_find_best_matching_ties_keep_first():
    first = VirtualHost("http://aaa.example")
    second = VirtualHost("http://aaa.example")
    site = Site()
    site.add_virtual_host(first)
    site.add_virtual_host(second)
    assert Dispatcher.find_best_matching("http://aab.example/?q=1", [site]) is first


def test_locale_from_session():
    i18n = FakeI18n()
    dispatcher = make_dispatcher("/images", i18n=i18n)
    dispatcher.request.session["locale"] = "nl"
    dispatcher.determine_virtual_host()
    assert i18n.locale == "nl"


def test_locale_defaults_to_first_supported():
    i18n = FakeI18n()
    dispatcher = make_dispatcher("/images", i18n=i18n)
    dispatcher.request.session["locale"] = "fr"
    dispatcher.determine_virtual_host()
    assert i18n.locale == "en"


def test_determine_virtual_host_raises_for_error_policy():
    config = {"site": {**CONFIG["site"], "unknown_host_policy": "ERROR"}}
    dispatcher = make_dispatcher("/", host="evil.example.net", config=config)
    with pytest.raises(HTTPError) as e:
        dispatcher.determine_virtual_host()
    assert e.value.status_code == 404


def test_variables():
    dispatcher = make_dispatcher("/")
    dispatcher.set_variable("db", "sqlite")
    assert dispatcher.get_variable("db") == "sqlite"
    assert dispatcher.get_variable("request") is dispatcher.request
    assert dispatcher.get_variable("tpl") is dispatcher.get_variable("template")
    assert "vhost" not in dispatcher.get_variables()
