from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sitewire.app.application import Application
from sitewire.app.resolver import RouteResolver
from sitewire.app.response import TextResponse
from sitewire.app.request import Request
from sitewire.app.session import SESSION_COOKIE, SessionStore, default_store
from sitewire.buildTools.build import create_app

from conftest import make_environ


class Hello:
    def index(self, name: str = "world"):
        return TextResponse(f"hello {name}")


class Counter:
    def index(self, request: Request):
        visits = request.session.get("visits", 0) + 1
        request.session["visits"] = visits
        return TextResponse(f"visit {visits}")


CONFIG = {"site": {"url": {0: "http://www.example.com"}}}
ROUTES = {"/hello": Hello, "/count": Counter}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("sitewire")
    for h in list(logger.handlers):
        if getattr(h, "_sitewire", False):
            logger.removeHandler(h)
            h.close()
    logger.setLevel(logging.NOTSET)


def call(app: Application, **environ):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = headers

    body = b"".join(app(make_environ(**environ), start_response))
    return captured["status"], dict(captured["headers"]), body


def test_wsgi_call():
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=SessionStore())
    status, headers, body = call(app, host="www.example.com", path="/hello/ann")
    assert status == "200 OK"
    assert body == b"hello ann"
    assert "Set-Cookie" not in headers


def test_injected_session_store_is_used():
    mine = SessionStore()
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=mine)
    assert app.session_store is mine
    assert Request(make_environ(), session_store=mine).session_store is mine

    before = len(default_store)
    _, headers, _ = call(app, host="www.example.com", path="/count")
    session_id = headers["Set-Cookie"].split(";", 1)[0].split("=", 1)[1]
    assert session_id in mine
    assert len(mine) == 1
    assert len(default_store) == before


def test_unused_sessions_are_not_stored():
    store = SessionStore()
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=store)
    for _ in range(50):
        _, headers, _ = call(app, host="www.example.com", path="/hello")
        assert "Set-Cookie" not in headers
    assert len(store) == 0


def test_malformed_host_is_400():
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=SessionStore())
    status, _, body = call(app, host="www.example.com:abc", path="/hello")
    assert status == "400 Bad Request"
    assert b"Invalid URL" in body


def test_wsgi_not_found():
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=SessionStore())
    status, headers, body = call(app, host="www.example.com", path="/nope", headers={"Accept": "text/plain"})
    assert status == "404 Not Found"
    assert body.startswith(b"404 Not Found")


def test_session_cookie_only_once():
    store = SessionStore()
    app = Application(CONFIG, RouteResolver(ROUTES), session_store=store)
    _, headers, _ = call(app, host="www.example.com", path="/count")
    session_id = headers["Set-Cookie"].split(";", 1)[0].split("=", 1)[1]
    assert len(store) == 1

    _, headers, _ = call(
        app,
        host="www.example.com",
        path="/count",
        headers={"Cookie": f"{SESSION_COOKIE}={session_id}"},
    )
    assert "Set-Cookie" not in headers
    assert len(store) == 1


def test_generated_project_serves_index(tmp_path: Path):
    root = create_app(tmp_path, "demo")
    app = Application.from_directory(root, session_store=SessionStore())

    status, headers, body = call(app, host="localhost:8080", path="/")
    assert status == "200 OK"
    assert b"<h1>demo</h1>" in body
    assert (root / "log" / "demo.log").is_file()


def test_from_directory_without_config(tmp_path: Path):
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "index.py").write_text(
        "from sitewire import TextResponse\n"
        "response = TextResponse('root of ' + str(vhost.host))\n",
        encoding="utf-8",
    )
    app = Application.from_directory(tmp_path, session_store=SessionStore())
    status, _, body = call(app, host="anything.example", path="/")
    assert status == "200 OK"
    assert body == b"root of http://anything.example/"
