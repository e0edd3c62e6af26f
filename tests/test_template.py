from __future__ import annotations

from pathlib import Path

import pytest

from sitewire.app.response import HtmlResponse
from sitewire.app.template import Markup, Template, TemplateRenderer
from sitewire.core.error import HTTPError, TemplateKeyNotSetError, TemplatesInvalidTypeError


class GoneError(HTTPError):
    def __init__(self) -> None:
        super().__init__(410, "This page is gone")


@pytest.fixture
def templates(tmp_path: Path) -> Path:
    root = tmp_path / "templates"
    (root / "error").mkdir(parents=True)
    (root / "base.html").write_text("<main>{{ content }}</main>", encoding="utf-8")
    (root / "page.html").write_text(
        "<Extends base />\n<Insert content>Hi {{ name }}<Import footer /></Insert>",
        encoding="utf-8",
    )
    (root / "footer.html").write_text("<footer>{{ site }}</footer>", encoding="utf-8")
    (root / "raw.html").write_text("{{ name }}|{{ !name }}", encoding="utf-8")
    (root / "error" / "GoneError.html").write_text("gone: {{ message }}", encoding="utf-8")
    return root


def test_extends_insert_and_import(templates: Path):
    out = str(Template("page", [templates], name="Ann", site="example"))
    assert out == "<main>Hi Ann<footer>example</footer></main>"


def test_values_are_escaped(templates: Path):
    out = str(Template("raw", [templates], name="<b>"))
    assert out == "&lt;b&gt;|<b>"

    out = str(Template("raw", [templates], name=Markup("<b>")))
    assert out == "<b>|<b>"


def test_missing_key(templates: Path):
    with pytest.raises(TemplateKeyNotSetError):
        Template("raw", [templates])


def test_renderer_rejects_missing_directory(tmp_path: Path):
    with pytest.raises(TemplatesInvalidTypeError):
        TemplateRenderer(tmp_path / "nope")


def test_renderer_render(templates: Path):
    tpl = TemplateRenderer(templates)
    tpl.assign("name", "Bob").assign("site", "x").set_template("page")
    res = tpl.render_return()
    assert isinstance(res, HtmlResponse)
    assert res.body == b"<main>Hi Bob<footer>x</footer></main>"


def test_exception_template_by_class_name(templates: Path):
    tpl = TemplateRenderer(templates)
    tpl.set_exception_template(GoneError())
    assert tpl.template == "error/GoneError"
    res = tpl.render_return()
    assert res.status_code == 410
    assert res.body == b"gone: This page is gone"


def test_exception_template_falls_back_to_bundled():
    tpl = TemplateRenderer()
    tpl.set_exception_template(HTTPError(404, "nothing here"))
    assert tpl.template == "error/HTTPError"
    res = tpl.render_return()
    assert res.status_code == 404
    assert b"nothing here" in res.body
    assert b"Traceback" not in res.body


def test_exception_trace_only_in_dev():
    try:
        raise HTTPError(500, "with trace")
    except HTTPError as e:
        error = e

    tpl = TemplateRenderer()
    tpl.assign("dev", True)
    tpl.set_exception_template(error)
    res = tpl.render_return()
    assert b"Traceback" in res.body


def test_render_problem_is_returned_as_error(templates: Path):
    tpl = TemplateRenderer(templates)
    tpl.set_template("does-not-exist")
    res = tpl.render_return()
    assert isinstance(res, HTTPError)
    assert res.status_code == 500
