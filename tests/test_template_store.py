"""Tests for warbler.templating.store: HTML templates and their dependency graph."""

import pytest

from warbler.errors import TemplateParseError
from warbler.fs import MapFile, MapFS
from warbler.templating.store import TemplateStore, parse_layout, scan_dependencies, template_name

LAYOUT = "<main>{% block content %}{% endblock %}</main>"
PAGE = "<!--layout:main-->\n{% block content %}Hello{% endblock %}"


def _site(**files: str) -> MapFS:
    return MapFS({name.replace("__", "/") + ".html": MapFile(source.encode()) for name, source in files.items()})


def _store(fsys: MapFS) -> TemplateStore:
    store = TemplateStore()
    for info in fsys.walk():
        store.load(fsys, info.name)
    return store


class TestParsing:
    def test_template_name(self) -> None:
        assert template_name("components/nav.html") == "components/nav"

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("<!--layout:main-->", "layouts/main"),
            ("  <!-- layout : main -->  ", "layouts/main"),
            ("<!--layout:admin/base.html-->", "layouts/admin/base"),
            ("<!--layout:-->", ""),
            ("<h1>Hello</h1>", ""),
            ("<h1>Hello</h1><!--layout:main-->", "layouts/main"),
        ],
    )
    def test_parse_layout(self, line: str, expected: str) -> None:
        assert parse_layout(line) == expected

    def test_scan_dependencies(self) -> None:
        source = (
            '{% extends "layouts/main" %}'
            '{% include "components/nav.html" %}'
            "{% from 'components/forms' import field %}"
            '{% import "components/macros" as m %}'
            '{% include "pages/self" %}'
        )
        assert scan_dependencies(source, "pages/self") == {
            "layouts/main",
            "components/nav",
            "components/forms",
            "components/macros",
        }


class TestLoad:
    def test_plain_template(self) -> None:
        fsys = _site(views__card="<div>{{ title }}</div>")
        store = _store(fsys)
        tpl = store.get("views/card")
        assert tpl is not None
        assert tpl.render({"title": "Hi"}) == "<div>Hi</div>"

    def test_autoescape(self) -> None:
        store = _store(_site(views__card="{{ title }}"))
        assert store.get("views/card").render({"title": "<b>"}) == "&lt;b&gt;"

    def test_layout_marker(self) -> None:
        fsys = _site(layouts__main=LAYOUT)
        store = _store(fsys)
        fsys["pages/index.html"] = MapFile(PAGE.encode())
        page = store.load(fsys, "pages/index.html")
        assert page.layout == "layouts/main"
        assert "<main>Hello</main>" in page.render({})

    def test_dependency_symmetry(self) -> None:
        fsys = _site(components__nav="<nav>menu</nav>", layouts__main=LAYOUT)
        store = _store(fsys)
        fsys["pages/index.html"] = MapFile(b'<!--layout:main-->\n{% block content %}{% include "components/nav" %}{% endblock %}')
        store.load(fsys, "pages/index.html")

        page = store.get("pages/index")
        assert page.dependencies == {"layouts/main", "components/nav"}
        for dep in page.dependencies:
            assert "pages/index" in store.get(dep).dependents
        assert "<main><nav>menu</nav></main>" in page.render({})

    def test_parse_error_is_reported_and_store_unchanged(self) -> None:
        fsys = _site(views__broken="{% if %}")
        store = TemplateStore()
        with pytest.raises(TemplateParseError) as exc_info:
            store.load(fsys, "views/broken.html")
        assert exc_info.value.path == "views/broken.html"
        assert "views/broken" not in store

    def test_undecodable_bytes_are_a_parse_error(self) -> None:
        fsys = MapFS({"views/latin.html": MapFile("caf\xe9".encode("latin-1"))})
        store = TemplateStore()
        with pytest.raises(TemplateParseError) as exc_info:
            store.load(fsys, "views/latin.html")
        assert exc_info.value.path == "views/latin.html"
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)
        assert "views/latin" not in store

    def test_funcs(self) -> None:
        fsys = _site(views__shout="{{ shout(name) }}|{{ upper(name) }}")
        store = TemplateStore(funcs={"shout": lambda s: s + "!"})
        store.load(fsys, "views/shout.html")
        assert store.get("views/shout").render({"name": "hey"}) == "hey!|HEY"

    def test_closure(self) -> None:
        fsys = _site(components__a="a", components__b='{% include "components/a" %}', views__v='{% include "components/b" %}')
        store = _store(fsys)
        assert set(store.closure(store.get("views/v"))) == {"views/v", "components/b", "components/a"}


class TestReload:
    def test_layout_change_cascades_to_pages(self) -> None:
        fsys = _site(layouts__main=LAYOUT)
        store = _store(fsys)
        fsys["pages/index.html"] = MapFile(PAGE.encode())
        page = store.load(fsys, "pages/index.html")

        fsys["layouts/main.html"] = MapFile(b"<section>{% block content %}{% endblock %}</section>")
        assert store.reload(fsys, "layouts/main") is True
        assert "<section>Hello</section>" in page.render({})

    def test_transitive_cascade(self) -> None:
        fsys = _site(components__a="v1", components__b='[{% include "components/a" %}]', views__v='({% include "components/b" %})')
        store = _store(fsys)
        view = store.get("views/v")
        assert view.render({}) == "([v1])"

        fsys["components/a.html"] = MapFile(b"v2")
        store.reload(fsys, "components/a")
        assert view.render({}) == "([v2])"

    def test_record_is_updated_in_place(self) -> None:
        fsys = _site(views__v="one")
        store = _store(fsys)
        before = store.get("views/v")
        fsys["views/v.html"] = MapFile(b"two")
        store.load(fsys, "views/v.html")
        assert store.get("views/v") is before
        assert before.render({}) == "two"

    def test_parse_error_keeps_previous_version(self) -> None:
        fsys = _site(views__v="good")
        store = _store(fsys)
        fsys["views/v.html"] = MapFile(b"{% if %}")
        with pytest.raises(TemplateParseError):
            store.reload(fsys, "views/v")
        assert store.get("views/v").render({}) == "good"

    def test_missing_dependent_is_dropped(self) -> None:
        fsys = _site(layouts__main=LAYOUT)
        store = _store(fsys)
        fsys["pages/index.html"] = MapFile(PAGE.encode())
        store.load(fsys, "pages/index.html")

        del fsys["pages/index.html"]
        fsys["layouts/main.html"] = MapFile(b"<div>{% block content %}{% endblock %}</div>")
        store.reload(fsys, "layouts/main")
        assert "pages/index" not in store.get("layouts/main").dependents

    def test_undecodable_dependent_does_not_stop_cascade(self) -> None:
        fsys = _site(layouts__main=LAYOUT, pages__a=PAGE, pages__b=PAGE)
        store = _store(fsys)
        first, second = store.get("pages/a"), store.get("pages/b")

        fsys["pages/a.html"] = MapFile(b"\xff\xfe")
        fsys["layouts/main.html"] = MapFile(b"<article>{% block content %}{% endblock %}</article>")
        assert store.reload(fsys, "layouts/main") is True

        assert second.render({}) == "<article>Hello</article>"
        assert first.render({}) == "<main>Hello</main>"

    def test_unknown_name(self) -> None:
        assert TemplateStore().reload(MapFS(), "views/nope") is False

    def test_dependency_change_drops_old_edge(self) -> None:
        fsys = _site(components__a="a", components__b="b", views__v='{% include "components/a" %}')
        store = _store(fsys)
        fsys["views/v.html"] = MapFile(b'{% include "components/b" %}')
        store.reload(fsys, "views/v")
        assert "views/v" not in store.get("components/a").dependents
        assert "views/v" in store.get("components/b").dependents
