"""End-to-end tests for warbler.App through the test client."""

import gzip
import logging
from typing import Any

import pytest

from warbler import App, AppConfig, ConfigurationError, HandleCancelled, HTTPError, NotFound
from warbler.context import Context, get_context
from warbler.fs import EmbedFS, MapFile, MapFS
from warbler.fsnotify import Event, Op
from warbler.htmx import HtmxInterceptor
from warbler.http.compress import DeflateCompressor, GzipCompressor
from warbler.middleware import Next
from warbler.routing.route import with_metadata, with_viewer
from warbler.server.handler import LOG_ID_HEADER
from warbler.testing import TestClient
from warbler.viewers import StringViewer, XmlViewer


def _site(files: dict[str, str]) -> MapFS:
    return MapFS({name: MapFile(source.encode()) for name, source in files.items()})


USERS = [{"name": "ada"}, {"name": "grace"}]

USERS_PAGE = "<ul>{% for user in data %}<li>{{ user['name'] }}</li>{% end %}</ul>"


async def list_users(ctx: Context) -> Any:
    return USERS


class TestHandlers:
    async def test_default_viewer_is_json(self) -> None:
        app = App()
        app.get("/users", list_users)
        async with TestClient(app) as client:
            response = await client.get("/users")
        assert response.status == 200
        assert response.content_type == "application/json; charset=utf-8"
        assert response.json() == USERS

    async def test_sync_handler_and_path_params(self) -> None:
        def user(ctx: Context) -> dict[str, Any]:
            return {"id": ctx.request.path_params["id"]}

        app = App()
        app.get("/users/{id:int}", user)
        async with TestClient(app) as client:
            response = await client.get("/users/42")
        assert response.json() == {"id": 42}

    async def test_decorator(self) -> None:
        app = App()

        @app.route("POST /echo")
        async def echo(ctx: Context) -> Any:
            return await ctx.request.json()

        async with TestClient(app) as client:
            response = await client.post("/echo", json={"a": 1})
        assert response.json() == {"a": 1}

    async def test_handler_writes_directly(self) -> None:
        async def created(ctx: Context) -> None:
            ctx.write_header("Location", "/things/1")
            ctx.write_status(201)

        app = App()
        app.post("/things", created)
        async with TestClient(app) as client:
            response = await client.post("/things")
        assert response.status == 201
        assert response.headers.get("location") == "/things/1"
        assert response.body == b""

    async def test_get_context(self) -> None:
        async def whoami(ctx: Context) -> str:
            return get_context().request.path

        app = App()
        app.get("/me", whoami, with_viewer(StringViewer()))
        async with TestClient(app) as client:
            response = await client.get("/me")
        assert response.text == "/me"

    async def test_head(self) -> None:
        app = App()
        app.get("/users", list_users)
        async with TestClient(app) as client:
            response = await client.head("/users")
        assert response.status == 200
        assert response.body == b""
        assert int(response.headers.get("content-length") or 0) > 0

    def test_metadata(self) -> None:
        app = App()
        app.get("/users", list_users, with_metadata("title", "Users"))
        (route,) = app.routes
        assert route.options.string("title") == "Users"

    @pytest.mark.parametrize("pattern", ["FETCH /x", "GET", "", "GET exa mple.com/x"])
    def test_bad_pattern(self, pattern: str) -> None:
        app = App()
        with pytest.raises(ConfigurationError):
            app.handle_func(pattern, list_users)


class TestNegotiation:
    def _app(self) -> App:
        app = App(fsys=_site({"pages/users.html": USERS_PAGE, "views/names.html": "{{ data | length }} users"}))
        app.get("/users", list_users)
        return app

    async def test_browser_gets_page(self) -> None:
        async with TestClient(self._app()) as client:
            response = await client.get("/users", headers={"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"})
        assert response.content_type == "text/html; charset=utf-8"
        assert response.text == "<ul><li>ada</li><li>grace</li></ul>"

    async def test_api_client_gets_json(self) -> None:
        async with TestClient(self._app()) as client:
            explicit = await client.get("/users", headers={"Accept": "application/json"})
            no_accept = await client.get("/users")
        assert explicit.json() == USERS
        assert no_accept.json() == USERS

    async def test_page_created_after_handler(self) -> None:
        fsys = _site({})
        app = App(fsys=fsys)
        app.get("/users", list_users)
        fsys["pages/users.html"] = MapFile(USERS_PAGE.encode())
        app.apply_change(Event("pages/users.html", Op.CREATE))
        async with TestClient(app) as client:
            page = await client.get("/users", headers={"Accept": "text/html"})
            data = await client.get("/users")
        assert page.text == "<ul><li>ada</li><li>grace</li></ul>"
        assert data.json() == USERS

    async def test_named_view(self) -> None:
        async def names(ctx: Context) -> None:
            await ctx.view(USERS, "views/names")

        app = self._app()
        app.get("/names", names)
        async with TestClient(app) as client:
            response = await client.get("/names")
        assert response.text == "2 users"

    async def test_named_view_not_acceptable_falls_back(self) -> None:
        async def names(ctx: Context) -> None:
            await ctx.view(USERS, "views/names")

        app = self._app()
        app.get("/names", names)
        async with TestClient(app) as client:
            response = await client.get("/names", headers={"Accept": "application/json"})
        assert response.json() == USERS

    async def test_view_not_found(self) -> None:
        async def nothing(ctx: Context) -> None:
            await ctx.view(USERS, "views/missing")

        app = App(viewer=XmlViewer())
        app.get("/x", nothing)
        app.routes[0].options.viewers.clear()
        async with TestClient(app) as client:
            response = await client.get("/x")
        assert response.status == 404
        assert response.text == "view not found"

    async def test_route_viewers_follow_accept(self) -> None:
        app = App()
        app.get("/users", lambda ctx: {"user": {"name": "ada"}}, with_viewer(XmlViewer(), StringViewer()))
        async with TestClient(app) as client:
            plain = await client.get("/users", headers={"Accept": "text/plain, text/xml"})
            default = await client.get("/users")
        assert plain.content_type == "text/plain; charset=utf-8"
        assert default.content_type == "text/xml; charset=utf-8"


class TestMiddleware:
    async def test_order(self) -> None:
        calls: list[str] = []

        def tracer(label: str):
            async def mw(ctx: Context, next: Next) -> Any:
                calls.append(f"{label}>")
                result = await next(ctx)
                calls.append(f"<{label}")
                return result

            return mw

        app = App()
        app.get("/users", list_users)
        app.use(tracer("a"), tracer("b"))
        admin = app.group("/admin")
        admin.get("/users", list_users)
        admin.use(tracer("g"))

        async with TestClient(app) as client:
            await client.get("/users")
            plain = list(calls)
            calls.clear()
            response = await client.get("/admin/users")

        assert plain == ["a>", "b>", "<b", "<a"]
        assert calls == ["a>", "b>", "g>", "<g", "<b", "<a"]
        assert response.json() == USERS

    async def test_short_circuit(self) -> None:
        async def deny(ctx: Context, next: Next) -> Any:
            raise HTTPError(status=403, detail="Forbidden")

        app = App()
        app.get("/users", list_users)
        app.use(deny)
        async with TestClient(app) as client:
            response = await client.get("/users")
        assert response.status == 403
        assert response.text == "Forbidden"
        assert response.content_type == "text/plain; charset=utf-8"

    async def test_values_reach_templates(self) -> None:
        async def user(ctx: Context, next: Next) -> Any:
            ctx.set("user", "ada")
            return await next(ctx)

        app = App(fsys=_site({"pages/index.html": "hi {{ values['user'] }}"}))
        app.use(user)
        async with TestClient(app) as client:
            response = await client.get("/", headers={"Accept": "text/html"})
        assert response.text == "hi ada"


class TestErrors:
    async def test_unhandled_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        async def boom(ctx: Context) -> None:
            ctx.response.write("partial")
            raise RuntimeError("kaput")

        app = App()
        app.get("/boom", boom)
        with caplog.at_level(logging.ERROR, logger="warbler"):
            async with TestClient(app) as client:
                response = await client.get("/boom")

        assert response.status == 500
        assert response.body == b""
        log_id = response.headers.get(LOG_ID_HEADER.lower())
        assert log_id
        (record,) = [r for r in caplog.records if r.name == "warbler"]
        assert record.log_id == log_id
        assert record.exc_info is not None

    async def test_log_ids_differ(self) -> None:
        async def boom(ctx: Context) -> None:
            raise RuntimeError

        app = App()
        app.get("/boom", boom)
        async with TestClient(app) as client:
            first = await client.get("/boom")
            second = await client.get("/boom")
        assert first.headers.get("x-log-id") != second.headers.get("x-log-id")

    async def test_not_found(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/nope")
        assert response.status == 404
        assert response.content_type == "text/plain; charset=utf-8"

    async def test_handler_raises_not_found(self) -> None:
        async def missing(ctx: Context) -> None:
            raise NotFound("no such user")

        app = App()
        app.get("/users/{id}", missing)
        async with TestClient(app) as client:
            response = await client.get("/users/7")
        assert response.status == 404
        assert response.text == "no such user"

    async def test_method_not_allowed(self) -> None:
        app = App()
        app.get("/users", list_users)
        async with TestClient(app) as client:
            response = await client.delete("/users")
        assert response.status == 405
        assert response.headers.get("allow") == "GET, HEAD"

    async def test_directory_redirect(self) -> None:
        app = App()
        app.get("/docs/{$}", list_users)
        async with TestClient(app) as client:
            response = await client.get("/docs")
        assert response.status == 301
        assert response.headers.get("location") == "/docs/"

    async def test_directory_redirect_keeps_query(self) -> None:
        app = App()
        app.get("/docs/{$}", list_users)
        async with TestClient(app) as client:
            response = await client.get("/docs?x=1&y=two")
        assert response.status == 301
        assert response.headers.get("location") == "/docs/?x=1&y=two"

    async def test_handle_cancelled_keeps_output(self) -> None:
        async def stop(ctx: Context) -> None:
            ctx.write_status(202)
            ctx.response.write("queued")
            raise HandleCancelled

        app = App()
        app.get("/job", stop)
        async with TestClient(app) as client:
            response = await client.get("/job")
        assert response.status == 202
        assert response.text == "queued"

    async def test_unserializable_result(self) -> None:
        app = App()
        app.get("/x", lambda ctx: object())
        async with TestClient(app) as client:
            response = await client.get("/x")
        assert response.status == 500


class TestRedirect:
    async def test_plain(self) -> None:
        async def go(ctx: Context) -> None:
            ctx.redirect("/login")

        app = App(interceptor=HtmxInterceptor())
        app.get("/private", go)
        async with TestClient(app) as client:
            response = await client.get("/private")
        assert response.status == 302
        assert response.headers.get("location") == "/login"

    async def test_htmx(self) -> None:
        async def go(ctx: Context) -> None:
            ctx.redirect("/login")

        app = App(interceptor=HtmxInterceptor())
        app.get("/private", go)
        async with TestClient(app) as client:
            response = await client.get("/private", headers={"HX-Request": "true"})
        assert response.status == 200
        assert response.headers.get("hx-redirect") == "/login"
        assert response.headers.get("location") is None

    async def test_location_is_percent_encoded(self) -> None:
        def to(url: str):
            return lambda ctx: ctx.redirect(url)

        app = App()
        app.get("/accented", to("/caf\u00e9"))
        app.get("/escaped", to("/a%20b"))
        app.get("/spaced", to("/search?q=red shoes"))
        async with TestClient(app) as client:
            accented = await client.get("/accented")
            escaped = await client.get("/escaped")
            spaced = await client.get("/spaced")
        assert accented.status == 302
        assert accented.headers.get("location") == "/caf%C3%A9"
        assert escaped.headers.get("location") == "/a%20b"
        assert spaced.headers.get("location") == "/search?q=red%20shoes"

    async def test_referer(self) -> None:
        async def back(ctx: Context) -> str:
            return ctx.request_referer()

        app = App(interceptor=HtmxInterceptor())
        app.get("/back", back, with_viewer(StringViewer()))
        async with TestClient(app) as client:
            plain = await client.get("/back", headers={"Referer": "/a"})
            htmx = await client.get("/back", headers={"Referer": "/a", "HX-Request": "true", "HX-Current-URL": "/b"})
        assert plain.text == "/a"
        assert htmx.text == "/b"


class TestCompression:
    def _app(self) -> App:
        app = App(compressors=[GzipCompressor(), DeflateCompressor()])
        app.get("/users", list_users)
        return app

    async def test_gzip(self) -> None:
        async with TestClient(self._app()) as client:
            response = await client.get("/users", headers={"Accept-Encoding": "gzip, deflate"})
        assert response.headers.get("content-encoding") == "gzip"
        assert response.headers.get("vary") == "Accept-Encoding"
        assert gzip.decompress(response.body) == b'[{"name": "ada"}, {"name": "grace"}]'

    async def test_gzip_page(self) -> None:
        app = App(fsys=_site({"pages/index.html": "<h1>{{ 'home' }}</h1>"}), compressors=[GzipCompressor()])
        async with TestClient(app) as client:
            response = await client.get("/", headers={"Accept-Encoding": "gzip"})
        assert response.status == 200
        assert response.content_type == "text/html; charset=utf-8"
        assert response.headers.get("content-encoding") == "gzip"
        assert gzip.decompress(response.body) == b"<h1>home</h1>"

    async def test_identity(self) -> None:
        async with TestClient(self._app()) as client:
            response = await client.get("/users")
        assert response.headers.get("content-encoding") is None
        assert response.json() == USERS


class TestFileRoutes:
    async def test_handler_replaces_static_route(self) -> None:
        app = App(fsys=_site({"public/about": "static about"}))
        app.get("/about", lambda ctx: "handled", with_viewer(StringViewer()))
        async with TestClient(app) as client:
            response = await client.get("/about")
        assert response.text == "handled"

    async def test_page_and_static_file_coexist(self) -> None:
        app = App(fsys=_site({"public/site.css": "body{}", "pages/index.html": "home"}))
        async with TestClient(app) as client:
            css = await client.get("/site.css")
            home = await client.get("/")
        assert css.text == "body{}"
        assert home.text == "home"


    async def test_page_with_layout_renders_exactly(self) -> None:
        app = App(
            fsys=_site(
                {
                    "layouts/main.html": "<html><body>{% block content %}{% endblock %}</body></html>",
                    "pages/index.html": "<!--layout:main-->\n{% block content %}<div>index</div>{% endblock %}",
                }
            )
        )
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.text == "<html><body><div>index</div></body></html>"

    async def test_host_page_wins_for_its_host(self) -> None:
        app = App(
            fsys=_site(
                {
                    "pages/@abc.com/admin/index.html": "abc admin",
                    "pages/admin/index.html": "admin",
                }
            )
        )
        async with TestClient(app) as client:
            scoped = await client.get("/admin/", headers={"Host": "abc.com"})
            other = await client.get("/admin/", headers={"Host": "example.org"})
        assert scoped.text == "abc admin"
        assert other.text == "admin"

    @pytest.mark.parametrize(
        ("name", "target", "host"),
        [
            ("x", "/x", "example.org"),
            ("y/index.html", "/y/", "example.org"),
            ("index.html", "/", "example.org"),
            ("@h.com/z", "/z", "h.com"),
        ],
    )
    async def test_public_file_is_served_where_named(self, name: str, target: str, host: str) -> None:
        app = App(fsys=_site({"public/" + name: "content of " + name}))
        async with TestClient(app) as client:
            response = await client.get(target, headers={"Host": host})
        assert response.status == 200
        assert response.text == "content of " + name

    async def test_embedded_file_etag(self) -> None:
        app = App(fsys=EmbedFS({"public/site.css": b"body{color:red}"}))
        async with TestClient(app) as client:
            first = await client.get("/site.css")
            second = await client.get("/site.css")
            cached = await client.get("/site.css", headers={"If-None-Match": first.headers.get("etag") or ""})

        assert first.status == 200
        assert first.headers.get("etag")
        assert first.headers.get("etag") == second.headers.get("etag")
        assert cached.status == 304
        assert cached.body == b""
        assert cached.headers.get("content-type") is None
        assert cached.headers.get("content-length") is None
        assert cached.headers.get("etag") == first.headers.get("etag")


class TestAssets:
    async def test_default_resolver(self) -> None:
        fsys = _site({"public/css/site.css": "body{}", "pages/index.html": "<link href=\"{{ asset('css/site.css') }}\">"})
        app = App(fsys=fsys)
        async with TestClient(app) as client:
            page = await client.get("/")
            css = await client.get("/css/site.css")
        assert page.text == '<link href="/css/site.css">'
        assert css.text == "body{}"

    async def test_custom_resolver(self) -> None:
        fsys = _site({"pages/index.html": "{{ asset('css/site.css') }}", "text/robots.txt": "{{ asset('sitemap.xml') }}"})
        app = App(fsys=fsys, asset_url=lambda name: "https://cdn.example.com/" + name + "?v=1")

        async def robots(ctx: Context) -> None:
            await ctx.view(None, "text/robots.txt")

        app.get("/robots.txt", robots)
        async with TestClient(app) as client:
            page = await client.get("/")
            text = await client.get("/robots.txt")
        assert page.text == "https://cdn.example.com/css/site.css?v=1"
        assert text.text == "https://cdn.example.com/sitemap.xml?v=1"


class TestLifespan:
    async def test_startup_and_shutdown(self) -> None:
        app = App(AppConfig(watch=True, check_interval=0.01), fsys=_site({}))
        messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
