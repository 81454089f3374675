"""Hot reload: file changes reach a running app without a restart."""

import time

import anyio

from warbler import App, AppConfig
from warbler.fs import MapFile, MapFS
from warbler.testing import TestClient, TestResponse

INTERVAL = 0.01


def _app(files: dict[str, str]) -> tuple[App, MapFS]:
    fsys = MapFS({name: MapFile(source.encode(), mod_time=1.0) for name, source in files.items()})
    return App(AppConfig(watch=True, check_interval=INTERVAL), fsys=fsys), fsys


def _touch(fsys: MapFS, name: str, source: str) -> None:
    fsys[name] = MapFile(source.encode(), mod_time=time.time())


async def _wait_for(
    client: TestClient, path: str, expected_status: int, expected_text: str | None = None
) -> TestResponse:
    with anyio.fail_after(2):
        while True:
            response = await client.get(path, headers={"Accept": "text/html"})
            if response.status == expected_status and (expected_text is None or response.text == expected_text):
                return response
            await anyio.sleep(INTERVAL)


class TestHotReload:
    async def test_page_edit(self) -> None:
        app, fsys = _app({"pages/index.html": "v1"})
        async with TestClient(app) as client:
            assert (await client.get("/")).text == "v1"
            _touch(fsys, "pages/index.html", "v2")
            await _wait_for(client, "/", 200, "v2")

    async def test_layout_edit_reaches_pages(self) -> None:
        app, fsys = _app(
            {
                "layouts/main.html": "<main>{% block content %}{% endblock %}</main>",
                "pages/index.html": "<!--layout:main-->\n{% block content %}home{% endblock %}",
            }
        )
        async with TestClient(app) as client:
            assert (await client.get("/")).text == "<main>home</main>"
            _touch(fsys, "layouts/main.html", "<article>{% block content %}{% endblock %}</article>")
            await _wait_for(client, "/", 200, "<article>home</article>")

    async def test_new_page(self) -> None:
        app, fsys = _app({"pages/index.html": "home"})
        async with TestClient(app) as client:
            assert (await client.get("/about")).status == 404
            _touch(fsys, "pages/about.html", "about")
            await _wait_for(client, "/about", 200, "about")

    async def test_new_static_file(self) -> None:
        app, fsys = _app({})
        async with TestClient(app) as client:
            _touch(fsys, "public/app.js", "console.log(1)")
            response = await _wait_for(client, "/app.js", 200)
        assert response.text == "console.log(1)"

    async def test_broken_edit_keeps_previous_version(self) -> None:
        app, fsys = _app({"pages/index.html": "v1", "pages/marker.html": "m1"})
        async with TestClient(app) as client:
            _touch(fsys, "pages/index.html", "{% if %}")
            _touch(fsys, "pages/marker.html", "m2")
            await _wait_for(client, "/marker", 200, "m2")
            assert (await client.get("/")).text == "v1"

    async def test_removed_page_keeps_serving(self) -> None:
        app, fsys = _app({"pages/about.html": "about"})
        assert app.watcher is not None
        async with TestClient(app) as client:
            del fsys["pages/about.html"]
            seen = app.watcher.generation
            with anyio.fail_after(2):
                while app.watcher.generation < seen + 2:
                    await anyio.sleep(INTERVAL)
            response = await client.get("/about")
        assert response.status == 200
        assert response.text == "about"

    async def test_stop_ends_watch(self) -> None:
        app, _ = _app({})
        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(app.watch)
                await anyio.sleep(INTERVAL * 3)
                app.stop()
