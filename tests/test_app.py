"""End-to-end tests: ASGI app, dispatcher, and streaming through TestClient."""

import logging

import pytest

from rill.app import App
from rill.testing import TestClient, assert_deferred, assert_inline

# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    async def test_page_renders(self, make_site) -> None:
        app = make_site({"index.py": "def handler(ctx):\n    return ['<h1>', 'home', '</h1>']\n"})
        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == "<h1>home</h1>"
        assert response.content_type == "text/html; charset=utf-8"

    async def test_params_reach_handler(self, make_site) -> None:
        app = make_site(
            {"blog/[slug].py": "def handler(ctx):\n    return f\"<p>{ctx.params['slug']}</p>\"\n"},
        )
        async with TestClient(app) as client:
            response = await client.get("/blog/hello-world")

        assert response.text == "<p>hello-world</p>"

    async def test_async_handler(self, make_site) -> None:
        app = make_site(
            {
                "index.py": """
                import anyio

                async def handler(ctx):
                    await anyio.sleep(0)
                    return "<p>async</p>"
                """,
            }
        )
        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "<p>async</p>"

    async def test_query_string(self, make_site) -> None:
        app = make_site(
            {"search.py": "def handler(ctx):\n    return ctx.request.query['q'][0]\n"},
        )
        async with TestClient(app) as client:
            response = await client.get("/search?q=rill")

        assert response.text == "rill"

    async def test_status_and_headers_from_context(self, make_site) -> None:
        app = make_site(
            {
                "index.py": """
                def handler(ctx):
                    ctx.response.status = 201
                    ctx.response.headers.append("Cache-Control", "test")
                    ctx.response.headers.append("X-Rill", "yes")
                    return "<p>created</p>"
                """,
            }
        )
        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 201
        assert ("Cache-Control".lower(), "test") in response.headers
        assert ("x-rill", "yes") in response.headers

    async def test_endpoint_content_type_guessed(self, make_site) -> None:
        app = make_site({"data.json.py": "def handler(ctx):\n    return '{\"a\": 1}'\n"})
        async with TestClient(app) as client:
            response = await client.get("/data.json")

        assert response.content_type == "application/json"
        assert response.text == '{"a": 1}'

    async def test_handler_sets_content_type(self, make_site) -> None:
        app = make_site(
            {
                "robots.txt.py": """
                def handler(ctx):
                    ctx.response.headers.set("Content-Type", "text/plain; charset=utf-8")
                    return "User-agent: *"
                """,
            }
        )
        async with TestClient(app) as client:
            result = await client.stream("/robots.txt")

        content_types = [value for name, value in result.headers if name == "content-type"]
        assert content_types == ["text/plain; charset=utf-8"]

    async def test_handler_returning_response(self, make_site) -> None:
        app = make_site(
            {
                "old.py": """
                from rill import Response

                def handler(ctx):
                    return Response("", status=302).with_header("Location", "/new")
                """,
            }
        )
        async with TestClient(app) as client:
            response = await client.get("/old")

        assert response.status == 302
        assert ("location", "/new") in response.headers

    async def test_module_loaded_once(self, make_site) -> None:
        app = make_site(
            {
                "count.py": """
                hits = []

                def handler(ctx):
                    hits.append(1)
                    return str(len(hits))
                """,
            }
        )
        async with TestClient(app) as client:
            await client.get("/count")
            response = await client.get("/count")

        assert response.text == "2"

    async def test_head_request_has_no_body(self, make_site) -> None:
        app = make_site({}, public={"hello.txt": "hi"})
        async with TestClient(app) as client:
            response = await client.head("/hello.txt")

        assert response.status == 200
        assert response.body == b""

    async def test_head_request_to_page_has_no_body(self, make_site) -> None:
        app = make_site(
            {
                "index.py": """
                    def handler(ctx):
                        ctx.response.headers.set("Cache-Control", "no-cache")
                        return "<h1>hi</h1>"
                """,
            }
        )
        async with TestClient(app) as client:
            result = await client.stream("/", method="HEAD")

        assert result.status == 200
        assert result.body == b""
        assert result.header("cache-control") == "no-cache"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class TestNotFound:
    async def test_fallback_body(self, make_site) -> None:
        app = make_site({"index.py": "def handler(ctx):\n    return 'home'\n"})
        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert response.text == "<h1>Not found!</h1>"

    async def test_not_found_page(self, make_site) -> None:
        app = make_site(
            {
                "index.py": "def handler(ctx):\n    return 'home'\n",
                "404.py": "def handler(ctx):\n    return f'<p>no {ctx.request.path}</p>'\n",
            }
        )
        async with TestClient(app) as client:
            response = await client.get("/missing/page")

        assert response.status == 404
        assert response.text == "<p>no /missing/page</p>"

    async def test_custom_not_found_path(self, make_site) -> None:
        app = make_site(
            {"errors/missing.py": "def handler(ctx):\n    return 'custom'\n"},
            not_found_path="/errors/missing",
        )
        async with TestClient(app) as client:
            response = await client.get("/nope")

        assert response.status == 404
        assert response.text == "custom"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    async def test_missing_handler_is_500(self, make_site, caplog: pytest.LogCaptureFixture) -> None:
        app = make_site({"broken.py": "value = 1\n"})
        with caplog.at_level(logging.ERROR, logger="rill.server"):
            async with TestClient(app) as client:
                response = await client.get("/broken")

        assert response.status == 500
        assert "no callable 'handler'" in caplog.text

    async def test_non_callable_handler_is_500(self, make_site) -> None:
        app = make_site({"broken.py": "handler = 'nope'\n"})
        async with TestClient(app) as client:
            response = await client.get("/broken")

        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_debug_error_page(self, make_site) -> None:
        app = make_site(
            {"boom.py": "def handler(ctx):\n    raise RuntimeError('kaboom')\n"},
            debug=True,
        )
        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert "kaboom" in response.text

    async def test_http_error_from_handler(self, make_site) -> None:
        app = make_site(
            {
                "secret.py": """
                from rill import HTTPError

                def handler(ctx):
                    raise HTTPError(status=403, detail="Forbidden")
                """,
            }
        )
        async with TestClient(app) as client:
            response = await client.get("/secret")

        assert response.status == 403
        assert response.text == "Forbidden"

    async def test_mid_stream_error_closes_with_comment(self, make_site) -> None:
        app = make_site(
            {
                "partial.py": """
                def rows():
                    yield "<tr>1</tr>"
                    raise ValueError("bad row")

                def handler(ctx):
                    return ["<table>", rows(), "</table>"]
                """,
            }
        )
        async with TestClient(app) as client:
            result = await client.stream("/partial")

        assert result.status == 200
        assert result.text.startswith("<table><tr>1</tr>")
        assert result.text.endswith("<!-- rill: render error -->")
        assert "</table>" not in result.text

    async def test_manifest_error_fails_every_request(self, make_site) -> None:
        app = make_site({"[a]/[a].py": "def handler(ctx):\n    return ''\n"})
        client = TestClient(app)
        response = await client.get("/x/y")

        assert response.status == 500


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

SLOW_PAGE = """
import anyio
from rill import Await

async def after(ms, value):
    await anyio.sleep(ms / 1000)
    return value

def handler(ctx):
    ms = int(ctx.request.query["ms"][0])
    return [
        "<main>",
        Await(after(ms, "data"), placeholder="<p>loading</p>", then=lambda v: f"<p>{v}</p>",
              catch=lambda exc: "<p>failed</p>", timeout=200),
        "</main>",
    ]
"""


class TestStreaming:
    async def test_chunks_arrive_in_document_order(self, make_site) -> None:
        app = make_site({"index.py": "def handler(ctx):\n    return ['a', ['b', 'c'], 'd']\n"})
        async with TestClient(app) as client:
            result = await client.stream("/")

        assert result.texts == ["a", "b", "c", "d"]
        assert result.header("transfer-encoding") == "chunked"
        assert result.header("content-length") is None

    async def test_fast_boundary_inline(self, make_site) -> None:
        app = make_site({"slow.py": SLOW_PAGE})
        async with TestClient(app) as client:
            result = await client.stream("/slow?ms=0")

        assert_inline(result.text)
        assert result.text == "<main><p>data</p></main>"

    async def test_slow_boundary_streams_placeholder_then_payload(self, make_site) -> None:
        app = make_site({"slow.py": SLOW_PAGE})
        async with TestClient(app) as client:
            result = await client.stream("/slow?ms=60")

        (boundary_id,) = assert_deferred(result.text)
        assert result.texts[-1].startswith(f'<script id="script-{boundary_id}">')
        assert "</main>" in "".join(result.texts[:-1])

    async def test_timeout_streams_error_branch(self, make_site) -> None:
        app = make_site({"slow.py": SLOW_PAGE})
        async with TestClient(app) as client:
            result = await client.stream("/slow?ms=5000")

        assert_deferred(result.text)
        assert "failed" in result.texts[-1]

    async def test_app_suspense_defaults(self, make_site) -> None:
        app = make_site(
            {
                "index.py": """
                import anyio
                from rill import Await

                async def after():
                    await anyio.sleep(0.05)
                    return "v"

                def handler(ctx):
                    return Await(after(), then=lambda v: v, catch="timeout")
                """,
            },
            suspense_min_ms=1,
            suspense_max_ms=20,
        )
        async with TestClient(app) as client:
            result = await client.stream("/")

        assert_deferred(result.text)
        assert "timeout" in result.texts[-1]

    async def test_disconnect_stops_stream(self, make_site) -> None:
        app = make_site(
            {
                "index.py": """
                def handler(ctx):
                    return [f"<p>{i}</p>" for i in range(50)]
                """,
            },
            stream_delay=0.01,
        )
        async with TestClient(app) as client:
            result = await client.stream("/", max_chunks=3)

        assert result.disconnected is True
        assert 3 <= len(result.chunks) < 50


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


class TestLifespan:
    async def _lifespan(self, app: App) -> list[dict]:
        sent: list[dict] = []
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])

        async def receive() -> dict:
            return next(messages)

        async def send(message: dict) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        return sent

    async def test_startup_builds_manifest(self, make_site) -> None:
        app = make_site({"index.py": "def handler(ctx):\n    return ''\n"})
        started = []
        app.on_startup(lambda: started.append(True))

        sent = await self._lifespan(app)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert started == [True]
        assert len(await app.manifest()) == 1

    async def test_startup_fails_on_manifest_error(self, make_site) -> None:
        app = make_site({"[...a]/b.py": "def handler(ctx):\n    return ''\n"})

        sent = await self._lifespan(app)

        assert sent[0]["type"] == "lifespan.startup.failed"
        assert "must be the last segment" in sent[0]["message"]
