"""Tests for suspense boundaries.

Covers:

- Fast path (settles before ``min`` — inline, no placeholder)
- Deferred path (placeholder first, matching replacement script later)
- Timeout (``max`` elapses — error branch with ``SuspenseTimeout``)
- Rejection (error branch with the raised exception)
- A failing ``catch`` branch empties only its own boundary
- Replacement payload format and escaping
- Argument validation
"""

import json
import re

import anyio
import pytest

from rill.errors import SuspenseTimeout
from rill.rendering.stream import render_to_string
from rill.rendering.suspense import (
    Await,
    Boundary,
    create_deferred,
    format_placeholder,
    format_replacement,
    new_boundary_id,
)
from rill.testing import assert_deferred, assert_inline, placeholder_ids

# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------


async def after(delay: float, value):
    await anyio.sleep(delay)
    return value


async def fails_after(delay: float, exc: Exception):
    await anyio.sleep(delay)
    raise exc


def script_html(text: str, boundary_id: str) -> str:
    """Decode the html carried by the replacement script for *boundary_id*."""
    match = re.search(
        rf'<script id="script-{boundary_id}">.*?template\.innerHTML = (".*?");fragment',
        text,
    )
    assert match is not None, f"no replacement for {boundary_id}"
    return json.loads(match.group(1).replace("<\\/", "</").replace("<\\!--", "<!--"))


def page(boundary) -> list:
    return ["<main>", boundary, "</main>"]


# ---------------------------------------------------------------------------
# Fast path
# ---------------------------------------------------------------------------


class TestFastPath:
    async def test_resolves_before_min_renders_inline(self) -> None:
        boundary = Await(
            after(0, "ok"),
            placeholder="<p>loading</p>",
            then=lambda v: f"<p>{v}</p>",
        )
        html = await render_to_string(page(boundary))

        assert html == "<main><p>ok</p></main>"
        assert_inline(html)

    async def test_plain_value_bind(self) -> None:
        html = await render_to_string(page(Await(42, then=lambda v: f"<b>{v}</b>")))
        assert html == "<main><b>42</b></main>"

    async def test_callable_bind(self) -> None:
        html = await render_to_string(
            page(Await(lambda: after(0, "lazy"), then=lambda v: v)),
        )
        assert html == "<main>lazy</main>"

    async def test_then_as_tree(self) -> None:
        html = await render_to_string(page(Await(after(0, None), then=["<i>", "done", "</i>"])))
        assert html == "<main><i>done</i></main>"

    async def test_fast_rejection_renders_catch_inline(self) -> None:
        boundary = Await(
            fails_after(0, ValueError("nope")),
            placeholder="<p>loading</p>",
            then=lambda v: "<p>never</p>",
            catch=lambda exc: f"<p>error: {exc}</p>",
        )
        html = await render_to_string(page(boundary))

        assert html == "<main><p>error: nope</p></main>"


# ---------------------------------------------------------------------------
# Deferred path
# ---------------------------------------------------------------------------


class TestDeferredPath:
    async def test_placeholder_first_then_matching_payload(self) -> None:
        boundary = Await(
            after(0.05, "late"),
            placeholder="<p>loading</p>",
            then=lambda v: f"<p>{v}</p>",
            min=10,
            timeout=1000,
        )
        html = await render_to_string(page(boundary))

        (boundary_id,) = assert_deferred(html)
        main_end = html.index("</main>")
        assert "<p>loading</p>" in html[:main_end]
        assert html.index(f'<script id="script-{boundary_id}">') > main_end
        assert script_html(html, boundary_id) == "<p>late</p>"

    async def test_computation_runs_once(self) -> None:
        calls = 0

        async def load():
            nonlocal calls
            calls += 1
            await anyio.sleep(0.05)
            return "x"

        await render_to_string(page(Await(load(), then=lambda v: v, min=10, timeout=1000)))
        assert calls == 1

    async def test_ids_unique_per_boundary(self) -> None:
        tree = [
            Await(after(0.03, i), then=lambda v: str(v), min=5, timeout=1000)
            for i in range(4)
        ]
        html = await render_to_string(tree)

        ids = assert_deferred(html)
        assert len(set(ids)) == 4

    async def test_payloads_follow_settle_order(self) -> None:
        slow = Await(after(0.08, "slow"), then=lambda v: v, min=5, timeout=1000)
        fast = Await(after(0.02, "fast"), then=lambda v: v, min=5, timeout=1000)
        html = await render_to_string([slow, fast])

        slow_id, fast_id = placeholder_ids(html)
        assert html.index(f"script-{fast_id}") < html.index(f"script-{slow_id}")

    async def test_late_rejection_renders_catch_payload(self) -> None:
        boundary = Await(
            fails_after(0.05, RuntimeError("db down")),
            placeholder="...",
            catch=lambda exc: f"<p>{type(exc).__name__}</p>",
            min=10,
            timeout=1000,
        )
        html = await render_to_string(boundary)

        (boundary_id,) = assert_deferred(html)
        assert script_html(html, boundary_id) == "<p>RuntimeError</p>"

    async def test_defaults_come_from_render(self) -> None:
        boundary = Await(after(0.03, "v"), then=lambda v: v)
        html = await render_to_string(boundary, min_ms=5, max_ms=1000)
        assert_deferred(html)


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


class TestTimeout:
    async def test_never_resolving_renders_timeout_error(self) -> None:
        errors: list[Exception] = []

        def catch(exc: Exception) -> str:
            errors.append(exc)
            return "<p>timed out</p>"

        boundary = Await(
            after(10, "never"),
            placeholder="<p>loading</p>",
            then=lambda v: "<p>never</p>",
            catch=catch,
            min=10,
            timeout=50,
        )
        html = await render_to_string(page(boundary))

        (boundary_id,) = assert_deferred(html)
        assert script_html(html, boundary_id) == "<p>timed out</p>"
        assert len(errors) == 1
        assert isinstance(errors[0], SuspenseTimeout)
        assert isinstance(errors[0], TimeoutError)
        assert errors[0].max_ms == 50

    async def test_timeout_cancels_computation(self) -> None:
        cancelled = False

        async def forever():
            nonlocal cancelled
            try:
                await anyio.sleep(10)
            except anyio.get_cancelled_exc_class():
                cancelled = True
                raise

        start = anyio.current_time()
        await render_to_string(Await(forever(), catch="x", min=5, timeout=30))

        assert cancelled is True
        assert anyio.current_time() - start < 5


# ---------------------------------------------------------------------------
# Failing catch branches stay local
# ---------------------------------------------------------------------------


def broken_catch(exc: Exception) -> str:
    raise KeyError("catch renderer broke")


class TestFailingCatch:
    async def test_sibling_payload_survives(self, caplog: pytest.LogCaptureFixture) -> None:
        ok = Await(after(0.05, "ok"), then=lambda v: f"<p>{v}</p>", min=5, timeout=1000)
        bad = Await(
            fails_after(0.02, RuntimeError("db down")),
            placeholder="<p>loading</p>",
            catch=broken_catch,
            min=5,
            timeout=1000,
        )
        with caplog.at_level("ERROR", logger="rill.suspense"):
            html = await render_to_string(page([ok, bad]))

        ok_id, bad_id = placeholder_ids(html)
        assert script_html(html, ok_id) == "<p>ok</p>"
        assert script_html(html, bad_id) == ""
        assert any("catch branch failed" in r.getMessage() for r in caplog.records)

    async def test_fast_path_renders_empty(self) -> None:
        boundary = Await(fails_after(0, ValueError("nope")), catch=broken_catch)
        html = await render_to_string(page(boundary))
        assert html == "<main></main>"

    async def test_timeout_with_failing_catch(self) -> None:
        slow = Await(after(10, "never"), catch=broken_catch, min=5, timeout=30)
        fine = Await(after(0.03, "fine"), then=lambda v: v, min=5, timeout=1000)
        start = anyio.current_time()
        html = await render_to_string(page([slow, fine]))

        slow_id, fine_id = placeholder_ids(html)
        assert script_html(html, slow_id) == ""
        assert script_html(html, fine_id) == "fine"
        assert anyio.current_time() - start < 5


# ---------------------------------------------------------------------------
# Payload format
# ---------------------------------------------------------------------------


class TestPayloadFormat:
    def test_boundary_ids(self) -> None:
        ids = {new_boundary_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("r") for i in ids)

    async def test_placeholder_markup(self) -> None:
        html = await render_to_string(format_placeholder("r1", ["<p>", "wait", "</p>"]))
        assert html == (
            '<rill-fragment style="display:contents" id="r1"><template></template>'
            "<p>wait</p></rill-fragment>"
        )

    def test_replacement_targets_id(self) -> None:
        script = format_replacement("r9", "<p>x</p>")
        assert script.startswith('<script id="script-r9">')
        assert 'document.getElementById("r9")' in script
        assert script.endswith("</script>")

    def test_replacement_cannot_close_script_early(self) -> None:
        script = format_replacement("r1", "<script>alert(1)</script><!-- c -->")
        body = script[len('<script id="script-r1">') : -len("</script>")]
        assert "</script" not in body
        assert "<!--" not in body


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_await_rejects_min_not_below_timeout(self) -> None:
        with pytest.raises(ValueError, match="min must be smaller"):
            Await(42, min=100, timeout=100)

    def test_await_returns_boundary(self) -> None:
        boundary = Await(42, timeout=500)
        assert isinstance(boundary, Boundary)
        assert boundary.max_ms == 500
        assert boundary.min_ms is None

    async def test_create_deferred_rejects_inverted_delays(self) -> None:
        async def outcome():
            raise AssertionError("not awaited")

        coro = outcome()
        try:
            with pytest.raises(ValueError, match="min_ms must not exceed max_ms"):
                await create_deferred(coro, on_timeout=None, min_ms=10, max_ms=5)  # type: ignore[arg-type]
        finally:
            coro.close()

    async def test_boundary_awaited_outside_render(self) -> None:
        with pytest.raises(RuntimeError, match="RenderStream"):
            await Await(42)()
