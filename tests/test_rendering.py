# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from oauth_handoff import rendering
from oauth_handoff.exceptions import TemplateRenderingError
from oauth_handoff.rendering import (
    TemplateRenderer,
    get_partials,
    load_partials,
    render_fallback_error_page,
    reset_partials_cache,
)


def complete_view(**overrides: Any) -> dict[str, Any]:
    view: dict[str, Any] = {
        "title": "Logging you in via GitHub...",
        "description": "Logging you in via GitHub...",
        "oauth_provider": "github",
        "origin_pattern": "/^(?:https:\\/\\/example\\.com)$/i",
        "admin_panel_link": {"url": "#", "target": "_self"},
        "message": "success",
        "content": '{"token": "gho_token", "provider": "github"}',
        "display": "Logging you in via GitHub...",
        "display_classes": "",
    }
    view.update(overrides)
    return view


@pytest.mark.asyncio
async def test_load_partials_reads_packaged_partials() -> None:
    partials = await load_partials()

    assert set(partials) >= {"partials/head.html", "partials/styles.html", "partials/admin_link.html"}
    assert "<title>" in partials["partials/head.html"]


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_read() -> None:
    calls = 0

    async def slow_read() -> dict[str, str]:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return {"partials/head.html": "<title>{{ title }}</title>"}

    with patch.object(rendering, "_read_partials", slow_read):
        first = load_partials()
        second = load_partials()
        assert first is second

        results = await asyncio.gather(first, second, load_partials())

    assert calls == 1
    assert results[0] is results[1] is results[2]


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_other_waiters() -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_read() -> dict[str, str]:
        started.set()
        await release.wait()
        return {"partials/head.html": "<title>{{ title }}</title>"}

    with patch.object(rendering, "_read_partials", slow_read):
        cancelled = asyncio.create_task(get_partials())
        waiting = asyncio.create_task(get_partials())
        await started.wait()

        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        release.set()
        assert await waiting == {"partials/head.html": "<title>{{ title }}</title>"}
        assert not load_partials().cancelled()


@pytest.mark.asyncio
async def test_cancelled_render_does_not_break_concurrent_render() -> None:
    release = asyncio.Event()
    partials = await load_partials()
    reset_partials_cache()

    async def slow_read() -> dict[str, str]:
        await release.wait()
        return partials

    with patch.object(rendering, "_read_partials", slow_read):
        cancelled = asyncio.create_task(TemplateRenderer().render("complete.html", complete_view()))
        rendering_task = asyncio.create_task(TemplateRenderer().render("complete.html", complete_view()))
        await asyncio.sleep(0)

        cancelled.cancel()
        release.set()
        document = await rendering_task

    assert "gho_token" in document
    assert cancelled.cancelled()


@pytest.mark.asyncio
async def test_failed_load_is_retried() -> None:
    calls = 0

    async def flaky_read() -> dict[str, str]:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise OSError("disk unavailable")
        return {}

    with patch.object(rendering, "_read_partials", flaky_read):
        with pytest.raises(OSError, match="disk unavailable"):
            await load_partials()
        assert await load_partials() == {}

    assert calls == 2


@pytest.mark.asyncio
async def test_reset_partials_cache() -> None:
    first = await load_partials()
    reset_partials_cache()
    second = await load_partials()

    assert first == second
    assert first is not second


@pytest.mark.asyncio
async def test_render_complete_document() -> None:
    document = await TemplateRenderer().render("complete.html", complete_view())

    assert "<title>Logging you in via GitHub...</title>" in document
    assert 'var provider = "github";' in document
    assert 'var status = "success";' in document
    assert "gho_token" in document
    assert "var allowedOrigin = /^(?:https:\\/\\/example\\.com)$/i;" in document
    assert 'href="#" target="_self"' in document


@pytest.mark.asyncio
async def test_render_escapes_display_text() -> None:
    view = {
        "title": "An error occurred",
        "description": "An error occurred",
        "display": "<script>alert(1)</script>",
        "admin_panel_link": {"url": "https://admin.example.com", "target": "_blank"},
    }
    document = await TemplateRenderer().render("error.html", view)

    assert "<script>alert(1)</script>" not in document
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in document
    assert 'href="https://admin.example.com" target="_blank"' in document


@pytest.mark.asyncio
async def test_render_escapes_script_content() -> None:
    document = await TemplateRenderer().render("complete.html", complete_view(content="</script><script>alert(1)"))

    assert "</script><script>alert(1)" not in document


@pytest.mark.asyncio
async def test_render_missing_template() -> None:
    with pytest.raises(TemplateRenderingError, match="missing.html"):
        await TemplateRenderer().render("missing.html", {})


@pytest.mark.asyncio
async def test_render_broken_template(tmp_path: Path) -> None:
    (tmp_path / "broken.html").write_text("{% if %}", encoding="utf-8")

    with pytest.raises(TemplateRenderingError, match="broken.html"):
        await TemplateRenderer(templates_dir=tmp_path).render("broken.html", {})


@pytest.mark.asyncio
async def test_custom_templates_can_use_partials(tmp_path: Path) -> None:
    (tmp_path / "custom.html").write_text('{% include "partials/head.html" %}<p>{{ display }}</p>', encoding="utf-8")

    document = await TemplateRenderer(templates_dir=tmp_path).render(
        "custom.html", {"title": "Custom", "description": "Custom", "display": "Hello"}
    )

    assert "<title>Custom</title>" in document
    assert "<p>Hello</p>" in document


def test_fallback_error_page() -> None:
    page = render_fallback_error_page("Failed <b>badly</b> & loudly")

    assert "<title>A fatal error occurred</title>" in page
    assert "Failed &lt;b&gt;badly&lt;/b&gt; &amp; loudly" in page
    assert "<b>" not in page
