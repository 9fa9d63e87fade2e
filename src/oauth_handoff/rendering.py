# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

"""
Rendering of the handoff documents.

The handlers only produce view data; a `Renderer` turns it into HTML. The default
`TemplateRenderer` uses the Jinja2 templates shipped with the package. Shared
partials are read from disk at most once per process.
"""

import asyncio
import html
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

import anyio
from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, TemplateError, select_autoescape

from oauth_handoff.exceptions import TemplateRenderingError
from oauth_handoff.utils.logger import logger

TEMPLATES_DIR = Path(__file__).parent / "templates"
PARTIALS_DIR = TEMPLATES_DIR / "partials"

_partials_lock = threading.Lock()
_partials_future: "asyncio.Future[dict[str, str]] | None" = None


class Renderer(Protocol):
    """Protocol for the rendering collaborator."""

    async def render(self, template_name: str, view: Mapping[str, Any]) -> str:
        """Renders `template_name` with `view` and returns the document text."""
        ...


async def _read_partials() -> dict[str, str]:
    partials: dict[str, str] = {}
    async for path in anyio.Path(PARTIALS_DIR).iterdir():
        if path.suffix == ".html" and await path.is_file():
            partials[f"partials/{path.name}"] = await path.read_text(encoding="utf-8")
    logger.debug(f"Loaded {len(partials)} template partials from {PARTIALS_DIR}")
    return partials


def _failed(future: "asyncio.Future[dict[str, str]]") -> bool:
    return future.done() and (future.cancelled() or future.exception() is not None)


def load_partials() -> "asyncio.Future[dict[str, str]]":
    """
    Returns the process-wide pending (or resolved) partials load.

    Concurrent callers receive the same future, so the partials are read once.
    A failed or cancelled load is discarded and retried on the next call.
    Must be called from a running asyncio event loop; other anyio backends are not supported.

    Await it through `get_partials()` rather than directly: cancelling a task that awaits
    the shared future would cancel the load for every other waiter.
    """
    global _partials_future
    with _partials_lock:
        if _partials_future is None or _failed(_partials_future):
            _partials_future = asyncio.ensure_future(_read_partials())
        return _partials_future


async def get_partials() -> dict[str, str]:
    """
    Returns the template partials, reading them at most once per process.
    Cancelling the caller only stops its own wait; the shared load keeps running.
    """
    return await asyncio.shield(load_partials())


def reset_partials_cache() -> None:
    """Forgets the cached partials. The next `load_partials()` reads them again."""
    global _partials_future
    with _partials_lock:
        _partials_future = None


class TemplateRenderer:
    """
    Jinja2 renderer for the packaged handoff templates.

    Attributes:
        templates_dir (Path): Directory holding the page templates.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self._env: Environment | None = None

    async def _get_environment(self) -> Environment:
        if self._env is None:
            partials = await get_partials()
            self._env = Environment(
                loader=ChoiceLoader([DictLoader(partials), FileSystemLoader(self.templates_dir)]),
                autoescape=select_autoescape(),
                keep_trailing_newline=True,
            )
        return self._env

    async def render(self, template_name: str, view: Mapping[str, Any]) -> str:
        """
        Renders a template.

        Raises:
            TemplateRenderingError: If the template or a partial cannot be loaded or rendered.
        """
        try:
            env = await self._get_environment()
            template = env.get_template(template_name)
            return template.render(**view)
        except (TemplateError, OSError) as e:
            raise TemplateRenderingError(f"Failed to render template '{template_name}': {e}") from e


def render_fallback_error_page(message: str) -> str:
    """
    Builds a minimal error page without any template.
    Used when the template renderer itself fails.
    """
    return (
        '<html lang="en">'
        "<head>"
        "<title>A fatal error occurred</title>"
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        "</head>"
        '<body style="text-align: center;">'
        f'<p style="color: #ff6a6a">{html.escape(message)}</p>'
        "</body>"
        "</html>"
    )
