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
The `begin` and `complete` handlers of the authorization-code handoff.

`begin` produces the provider's authorize URI. `complete` exchanges the code the
provider sent back for an access token and renders the handoff document that
passes it to the admin panel window, restricted to the configured origins.
"""

import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from oauth_handoff.config import ValidatedConfig, validate_config
from oauth_handoff.errors import coerce_error_to_message, sanitize_for_handoff
from oauth_handoff.exceptions import TemplateRenderingError, TokenExchangeError
from oauth_handoff.models import (
    AdminPanelLink,
    AuthorizationRequest,
    HandoffMessage,
    HandoffView,
    TokenExchangeResult,
)
from oauth_handoff.origins import compile_origin_pattern
from oauth_handoff.providers import create_provider
from oauth_handoff.rendering import Renderer, TemplateRenderer, render_fallback_error_page
from oauth_handoff.utils.logger import logger

tracer = trace.get_tracer(__name__)

COMPLETE_TEMPLATE = "complete.html"
ERROR_TEMPLATE = "error.html"


async def _render(renderer: Renderer, template_name: str, view: Mapping[str, Any]) -> str:
    try:
        return await renderer.render(template_name, view)
    except TemplateRenderingError:
        raise
    except Exception as e:
        # Custom renderers may raise anything; treat it as a rendering failure.
        raise TemplateRenderingError(f"Failed to render template '{template_name}': {e}") from e


def _admin_panel_link(admin_panel_url: str) -> AdminPanelLink:
    if admin_panel_url:
        return AdminPanelLink(url=admin_panel_url, target="_blank")
    return AdminPanelLink()


async def render_error_page(
    error: Exception,
    *,
    dev: bool = False,
    admin_panel_url: str = "",
    renderer: Renderer | None = None,
) -> str:
    """
    Renders an HTML page describing `error`.

    Never raises for rendering problems: if the error template cannot be rendered, a
    minimal inline page describing both failures is returned instead.

    Args:
        error: The error to show.
        dev: Show the full cause chain instead of a short message.
        admin_panel_url: Link target back to the admin panel.
        renderer: Rendering collaborator. Defaults to the packaged templates.
    """
    renderer = renderer or TemplateRenderer()
    message = coerce_error_to_message(error, dev=dev)
    view = {
        "title": "An error occurred",
        "description": "An error occurred",
        "display": message,
        "admin_panel_link": _admin_panel_link(admin_panel_url).model_dump(),
    }
    try:
        return await _render(renderer, ERROR_TEMPLATE, view)
    except TemplateRenderingError as rendering_error:
        logger.error(f"Failed to render the error page, falling back to inline HTML: {rendering_error}")
        combined = ExceptionGroup("Failed to render the error page", [error, rendering_error])
        return render_fallback_error_page(coerce_error_to_message(combined, dev=dev))


class HandoffHandlers:
    """
    The two handlers of the handoff flow, sharing one validated config and provider.
    Handles the provider's HTTP client via async context manager.

    Attributes:
        config (ValidatedConfig): The validated configuration.
        provider (Provider): The configured identity provider.
        renderer (Renderer): The rendering collaborator.
        origin_pattern (AllowListPattern): The compiled origin allow-list.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | ValidatedConfig | None = None,
        *,
        client: AsyncOAuth2Client | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        renderer: Renderer | None = None,
        use_environment: bool = False,
        use_process_arguments: bool = False,
        argv: list[str] | None = None,
        skip_idempotency_check: bool = False,
    ) -> None:
        """
        Initialize the handlers.

        Args:
            config: Raw config mapping or an already validated config.
            client: External OAuth client (optional).
            transport: HTTP transport for the internally created OAuth client (optional).
            renderer: Rendering collaborator. Defaults to the packaged Jinja2 templates.
            use_environment: Fill missing options from environment variables.
            use_process_arguments: Read options from CLI-style arguments.
            argv: Explicit arguments for `use_process_arguments`.
            skip_idempotency_check: Re-validate `config` even if it is already validated.

        Raises:
            ConfigValidationError: If the config is invalid.
            UnknownProviderError: If the configured provider is not registered.
            ProviderImplementationError: If the provider class is incomplete.
        """
        self.config = validate_config(
            config,
            use_environment=use_environment,
            use_process_arguments=use_process_arguments,
            argv=argv,
            skip_idempotency_check=skip_idempotency_check,
        )
        self.provider = create_provider(
            self.config.get("oauth_provider"),
            self.config,
            client=client,
            transport=transport,
        )
        self.renderer: Renderer = renderer or TemplateRenderer()
        self.origin_pattern = compile_origin_pattern(self.config.get("origin"))

    async def __aenter__(self) -> "HandoffHandlers":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.provider.aclose()

    async def begin_request(self, state: str | None = None, **params: Any) -> AuthorizationRequest:
        """
        Generates the authorize URI and returns it together with its state.

        Args:
            state: Anti-replay state (optional, generated if omitted).
            **params: Extra authorize URI parameters.
        """
        with tracer.start_as_current_span("oauth_handoff.begin") as span:
            span.set_attribute("oauth.provider", self.provider.name)
            request = self.provider.generate_authorize_uri(state=state, **params)
            logger.debug(f"Generated authorization URL for provider '{self.provider.name}': {request.uri}")
            return request

    async def begin(self, state: str | None = None, **params: Any) -> str:
        """
        Returns the provider authorize URI the browser should be redirected to.

        Args:
            state: Anti-replay state (optional, generated if omitted).
            **params: Extra authorize URI parameters.
        """
        request = await self.begin_request(state=state, **params)
        return request.uri

    async def exchange_code(self, code: str, **params: Any) -> TokenExchangeResult:
        """
        Exchanges `code` for an access token, capturing a failed exchange as a result
        instead of raising.
        """
        logger.debug(f"Exchanging authorization code for provider '{self.provider.name}'...")
        try:
            token = await self.provider.exchange_authorization_code_for_token(code, **params)
        except TokenExchangeError as e:
            return TokenExchangeResult(error=e)
        return TokenExchangeResult(token=token)

    def _error_view(self, base: dict[str, Any], message: str) -> HandoffView:
        return HandoffView(
            **base,
            message=HandoffMessage.ERROR,
            content=f"An error occurred. {message}",
            display=f"An error occurred. Please close this page and try again. {message}",
            display_classes="error",
        )

    async def build_complete_view(self, code: str | None, **params: Any) -> HandoffView:
        """
        Builds the view data of the handoff document for `code`.

        An absent code yields an error view without contacting the provider.
        """
        title = f"Logging you in via {self.provider.display_name}..."
        base: dict[str, Any] = {
            "title": title,
            "description": title,
            "oauth_provider": self.provider.name,
            "origin_pattern": self.origin_pattern.to_js_literal(),
            "admin_panel_link": _admin_panel_link(self.config.get("admin_panel_url")),
        }

        if not code:
            logger.warning(f"No authorization code received from '{self.provider.name}'.")
            return self._error_view(
                base,
                f"Invalid code received from {self.provider.display_name} or code could not be received.",
            )

        result = await self.exchange_code(code, **params)
        if result.token is None:
            error = result.error or TokenExchangeError("Token exchange failed.")
            message = sanitize_for_handoff(coerce_error_to_message(error, dev=self.config.get("dev")))
            return self._error_view(base, message)

        content = json.dumps({"token": result.token.token, "provider": self.provider.name})
        return HandoffView(
            **base,
            message=HandoffMessage.SUCCESS,
            content=content,
            display=title,
        )

    async def complete(self, code: str | None, **params: Any) -> str:
        """
        Completes the flow and returns the HTML handoff document.

        Args:
            code: The authorization code from the provider's redirect, or None.
            **params: Extra parameters for the token request.

        Returns:
            str: The HTML document. If rendering fails, a minimal inline error page.
        """
        with tracer.start_as_current_span("oauth_handoff.complete") as span:
            span.set_attribute("oauth.provider", self.provider.name)
            view = await self.build_complete_view(code, **params)
            span.set_attribute("oauth_handoff.message", view.message.value)
            if view.message is HandoffMessage.ERROR:
                span.set_status(Status(StatusCode.ERROR, "Handoff failed"))

            logger.debug("Rendering handoff document to pass the result back to the admin panel.")
            try:
                return await _render(self.renderer, COMPLETE_TEMPLATE, view.model_dump(mode="json"))
            except TemplateRenderingError as e:
                logger.error(f"Failed to render handoff document: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, "Rendering failed"))
                return render_fallback_error_page(coerce_error_to_message(e, dev=self.config.get("dev")))

    async def render_error(self, error: Exception) -> str:
        """Renders an error page for `error` using this handler's config and renderer."""
        return await render_error_page(
            error,
            dev=self.config.get("dev"),
            admin_panel_url=self.config.get("admin_panel_url"),
            renderer=self.renderer,
        )


def create_handlers(config: Mapping[str, Any] | ValidatedConfig | None = None, **options: Any) -> HandoffHandlers:
    """Creates both handlers. See `HandoffHandlers` for the options."""
    return HandoffHandlers(config, **options)


def create_begin_handler(
    config: Mapping[str, Any] | ValidatedConfig | None = None, **options: Any
) -> Callable[..., Awaitable[str]]:
    """Creates the `begin` handler: `await begin(state=None, **params) -> authorize URI`."""
    return create_handlers(config, **options).begin


def create_complete_handler(
    config: Mapping[str, Any] | ValidatedConfig | None = None, **options: Any
) -> Callable[..., Awaitable[str]]:
    """Creates the `complete` handler: `await complete(code, **params) -> HTML`."""
    return create_handlers(config, **options).complete
