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
Provider base class: the shared half of the authorization-code dance.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import httpx
from authlib.common.security import generate_token
from authlib.integrations.base_client import OAuthError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from oauth_handoff.config import ValidatedConfig, validate_config
from oauth_handoff.exceptions import ProviderImplementationError, TokenExchangeError
from oauth_handoff.models import AccessToken, AuthorizationRequest, ProviderDescriptor
from oauth_handoff.utils.logger import logger

STATE_LENGTH = 32

# Parameters owned by the OAuth client itself; neither callers nor providers may override them.
PROTECTED_AUTHORIZE_PARAMETERS = frozenset({"client_id", "response_type"})


def generate_state() -> str:
    """Returns a cryptographically random, 32 character alphanumeric state token."""
    return generate_token(STATE_LENGTH)


class Provider(ABC):
    """
    An OAuth 2.0 identity provider.

    Concrete providers only supply their identity and endpoint defaults; authorize URI
    generation and the code-for-token exchange are shared. A subclass that leaves any
    abstract member unimplemented cannot be instantiated.

    Attributes:
        config (ValidatedConfig): The validated configuration.
        descriptor (ProviderDescriptor): Static description of this provider.
    """

    def __new__(cls, *args: Any, **kwargs: Any) -> "Provider":
        missing = sorted(getattr(cls, "__abstractmethods__", ()))
        if missing:
            raise ProviderImplementationError(f"Provider '{cls.__name__}' must implement: {', '.join(missing)}.")
        return super().__new__(cls)

    def __init__(
        self,
        config: Mapping[str, Any] | ValidatedConfig,
        *,
        client: AsyncOAuth2Client | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **config_options: Any,
    ) -> None:
        """
        Initialize the Provider.

        Args:
            config: A raw config mapping or an already validated config.
            client: External OAuth client (optional). Must be configured with this provider's credentials.
                Its `token` is cleared after every code exchange.
            transport: HTTP transport for the internally created client (optional, e.g. for testing).
            **config_options: Options forwarded to `validate_config`.
        """
        self.config = validate_config(config, **config_options)
        self.descriptor = type(self).describe()
        self._internal_client = client is None

        if client is not None:
            self._client = client
        else:
            self._client = AsyncOAuth2Client(
                client_id=self.config.get("oauth_client_id"),
                client_secret=self.config.get("oauth_client_secret"),
                redirect_uri=self.config.get("complete_url"),
                scope=self.scopes,
                timeout=self.config.get("http_timeout"),
                transport=transport,
            )
            HTTPXClientInstrumentor().instrument_client(self._client)

    async def __aenter__(self) -> "Provider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Closes the OAuth client if this provider created it."""
        if self._internal_client:
            await self._client.aclose()

    # Required members

    @classmethod
    @abstractmethod
    def get_name(cls) -> str:
        """The canonical name, as the admin panel identifies this service (e.g. 'github')."""

    @classmethod
    @abstractmethod
    def get_display_name(cls) -> str:
        """A human-readable name (e.g. 'GitHub')."""

    @classmethod
    @abstractmethod
    def get_default_token_host(cls) -> str:
        """The provider's default base URI (e.g. 'https://github.com')."""

    @classmethod
    @abstractmethod
    def get_default_token_path(cls) -> str:
        """The default token endpoint path, relative to the token host."""

    @classmethod
    @abstractmethod
    def get_default_authorize_path(cls) -> str:
        """The default authorize endpoint path, relative to the token host."""

    @classmethod
    @abstractmethod
    def get_default_scopes(cls) -> str:
        """The default scopes to request."""

    @classmethod
    def describe(cls) -> ProviderDescriptor:
        """
        Returns the static descriptor of this provider.

        Raises:
            ProviderImplementationError: If the class does not implement every required member.
        """
        missing = sorted(getattr(cls, "__abstractmethods__", ()))
        if missing:
            raise ProviderImplementationError(f"Provider '{cls.__name__}' must implement: {', '.join(missing)}.")
        return ProviderDescriptor(
            name=cls.get_name(),
            display_name=cls.get_display_name(),
            token_host=cls.get_default_token_host(),
            token_path=cls.get_default_token_path(),
            authorize_path=cls.get_default_authorize_path(),
            scopes=cls.get_default_scopes(),
        )

    # Extension points

    def additional_authorize_parameters(self, **params: Any) -> dict[str, Any]:
        """
        Provider-specific parameters for the authorize URI.
        They take precedence over the parameters supplied by the caller.
        """
        return {}

    def token_options(self, code: str) -> dict[str, Any]:
        """Options passed to the token endpoint during the code handoff."""
        return {"code": code}

    # Resolved endpoints

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    @property
    def token_host(self) -> str:
        return self.config.get("oauth_token_host") or self.descriptor.token_host

    @property
    def token_path(self) -> str:
        return self.config.get("oauth_token_path") or self.descriptor.token_path

    @property
    def authorize_path(self) -> str:
        return self.config.get("oauth_authorize_path") or self.descriptor.authorize_path

    @property
    def scopes(self) -> str:
        return self.config.get("oauth_scopes") or self.descriptor.scopes

    @property
    def token_url(self) -> str:
        return urljoin(self.token_host, self.token_path)

    @property
    def authorize_url(self) -> str:
        return urljoin(self.token_host, self.authorize_path)

    # Operations

    def _drop_protected(self, params: dict[str, Any], origin: str) -> dict[str, Any]:
        for key in PROTECTED_AUTHORIZE_PARAMETERS & params.keys():
            logger.warning(f"Ignoring {origin} authorize parameter '{key}'; it is set by the OAuth client.")
            params.pop(key)
        return params

    def generate_authorize_uri(self, state: str | None = None, **params: Any) -> AuthorizationRequest:
        """
        Generates the URI that starts the flow at the provider.

        Args:
            state: Anti-replay state. A random 32 character token is generated if omitted.
            **params: Extra query parameters. They override `redirect_uri` and `scope`, but
                are themselves overridden by `additional_authorize_parameters`.

        Returns:
            AuthorizationRequest: The authorize URI and the state it carries.
        """
        state = state or generate_state()
        caller_params = self._drop_protected(dict(params), "caller")

        query: dict[str, Any] = {
            "redirect_uri": self.config.get("complete_url"),
            "scope": self.scopes,
            **caller_params,
        }
        overrides = self._drop_protected(
            dict(self.additional_authorize_parameters(state=state, **caller_params)),
            "provider",
        )
        query.update(overrides)
        state = query.pop("state", state)

        uri, _ = self._client.create_authorization_url(self.authorize_url, state=state, **query)
        return AuthorizationRequest(uri=uri, state=state)

    async def exchange_authorization_code_for_token(self, code: str, **params: Any) -> AccessToken:
        """
        Exchanges an authorization code for an access token.

        Args:
            code: The authorization code received on the redirect.
            **params: Extra parameters for the token request.

        Returns:
            AccessToken: The token issued by the provider.

        Raises:
            TokenExchangeError: If the code is invalid or expired, or the token endpoint fails.
        """
        options = {**self.token_options(code), **params}
        try:
            token = await self._client.fetch_token(self.token_url, **options)
        except (OAuthError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Token exchange with '{self.name}' failed: {e}")
            raise TokenExchangeError(f"Failed to exchange authorization code with {self.display_name}: {e}") from e
        finally:
            # fetch_token stores the token on the shared client; clear it before the next await.
            self._client.token = None

        if not isinstance(token, Mapping) or not token.get("access_token"):
            raise TokenExchangeError(f"{self.display_name} token response did not contain an access token.")

        return AccessToken(
            access_token=token["access_token"],
            token_type=token.get("token_type"),
            scope=token.get("scope"),
            raw=dict(token),
        )
