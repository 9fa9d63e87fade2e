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
Registry of the supported identity providers.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from authlib.integrations.httpx_client import AsyncOAuth2Client

from oauth_handoff.config import ValidatedConfig
from oauth_handoff.exceptions import UnknownProviderError
from oauth_handoff.models import ProviderDescriptor
from oauth_handoff.providers.base import Provider, generate_state
from oauth_handoff.providers.github import GitHubProvider

PROVIDERS: Mapping[str, type[Provider]] = MappingProxyType(
    {
        GitHubProvider.PROVIDER_NAME: GitHubProvider,
    }
)


def get_provider(name: str) -> type[Provider]:
    """
    Returns the provider class registered under `name`.

    Raises:
        UnknownProviderError: If no provider is registered under `name`.
    """
    try:
        return PROVIDERS[name]
    except KeyError:
        known = ", ".join(sorted(PROVIDERS))
        raise UnknownProviderError(f"No provider implemented for '{name}'. Known providers: {known}.") from None


def get_provider_descriptor(name: str) -> ProviderDescriptor:
    """Returns the static descriptor of the provider registered under `name`."""
    return get_provider(name).describe()


def create_provider(
    name: str,
    config: Mapping[str, Any] | ValidatedConfig,
    *,
    client: AsyncOAuth2Client | None = None,
    **options: Any,
) -> Provider:
    """
    Creates a provider instance from a raw or already validated config.

    Args:
        name: The registered provider name.
        config: The configuration.
        client: External OAuth client (optional).
        **options: Forwarded to the provider constructor (`transport`, `validate_config` options).

    Raises:
        UnknownProviderError: If no provider is registered under `name`.
        ProviderImplementationError: If the provider class is incomplete.
        ConfigValidationError: If the config is invalid.
    """
    provider_cls = get_provider(name)
    return provider_cls(config, client=client, **options)


__all__ = [
    "PROVIDERS",
    "GitHubProvider",
    "Provider",
    "create_provider",
    "generate_state",
    "get_provider",
    "get_provider_descriptor",
]
