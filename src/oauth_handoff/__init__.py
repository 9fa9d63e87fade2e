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
OAuth 2.0 authorization-code handoff for browser-based admin panels, keeping the client secret on the server.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import CONFIG_SCHEMA, ValidatedConfig, validate_config
from .errors import coerce_error_to_message
from .exceptions import (
    ConfigValidationError,
    OAuthHandoffError,
    ProviderImplementationError,
    TemplateRenderingError,
    TokenExchangeError,
    UnknownProviderError,
)
from .handlers import (
    HandoffHandlers,
    create_begin_handler,
    create_complete_handler,
    create_handlers,
    render_error_page,
)
from .origins import compile_origin_pattern
from .providers import GitHubProvider, Provider, create_provider, get_provider
from .rendering import TemplateRenderer

__all__ = [
    "CONFIG_SCHEMA",
    "ConfigValidationError",
    "GitHubProvider",
    "HandoffHandlers",
    "OAuthHandoffError",
    "Provider",
    "ProviderImplementationError",
    "TemplateRenderer",
    "TemplateRenderingError",
    "TokenExchangeError",
    "UnknownProviderError",
    "ValidatedConfig",
    "coerce_error_to_message",
    "compile_origin_pattern",
    "create_begin_handler",
    "create_complete_handler",
    "create_handlers",
    "create_provider",
    "get_provider",
    "render_error_page",
    "validate_config",
]
