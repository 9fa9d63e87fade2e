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
Custom exceptions for the oauth-handoff package.
"""


class OAuthHandoffError(Exception):
    """Base exception for all oauth-handoff errors."""


class ConfigValidationError(OAuthHandoffError):
    """
    Raised when the configuration is invalid (bad format, empty required value,
    or an environment/argument override that cannot be coerced).
    """


class UnknownProviderError(OAuthHandoffError):
    """Raised when no provider is registered under the requested name."""


class ProviderImplementationError(OAuthHandoffError):
    """Raised when a provider class does not implement every required member."""


class TokenExchangeError(OAuthHandoffError):
    """
    Raised when the provider rejects the authorization code or the token endpoint
    cannot be reached. The underlying failure is available as `__cause__`.
    """


class TemplateRenderingError(OAuthHandoffError):
    """Raised when a handoff template cannot be loaded or rendered."""
