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
Data models for the oauth-handoff package.
"""

import re
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

Scheme = Literal["http", "https"]

DEFAULT_PORTS: dict[str, str] = {"http": "80", "https": "443"}


class HandoffMessage(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class OriginSpec(BaseModel):
    """
    A parsed origin entry from the allow-list.

    Attributes:
        scheme (str | None): "http", "https", or None for "either".
        host (str): The host name, never empty.
        port (str | None): The explicit port, or None for "the default one".
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scheme: Scheme | None = None
    host: str = Field(..., min_length=1)
    port: str | None = Field(default=None, pattern=r"^\d+$")

    def expand(self) -> list[str]:
        """
        Expands this entry into every concrete `scheme://host[:port]` it allows.

        A missing scheme means both http and https; a missing port means both
        "no port" and the scheme's default port.
        """
        schemes: list[str] = [self.scheme] if self.scheme else ["http", "https"]
        origins: list[str] = []
        for scheme in schemes:
            ports = [f":{self.port}"] if self.port else ["", f":{DEFAULT_PORTS[scheme]}"]
            origins.extend(f"{scheme}://{self.host}{port}" for port in ports)
        return origins


class AllowListPattern(BaseModel):
    """
    A compiled, case-insensitive, fully anchored origin matcher.

    Attributes:
        source (str): The pattern text, valid both as a Python and an ECMAScript regex.
        origins (tuple[str, ...]): The concrete origins the pattern was built from.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    origins: tuple[str, ...] = ()
    regex: re.Pattern[str]

    def matches(self, origin: str) -> bool:
        """Returns True if `origin` is exactly one of the allowed origins (ignoring case)."""
        return self.regex.fullmatch(origin) is not None

    def to_js_literal(self) -> str:
        """Returns the pattern as a JavaScript regex literal, e.g. `/^(?:https:\\/\\/a\\.com)$/i`."""
        return f"/{self.source}/i"

    def __str__(self) -> str:
        return self.source


class ProviderDescriptor(BaseModel):
    """
    Static description of a supported identity provider.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Canonical name, also sent to the admin panel.", examples=["github"])
    display_name: str = Field(..., description="Human-readable name.", examples=["GitHub"])
    token_host: str = Field(..., description="Default base URI of the provider.", examples=["https://github.com"])
    token_path: str = Field(..., description="Default token endpoint path.")
    authorize_path: str = Field(..., description="Default authorize endpoint path.")
    scopes: str = Field(..., description="Default scopes to request.")


class AuthorizationRequest(BaseModel):
    """
    A generated authorize URI together with the anti-replay state it carries.
    """

    model_config = ConfigDict(frozen=True)

    uri: str
    state: str


class AccessToken(BaseModel):
    """
    Access token returned by the provider's token endpoint.

    Attributes:
        access_token (SecretStr): The token itself. Protected from logging.
        token_type (str | None): Usually "bearer".
        scope (str | None): The scopes actually granted.
        raw (dict): The full token endpoint response.
    """

    model_config = ConfigDict(frozen=True)

    access_token: SecretStr
    token_type: str | None = None
    scope: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def token(self) -> str:
        return self.access_token.get_secret_value()


class TokenExchangeResult(BaseModel):
    """
    Outcome of a code-for-token exchange: exactly one of `token` and `error` is set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    token: AccessToken | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.token is not None


class AdminPanelLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = "#"
    target: Literal["_blank", "_self"] = "_self"


class HandoffView(BaseModel):
    """
    View data for the `complete.html` handoff document.

    The renderer only formats this data; every decision about what to show is made here.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    oauth_provider: str
    origin_pattern: str = Field(..., description="JavaScript regex literal of the allow-list.")
    admin_panel_link: AdminPanelLink = Field(default_factory=AdminPanelLink)
    message: HandoffMessage
    content: str
    display: str
    display_classes: str = ""
