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
GitHub (and GitHub Enterprise, via `oauth_token_host`) provider.
"""

from oauth_handoff.providers.base import Provider


class GitHubProvider(Provider):
    """GitHub OAuth App provider."""

    PROVIDER_NAME = "github"
    DISPLAY_NAME = "GitHub"

    @classmethod
    def get_name(cls) -> str:
        return cls.PROVIDER_NAME

    @classmethod
    def get_display_name(cls) -> str:
        return cls.DISPLAY_NAME

    @classmethod
    def get_default_token_host(cls) -> str:
        return "https://github.com"

    @classmethod
    def get_default_token_path(cls) -> str:
        return "/login/oauth/access_token"

    @classmethod
    def get_default_authorize_path(cls) -> str:
        return "/login/oauth/authorize"

    @classmethod
    def get_default_scopes(cls) -> str:
        return "repo,user"
