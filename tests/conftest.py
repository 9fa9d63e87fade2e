# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

import os
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest

from oauth_handoff.config import CONFIG_SCHEMA
from oauth_handoff.rendering import reset_partials_cache


@pytest.fixture(autouse=True)
def isolated_environment() -> Generator[None, None, None]:
    """
    Removes every environment variable bound to a config option, so that a developer's
    shell (e.g. an exported ORIGIN) cannot leak into the tests.
    """
    names = {spec.env for spec in CONFIG_SCHEMA.values() if spec.env}
    saved = {name: os.environ.pop(name) for name in list(os.environ) if name.upper() in names}
    try:
        yield
    finally:
        for name in list(os.environ):
            if name.upper() in names:
                del os.environ[name]
        os.environ.update(saved)


@pytest.fixture(autouse=True)
def fresh_partials_cache() -> Generator[None, None, None]:
    """Each test gets its own event loop, so it must not see a partials load from another loop."""
    reset_partials_cache()
    yield
    reset_partials_cache()


@pytest.fixture
def okay_config() -> dict[str, Any]:
    return {
        "origin": "localhost",
        "complete_url": "https://localhost/complete",
        "oauth_client_id": "abc123",
        "oauth_client_secret": "def456",
    }


@pytest.fixture
def token_transport() -> Callable[..., httpx.MockTransport]:
    """
    Factory for a MockTransport that answers the token endpoint.
    Every request is recorded in the returned transport's `requests` list.
    """

    def factory(status_code: int = 200, json: Any = None, content: bytes | None = None) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if content is not None:
                return httpx.Response(status_code, content=content)
            payload = json
            if payload is None:
                payload = {"access_token": "gho_token", "token_type": "bearer", "scope": "repo,user"}
            return httpx.Response(status_code, json=payload)

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return factory
