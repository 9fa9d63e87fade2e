# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

import json
import logging
import os
from collections.abc import Generator
from unittest.mock import patch

import pytest
from loguru import logger
from opentelemetry.sdk.trace import TracerProvider

from oauth_handoff.utils.logger import configure_logging

QUIET = {"OAUTH_HANDOFF_LOG_FILE": "false"}


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    yield
    with patch.dict(os.environ, QUIET):
        configure_logging()


def json_records(out: str, message: str) -> list[dict[str, object]]:
    records = []
    for line in out.strip().splitlines():
        if message in line:
            records.append(json.loads(line)["record"])
    return records


def test_text_logging(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_JSON": "false"}):
        configure_logging()
        logger.info("Text log")

    out, err = capfd.readouterr()
    assert "Text log" in err
    assert "Text log" not in out


def test_json_logging(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_JSON": "true", "OAUTH_HANDOFF_LOG_LEVEL": "info"}):
        configure_logging()
        logger.info("JSON log")

    out, err = capfd.readouterr()
    assert not err
    (record,) = json_records(out, "JSON log")
    assert record["message"] == "JSON log"
    assert record["level"]["name"] == "INFO"  # type: ignore[index]


def test_log_level(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_LEVEL": "WARNING"}):
        configure_logging()
        logger.info("Hidden")
        logger.warning("Shown")

    _, err = capfd.readouterr()
    assert "Hidden" not in err
    assert "Shown" in err


def test_invalid_log_level_falls_back_to_info(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_LEVEL": "LOUD"}):
        configure_logging()
        logger.debug("Debug hidden")
        logger.info("Info shown")

    _, err = capfd.readouterr()
    assert "Debug hidden" not in err
    assert "Info shown" in err


def test_trace_id_injection(capfd: pytest.CaptureFixture[str]) -> None:
    tracer = TracerProvider().get_tracer(__name__)

    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_JSON": "true"}):
        configure_logging()
        with tracer.start_as_current_span("test_span") as span:
            logger.info("Traced message")
            ctx = span.get_span_context()

    out, _ = capfd.readouterr()
    (record,) = json_records(out, "Traced message")
    extra = record["extra"]
    assert extra["trace_id"] == format(ctx.trace_id, "032x")  # type: ignore[index]
    assert extra["span_id"] == format(ctx.span_id, "016x")  # type: ignore[index]
    assert extra["correlation_id"] == format(ctx.trace_id, "032x")  # type: ignore[index]


def test_standard_logging_is_intercepted(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {**QUIET, "OAUTH_HANDOFF_LOG_JSON": "true"}):
        configure_logging()
        logging.getLogger("httpx").info("HTTP Request: POST https://github.com/login/oauth/access_token")

    out, _ = capfd.readouterr()
    (record,) = json_records(out, "HTTP Request")
    assert record["level"]["name"] == "INFO"  # type: ignore[index]


def test_repeated_configuration_does_not_duplicate_sinks() -> None:
    with patch.dict(os.environ, QUIET):
        configure_logging()
        first = len(logger._core.handlers)  # type: ignore[attr-defined]
        configure_logging()
        second = len(logger._core.handlers)  # type: ignore[attr-defined]

    assert first == second == 1
