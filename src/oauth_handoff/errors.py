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
Turns exceptions into single-line, display-safe messages for the handoff pages.
"""

import re
import traceback

_CONTROL_CHARS_RE = re.compile(r"\s*[\x00-\x1f\x7f]+\s*")

SEPARATOR = " – "


def collapse_control_characters(text: str) -> str:
    """Collapses line breaks and other control characters into a visible separator."""
    return _CONTROL_CHARS_RE.sub(SEPARATOR, text.strip())


def _primary_error(error: BaseException) -> BaseException:
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error


def _describe(error: BaseException) -> str:
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name


def coerce_error_to_message(error: BaseException, *, dev: bool = False) -> str:
    """
    Coerces an exception into a message that can be shown to the user.

    Args:
        error: The exception to describe.
        dev: If True, include the full cause chain and every member of exception groups,
            with tracebacks. Otherwise only `Name: message` of the primary error.

    Returns:
        str: A single-line message.
    """
    if dev:
        text = "".join(traceback.format_exception(error))
    else:
        text = _describe(_primary_error(error))
    return collapse_control_characters(text)


def sanitize_for_handoff(message: str) -> str:
    """
    Makes a message safe to embed in the colon-delimited handoff protocol
    (`authorization:<provider>:<status>:<content>`).
    """
    return collapse_control_characters(message).replace(":", " –")
