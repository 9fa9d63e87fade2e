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
Compiles an origin allow-list into a single matching pattern.

The pattern is checked against `MessageEvent.origin` in the handoff document, so the
same text must behave identically under Python's `re` and ECMAScript regexes.
"""

import re
from collections.abc import Sequence

from oauth_handoff.models import AllowListPattern, OriginSpec
from oauth_handoff.utils.logger import logger

_ORIGIN_RE = re.compile(r"^(?:(https?)://)?([^:]+)(?::(\d+))?$", re.IGNORECASE)

# Characters that are special in either regex dialect, plus "/" which terminates a JS literal.
_REGEX_SPECIALS = frozenset(".*+?^${}()|[]\\/-")

# Characters that must never appear raw inside an inline <script> block.
_HTML_SPECIALS = frozenset("<>&")

# Unicode line terminators end a JS regex literal.
_LINE_TERMINATORS = frozenset("\u2028\u2029")

_MATCH_NOTHING = "(?!)"


def parse_origin(origin: str) -> OriginSpec | None:
    """
    Parses `(scheme "://")? host (":" port)?`.

    Args:
        origin: A single allow-list entry, e.g. "example.com" or "https://example.com:8080".

    Returns:
        The parsed OriginSpec, or None if the entry does not follow the grammar.
    """
    match = _ORIGIN_RE.fullmatch(origin.strip())
    if not match:
        return None
    scheme, host, port = match.groups()
    return OriginSpec(scheme=scheme.lower() if scheme else None, host=host, port=port)


def escape_pattern(text: str) -> str:
    """
    Escapes `text` for literal use inside a regex alternation.
    The result is valid in both Python and JavaScript and is safe to inline in HTML.
    """
    escaped: list[str] = []
    for char in text:
        if char in _LINE_TERMINATORS:
            escaped.append(f"\\u{ord(char):04x}")
        elif char in _HTML_SPECIALS or ord(char) < 0x20 or ord(char) == 0x7F:
            escaped.append(f"\\x{ord(char):02x}")
        elif char in _REGEX_SPECIALS:
            escaped.append(f"\\{char}")
        else:
            escaped.append(char)
    return "".join(escaped)


def expand_origins(origins: str | Sequence[str]) -> list[str]:
    """
    Expands every allow-list entry into its concrete origins, in input order.
    Entries that fail to parse are skipped.
    """
    if isinstance(origins, str):
        origins = [origins]

    expanded: list[str] = []
    for origin in origins:
        spec = parse_origin(origin)
        if spec is None:
            logger.warning(f"Ignoring malformed origin in allow-list: {origin!r}")
            continue
        for concrete in spec.expand():
            if concrete not in expanded:
                expanded.append(concrete)
    return expanded


def compile_origin_pattern(origins: str | Sequence[str]) -> AllowListPattern:
    """
    Compiles the allow-list into a single case-insensitive, anchored pattern.

    Args:
        origins: One origin string or a sequence of them.

    Returns:
        AllowListPattern: Matches a candidate iff it equals (ignoring case) one of the expanded origins.
    """
    expanded = expand_origins(origins)
    if expanded:
        alternation = "|".join(escape_pattern(origin) for origin in expanded)
        source = f"^(?:{alternation})$"
    else:
        logger.warning("Origin allow-list is empty after parsing; no origin will be accepted.")
        source = f"^{_MATCH_NOTHING}$"

    return AllowListPattern(
        source=source,
        origins=tuple(expanded),
        regex=re.compile(source, re.IGNORECASE),
    )
