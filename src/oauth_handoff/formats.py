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
Closed registry of the custom value formats used by the configuration schema.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

# Values that have an unambiguous string form. Everything else (mappings, None,
# callables, arbitrary objects) is rejected instead of being silently dropped.
_STRINGABLE = (str, int, float)


@dataclass(frozen=True)
class Format:
    """
    A named coercion applied to a raw configuration value.

    Attributes:
        name (str): The format name referenced by the schema.
        coerce (Callable): Returns the coerced value, or None when the value is unacceptable.
        expected (str): Human-readable description used in validation errors.
    """

    name: str
    coerce: Callable[[Any], list[str] | None]
    expected: str

    def __call__(self, value: Any, *, allow_empty: bool = True) -> list[str]:
        """
        Coerces and validates `value`.

        Raises:
            ValueError: If the value cannot be coerced, or is empty while `allow_empty` is False.
        """
        result = self.coerce(value)
        if result is None or (not allow_empty and len(result) == 0):
            raise ValueError(f"Expected {self.expected}, received: {value!r}")
        return result


def coerce_list(value: Any) -> list[str] | None:
    """
    Coerces a list/tuple, or a comma-separated string, into a list of strings.

    Returns None as soon as an element without a string form is found.
    """
    if isinstance(value, (list, tuple)):
        items: Any = value
    elif value is None or isinstance(value, _STRINGABLE):
        items = str(value if value is not None else "").strip().split(",")
    else:
        return None

    result: list[str] = []
    for item in items:
        # bool is an int subclass and has a string form; that is fine here.
        if not isinstance(item, _STRINGABLE):
            return None
        result.append(str(item))
    return result


def coerce_origin_list(value: Any) -> list[str] | None:
    """
    Applies list coercion, then trims and lower-cases every origin.
    An origin that is empty after trimming invalidates the whole list.
    """
    items = coerce_list(value)
    if items is None:
        return None

    result: list[str] = []
    for item in items:
        processed = item.strip().lower()
        if not processed:
            return None
        result.append(processed)
    return result


LIST = Format(name="list", coerce=coerce_list, expected="array or string of comma-separated values")
ORIGIN_LIST = Format(
    name="origin-list",
    coerce=coerce_origin_list,
    expected="array or string of comma-separated HTTP origins",
)

FORMATS: Mapping[str, Format] = MappingProxyType({fmt.name: fmt for fmt in (LIST, ORIGIN_LIST)})


def get_format(name: str) -> Format:
    """
    Returns the registered format called `name`.

    Raises:
        KeyError: If no such format exists.
    """
    try:
        return FORMATS[name]
    except KeyError:
        raise KeyError(f"Unknown config format '{name}'. Known formats: {', '.join(sorted(FORMATS))}") from None
