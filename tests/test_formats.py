# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/oauth_handoff

import pytest

from oauth_handoff.formats import FORMATS, LIST, ORIGIN_LIST, coerce_list, coerce_origin_list, get_format


def test_registry_is_closed() -> None:
    assert set(FORMATS) == {"list", "origin-list"}
    with pytest.raises(TypeError):
        FORMATS["custom"] = LIST  # type: ignore[index]


def test_get_format_unknown() -> None:
    assert get_format("list") is LIST
    with pytest.raises(KeyError, match="Unknown config format"):
        get_format("nope")


def test_list_from_string() -> None:
    assert coerce_list("a,b, c") == ["a", "b", " c"]
    assert coerce_list("  single  ") == ["single"]
    assert coerce_list("") == [""]
    assert coerce_list(None) == [""]


def test_list_from_sequence() -> None:
    assert coerce_list(["a", 1, 2.5, True]) == ["a", "1", "2.5", "True"]
    assert coerce_list(("x",)) == ["x"]
    assert coerce_list([]) == []


def test_list_rejects_non_stringable_elements() -> None:
    assert coerce_list(["a", {"b": 1}]) is None
    assert coerce_list(["a", None]) is None
    assert coerce_list(["a", lambda: "b"]) is None
    assert coerce_list(["a", object()]) is None
    assert coerce_list(["a", ["nested"]]) is None


def test_list_rejects_non_sequence_objects() -> None:
    assert coerce_list({"a": 1}) is None
    assert coerce_list(object()) is None
    assert coerce_list(len) is None


def test_list_format_raises() -> None:
    with pytest.raises(ValueError, match="comma-separated values"):
        LIST({"a": 1})
    with pytest.raises(ValueError):
        LIST([], allow_empty=False)
    assert LIST([]) == []


def test_origin_list_normalizes() -> None:
    assert coerce_origin_list(" Example.COM , https://Foo.org:8080") == ["example.com", "https://foo.org:8080"]
    assert coerce_origin_list(["LOCALHOST "]) == ["localhost"]


def test_origin_list_rejects_empty_elements() -> None:
    assert coerce_origin_list("a.com,") is None
    assert coerce_origin_list(["a.com", "   "]) is None
    assert coerce_origin_list("") is None
    assert coerce_origin_list(None) is None


def test_origin_list_format_raises() -> None:
    with pytest.raises(ValueError, match="HTTP origins"):
        ORIGIN_LIST(["a.com", None])
    with pytest.raises(ValueError):
        ORIGIN_LIST([], allow_empty=False)
