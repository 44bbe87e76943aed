from __future__ import annotations

import pytest

from pystoreservice.exceptions import InvalidPathError, UnaddressableTargetError
from pystoreservice.state.paths import is_dot_path, lookup, set_path


def test_is_dot_path_accepts_plain_and_nested_paths() -> None:
    assert is_dot_path("this.that.theother")
    assert is_dot_path("propOnItsOwn")
    assert is_dot_path("slice2.v1")


@pytest.mark.parametrize("path", ["", "a..b", ".a", "a.", "a b", "a-b", "a/b", "ä"])
def test_is_dot_path_rejects_illegal_paths(path: str) -> None:
    assert not is_dot_path(path)


def test_lookup_and_set_round_trip() -> None:
    obj = {"hello": {"world": True}}
    assert lookup(obj, "hello.world") is True

    set_path(obj, "hello.world", False)

    assert lookup(obj, "hello.world") is False
    assert obj["hello"]["world"] is False


def test_lookup_missing_or_falsy_intermediate_returns_none() -> None:
    obj = {"a": {"b": 0}, "z": None}
    assert lookup(obj, "a.b") == 0
    assert lookup(obj, "a.b.c") is None
    assert lookup(obj, "z.y") is None
    assert lookup(obj, "missing") is None
    assert lookup(None, "a") is None


def test_lookup_rejects_whitespace() -> None:
    with pytest.raises(InvalidPathError) as excinfo:
        lookup({"a": 1}, "a .b")
    assert excinfo.value.path == "a .b"


def test_set_path_rejects_illegal_path() -> None:
    with pytest.raises(InvalidPathError):
        set_path({}, "a..b", 1)


def test_set_path_requires_existing_parent() -> None:
    with pytest.raises(UnaddressableTargetError):
        set_path({}, "a.b", 1)
    with pytest.raises(UnaddressableTargetError):
        set_path({"a": 5}, "a.b", 1)


def test_set_path_leaves_siblings_alone() -> None:
    sibling = {"keep": [1, 2]}
    obj = {"left": sibling, "right": {}}

    set_path(obj, "right.value", 3)

    assert obj["left"] is sibling
    assert sibling == {"keep": [1, 2]}
    assert obj["right"] == {"value": 3}


def test_set_path_top_level_key_on_empty_root() -> None:
    obj: dict[str, object] = {}
    set_path(obj, "slice", {"a": 1})
    assert lookup(obj, "slice") == {"a": 1}
