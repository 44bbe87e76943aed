"""Dot-path addressing over nested mappings."""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping
from typing import Any

from pystoreservice.exceptions import InvalidPathError, UnaddressableTargetError

_DOT_PATH = re.compile(r"[0-9A-Za-z]+(?:\.[0-9A-Za-z]+)*")
_WHITESPACE = re.compile(r"\s")


def is_dot_path(value: str) -> bool:
    """Return ``True`` when *value* looks like ``is.a.dot.path``."""
    return isinstance(value, str) and _DOT_PATH.fullmatch(value) is not None


def lookup(root: Any, path: str) -> Any:
    """Return the value at *path* inside *root*, or ``None``.

    Walking stops with ``None`` as soon as an intermediate segment is
    missing, falsy or not a mapping.
    """
    if _WHITESPACE.search(path):
        raise InvalidPathError(f"Invalid object path {path!r}", path=path)
    result = root
    for segment in path.split("."):
        if not result or not isinstance(result, Mapping):
            return None
        result = result.get(segment)
    return result


def set_path(root: Any, path: str, value: Any) -> None:
    """Assign *value* at *path* inside *root*, in place.

    The parent container must already exist; nothing is created on the way.
    """
    if not is_dot_path(path):
        raise InvalidPathError(f"Invalid object path {path!r}", path=path)
    parent_path, _, key = path.rpartition(".")
    parent = lookup(root, parent_path) if parent_path else root
    if not isinstance(parent, MutableMapping):
        raise UnaddressableTargetError(f"Can't set property on object at path {path!r}", path=path)
    parent[key] = value
