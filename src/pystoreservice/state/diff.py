"""Depth-bounded structural diffing.

:func:`value_diff` walks two values side by side and returns only what
changed. Below the requested depth it stops recursing: nested containers
are then compared by identity, which is what makes the diff cheap enough to
run on every dispatched action.

Known asymmetry: the diff reports the *destination* side's value, so
``value_diff(a, b)`` and ``value_diff(b, a)`` name different values for the
same keys. Whether a difference exists does not depend on the order: callables
and dates on either side are compared by their string form.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from typing import Any, Final

from pystoreservice._constants import DEFAULT_DIFF_DEPTH


class _Marker:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __reduce__(self) -> str:
        return self._name


UNCHANGED: Final = _Marker("UNCHANGED")
"""Returned by :func:`value_diff` when both sides match up to the compare depth."""

REMOVED: Final = _Marker("REMOVED")
"""Diff entry for a key present in the source but missing in the destination."""

_SCALARS = (str, bytes, int, float, bool)
_STRINGLIKE = (dt.date, dt.time, dt.timedelta)
_SEQUENCES = (list, tuple)


def _is_stringlike(value: Any) -> bool:
    return callable(value) or isinstance(value, _STRINGLIKE)


def _strict_equal(src: Any, dest: Any) -> bool:
    # True == 1 in Python; keep booleans apart from numbers.
    if isinstance(src, bool) != isinstance(dest, bool):
        return False
    return bool(src == dest)


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, *_SEQUENCES))


def _cutoff_equal(src: Any, dest: Any) -> bool:
    if src is dest:
        return True
    if _is_container(src) or _is_container(dest):
        return False
    return value_diff(src, dest, 0) is UNCHANGED


def _diff_keyed(src: Any, dest: Any, keys: list[Any], depth: int) -> Any:
    result: dict[Any, Any] = {}
    for key in keys:
        if not _has_key(src, key):
            result[key] = dest[key]
            continue
        if not _has_key(dest, key):
            result[key] = REMOVED
            continue
        if depth > 0:
            sub = value_diff(src[key], dest[key], depth - 1)
            if sub is not UNCHANGED:
                result[key] = sub
        elif not _cutoff_equal(src[key], dest[key]):
            result[key] = dest[key]
    return result if result else UNCHANGED


def _has_key(container: Any, key: Any) -> bool:
    if isinstance(container, Mapping):
        return key in container
    return 0 <= key < len(container)


def _union_keys(src: Mapping[Any, Any], dest: Mapping[Any, Any]) -> list[Any]:
    keys = list(src)
    keys.extend(key for key in dest if key not in src)
    return keys


def value_diff(src: Any, dest: Any, depth: int = DEFAULT_DIFF_DEPTH) -> Any:
    """Return the difference between *src* and *dest*.

    Parameters
    ----------
    src
        The earlier value.
    dest
        The later value.
    depth
        How many container levels to recurse into.  At depth ``0`` the
        members of a container are compared without further recursion:
        nested containers only match when they are the same object.

    Returns
    -------
    Any
        :data:`UNCHANGED` when nothing differs, *dest* when the values are
        not structurally comparable, otherwise a ``dict`` holding only the
        keys (or list indexes) that differ. Keys that disappeared map to
        :data:`REMOVED`.
    """
    if src is dest:
        return UNCHANGED
    if _is_stringlike(src) or _is_stringlike(dest):
        return UNCHANGED if str(src) == str(dest) else dest
    if isinstance(src, _SCALARS):
        return UNCHANGED if _strict_equal(src, dest) else dest
    if (src is None) != (dest is None):
        return dest
    if isinstance(src, Mapping):
        if not isinstance(dest, Mapping):
            return dest
        return _diff_keyed(src, dest, _union_keys(src, dest), depth)
    if isinstance(src, _SEQUENCES):
        if not isinstance(dest, _SEQUENCES) or isinstance(src, list) != isinstance(dest, list):
            return dest
        return _diff_keyed(src, dest, list(range(max(len(src), len(dest)))), depth)
    return UNCHANGED if src == dest else dest


def values_match(src: Any, dest: Any, depth: int = DEFAULT_DIFF_DEPTH) -> bool:
    """Return ``True`` if *src* and *dest* match up to *depth* levels."""
    return value_diff(src, dest, depth) is UNCHANGED
