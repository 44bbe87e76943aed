"""Identifier helpers used to derive stable action types."""

from __future__ import annotations

from pystoreservice._constants import ACTION_TYPE_PREFIX


def _is_alnum(char: str) -> bool:
    # ASCII only; str.isalnum() would accept accented letters and digits from other scripts.
    return char.isascii() and char.isalnum()


def to_words(key: str) -> list[str]:
    """Split an arbitrary string into its alphanumeric words.

    Anything that is not an ASCII letter or digit acts as a separator, and a
    new word starts where a lower-case letter or digit is followed by an
    upper-case letter. ``"service_my-thing"`` yields
    ``["service", "my", "thing"]`` and ``"helloWorld"`` yields
    ``["hello", "World"]``.
    """
    if not isinstance(key, str):
        raise TypeError(f"Invalid key string {key!r}")
    words: list[str] = []
    word = ""
    for char in key:
        if not _is_alnum(char):
            if word:
                words.append(word)
                word = ""
            continue
        if word and char.isupper() and not word[-1].isupper():
            words.append(word)
            word = ""
        word += char
    if word:
        words.append(word)
    return words


def pascal_case(key: str) -> str:
    """Convert an alphanumeric string to PascalCase."""
    return "".join(word[:1].upper() + word[1:].lower() for word in to_words(key))


def is_pascal_case(value: str) -> bool:
    return value == pascal_case(value)


def action_type_for(name: str) -> str:
    """Return the action type a service named *name* dispatches.

    The name is lower-cased before splitting, so ``"TestService"`` maps to
    ``"ServiceTestservice"``. The result is stable for the life of the service.
    """
    return pascal_case(ACTION_TYPE_PREFIX + name.lower())
