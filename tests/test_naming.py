from __future__ import annotations

import pytest

from pystoreservice.naming import action_type_for, is_pascal_case, pascal_case, to_words


def test_to_words_splits_on_non_alphanumerics() -> None:
    assert to_words("service_my-thing") == ["service", "my", "thing"]
    assert to_words("__a__b__") == ["a", "b"]
    assert to_words("") == []


def test_to_words_splits_camel_case_boundaries() -> None:
    assert to_words("helloWorld") == ["hello", "World"]
    assert to_words("ServiceUsers") == ["Service", "Users"]
    assert to_words("item2Name") == ["item2", "Name"]
    assert to_words("HTTP") == ["HTTP"]


def test_to_words_rejects_non_strings() -> None:
    with pytest.raises(TypeError):
        to_words(42)  # type: ignore[arg-type]


def test_pascal_case() -> None:
    assert pascal_case("hello world") == "HelloWorld"
    assert pascal_case("helloWorld") == "HelloWorld"
    assert pascal_case("SERVICE_users") == "ServiceUsers"
    assert is_pascal_case("Service")
    assert is_pascal_case("ServiceUsers")
    assert not is_pascal_case("service")
    assert not is_pascal_case("serviceUsers")


def test_action_type_is_lowercased_before_splitting() -> None:
    assert action_type_for("TestService") == "ServiceTestservice"
    assert action_type_for("TestService") == action_type_for("testservice")
