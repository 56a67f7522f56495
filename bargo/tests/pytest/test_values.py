"""
Tests for typed access to decoded TOML values.
"""

from __future__ import annotations

import datetime

import pytest

from bargo.errors import ChildTypeMismatch, ConfigError, TypeMismatch
from bargo.values import Kind, expect_string, expect_string_list, expect_table, kind_of


@pytest.mark.evergreen
class TestKindOf:
    """kind_of classifies every value tomllib can produce."""

    @pytest.mark.parametrize(
        "value, kind",
        [
            ("x", Kind.STRING),
            (3, Kind.INTEGER),
            (1.5, Kind.FLOAT),
            (True, Kind.BOOLEAN),
            (datetime.date(2024, 1, 1), Kind.DATETIME),
            (datetime.datetime(2024, 1, 1, 12, 0), Kind.DATETIME),
            (datetime.time(12, 0), Kind.DATETIME),
            (["a"], Kind.ARRAY),
            ({"a": 1}, Kind.TABLE),
        ],
    )
    def test_classifies(self, value: object, kind: Kind) -> None:
        assert kind_of(value) is kind

    def test_false_is_boolean_not_integer(self) -> None:
        """bool is an int subclass, but must be reported as Boolean."""
        assert kind_of(False) is Kind.BOOLEAN

    def test_rejects_non_toml_values(self) -> None:
        with pytest.raises(TypeError):
            kind_of(object())


@pytest.mark.evergreen
class TestExpectHelpers:
    """expect_* helpers return the value or raise a typed error."""

    def test_expect_string(self) -> None:
        assert expect_string("postbuild", "hook.rs") == "hook.rs"

    def test_expect_string_mismatch_names_key_and_kinds(self) -> None:
        with pytest.raises(TypeMismatch) as exc_info:
            expect_string("postbuild", 5)

        err = exc_info.value
        assert err.key == "postbuild"
        assert err.expected is Kind.STRING
        assert err.actual is Kind.INTEGER
        assert "`postbuild`" in str(err)
        assert "String" in str(err) and "Integer" in str(err)

    def test_expect_table(self) -> None:
        assert expect_table("unstable", {"a": True}) == {"a": True}

    def test_expect_table_mismatch(self) -> None:
        with pytest.raises(TypeMismatch) as exc_info:
            expect_table("unstable", ["a"])
        assert exc_info.value.actual is Kind.ARRAY

    def test_type_mismatch_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            expect_table("prebuild", "a")


@pytest.mark.evergreen
class TestExpectStringList:
    """expect_string_list accepts a string or an array of strings."""

    def test_single_string_becomes_list(self) -> None:
        assert expect_string_list("target", "x86_64-unknown-none") == ["x86_64-unknown-none"]

    def test_array_keeps_order(self) -> None:
        assert expect_string_list("target", ["b", "a", "c"]) == ["b", "a", "c"]

    def test_empty_array(self) -> None:
        assert expect_string_list("target", []) == []

    def test_non_string_member(self) -> None:
        with pytest.raises(ChildTypeMismatch) as exc_info:
            expect_string_list("direct-arg", ["--locked", 3])

        err = exc_info.value
        assert err.key == "direct-arg"
        assert err.expected is Kind.STRING
        assert err.actual is Kind.INTEGER
        assert "All members of `direct-arg`" in str(err)

    def test_wrong_shape(self) -> None:
        with pytest.raises(TypeMismatch) as exc_info:
            expect_string_list("target", {"a": 1})

        assert exc_info.value.expected is Kind.ARRAY
        assert exc_info.value.actual is Kind.TABLE
