"""
Typed access to values decoded from TOML.

``tomllib`` hands back plain Python objects. Settings in ``bargo.toml`` are
polymorphic (a target may be a string or a list of strings, an unstable flag
may be a bool, a string or a list), so every read goes through one of the
``expect_*`` helpers below, which raise a typed error naming the key, the
expected kind and the kind actually found.
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from bargo.errors import ChildTypeMismatch, TypeMismatch


class Kind(str, Enum):
    """The closed set of value kinds a TOML document can contain."""

    STRING = "String"
    INTEGER = "Integer"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    DATETIME = "Datetime"
    ARRAY = "Array"
    TABLE = "Table"


def kind_of(value: Any) -> Kind:
    """Classify a decoded TOML value."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return Kind.BOOLEAN
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, int):
        return Kind.INTEGER
    if isinstance(value, float):
        return Kind.FLOAT
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return Kind.DATETIME
    if isinstance(value, list):
        return Kind.ARRAY
    if isinstance(value, dict):
        return Kind.TABLE
    raise TypeError(f"not a TOML value: {value!r}")


def expect_string(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeMismatch(key, Kind.STRING, kind_of(value))
    return value


def expect_table(key: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeMismatch(key, Kind.TABLE, kind_of(value))
    return value


def expect_string_list(key: str, value: Any) -> list[str]:
    """Read a setting that may be a single string or an array of strings.

    A lone string is treated as a one-element list.
    """
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise TypeMismatch(key, Kind.ARRAY, kind_of(value))

    items = []
    for item in value:
        if not isinstance(item, str):
            raise ChildTypeMismatch(key, Kind.STRING, kind_of(item))
        items.append(item)
    return items
