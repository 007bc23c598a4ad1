"""Tests for JavaScript value coercions."""

from __future__ import annotations

import math

import pytest

from nativec import jsvalues


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "true"),
        (3, "3"),
        (2.5, "2.5"),
        (1e21, "1e+21"),
        (1e-7, "1e-7"),
        (0.000001, "0.000001"),
        (math.nan, "NaN"),
        (-math.inf, "-Infinity"),
        ([1, None, "a"], "1,,a"),
        ({"a": 1}, "[object Object]"),
    ],
)
def test_to_string(value, expected: str) -> None:
    assert jsvalues.to_string(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (False, 0),
        ("", 0),
        ("  42 ", 42),
        ("0x10", 16),
        ("1.5e3", 1500),
        ("-Infinity", -math.inf),
        ([], 0),
        ([7], 7),
    ],
)
def test_to_number(value, expected) -> None:
    assert jsvalues.to_number(value) == expected


@pytest.mark.parametrize("value", ["abc", "1px", [1, 2], {}])
def test_to_number_nan(value) -> None:
    assert math.isnan(jsvalues.to_number(value))


def test_normalize_number_keeps_integral_values_as_int() -> None:
    assert jsvalues.normalize_number(4.0) == 4
    assert isinstance(jsvalues.normalize_number(4.0), int)
    assert isinstance(jsvalues.normalize_number(0.5), float)
    assert isinstance(jsvalues.normalize_number(2**60), float)


def test_int32_conversions_wrap() -> None:
    assert jsvalues.to_int32(2**31) == -(2**31)
    assert jsvalues.to_int32(-1.9) == -1
    assert jsvalues.to_int32(math.inf) == 0
    assert jsvalues.to_uint32(-1) == 2**32 - 1


@pytest.mark.parametrize("value", [None, False, 0, math.nan, ""])
def test_falsy_values(value) -> None:
    assert not jsvalues.truthy(value)


@pytest.mark.parametrize("value", [True, 1, "0", [], {}])
def test_truthy_values(value) -> None:
    assert jsvalues.truthy(value)


def test_equality_semantics() -> None:
    assert jsvalues.loose_equals(1, "1")
    assert jsvalues.loose_equals(None, None)
    assert not jsvalues.loose_equals(None, 0)
    assert jsvalues.loose_equals(True, 1)
    assert not jsvalues.strict_equals(1, "1")
    assert not jsvalues.strict_equals(True, 1)
    assert not jsvalues.strict_equals(math.nan, math.nan)
    items = [1]
    assert jsvalues.strict_equals(items, items)
    assert not jsvalues.strict_equals([1], [1])


def test_normalize_number_keeps_negative_zero() -> None:
    value = jsvalues.normalize_number(-0.0)
    assert isinstance(value, float)
    assert math.copysign(1.0, value) < 0
    assert jsvalues.to_string(value) == "0"
    assert jsvalues.normalize_number(0.0) == 0
    assert isinstance(jsvalues.normalize_number(0.0), int)
