"""JavaScript value conversions used when folding compile-time constants.

Values are plain Python objects: ``None`` (null/undefined), ``bool``, ``str``,
``int``/``float`` (numbers), ``list`` (arrays) and ``dict`` (objects).
Integral numbers are kept as ``int`` so resolved values serialise the way a
JavaScript author wrote them.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Union

Number = Union[int, float]

_MAX_SAFE_INTEGER = 2**53
_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*(e[+-]?\d+)?|\.\d+(e[+-]?\d+)?)$", re.IGNORECASE)
_JS_WHITESPACE = " \t\n\r\x0b\x0c\xa0\u2028\u2029\ufeff"


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_number(value: Number) -> Number:
    """Collapse integral floats to ``int`` while they stay exactly representable.

    Negative zero stays a float so division can still tell it apart.
    """
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        if value == 0 and math.copysign(1.0, value) < 0:
            return value
        if abs(value) <= _MAX_SAFE_INTEGER:
            return int(value)
    if isinstance(value, int) and abs(value) > _MAX_SAFE_INTEGER:
        return float(value)
    return value


def number_to_string(value: Number) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent_text = text.split("e")
    exponent = int(exponent_text)
    if -7 < exponent < 21:
        return format(Decimal(text), "f")
    sign = "+" if exponent > 0 else "-"
    return f"{mantissa}e{sign}{abs(exponent)}"


def to_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return number_to_string(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join("" if item is None else to_string(item) for item in value)
    return "[object Object]"


def to_number(value: Any) -> Number:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip(_JS_WHITESPACE)
        if not text:
            return 0
        lowered = text.lower()
        if lowered.startswith(("0x", "0o", "0b")):
            try:
                return int(lowered, 0)
            except ValueError:
                return math.nan
        if text in {"Infinity", "+Infinity"}:
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _DECIMAL_LITERAL.match(text):
            return normalize_number(float(text))
        return math.nan
    if isinstance(value, list):
        return to_number(to_string(value))
    return math.nan


def to_primitive(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return to_string(value)
    return value


def to_int32(value: Any) -> int:
    number = to_number(value)
    if isinstance(number, float) and not math.isfinite(number):
        return 0
    result = int(math.trunc(number)) & 0xFFFFFFFF
    return result - 2**32 if result >= 2**31 else result


def to_uint32(value: Any) -> int:
    return to_int32(value) & 0xFFFFFFFF


def truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def _same_type(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool)
    if is_number(left) or is_number(right):
        return is_number(left) and is_number(right)
    return type(left) is type(right)


def strict_equals(left: Any, right: Any) -> bool:
    if not _same_type(left, right):
        return False
    if isinstance(left, (list, dict)):
        return left is right
    return left == right


def loose_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if _same_type(left, right):
        return strict_equals(left, right)
    if isinstance(left, bool):
        return loose_equals(to_number(left), right)
    if isinstance(right, bool):
        return loose_equals(left, to_number(right))
    if is_number(left) and isinstance(right, str):
        return left == to_number(right)
    if isinstance(left, str) and is_number(right):
        return to_number(left) == right
    if isinstance(left, (list, dict)) and not isinstance(right, (list, dict)):
        return loose_equals(to_primitive(left), right)
    if isinstance(right, (list, dict)) and not isinstance(left, (list, dict)):
        return loose_equals(left, to_primitive(right))
    return False


__all__ = [
    "is_number",
    "loose_equals",
    "normalize_number",
    "number_to_string",
    "strict_equals",
    "to_int32",
    "to_number",
    "to_primitive",
    "to_string",
    "to_uint32",
    "truthy",
]
