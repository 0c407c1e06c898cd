"""JSON decoding that never silently loses numeric precision.

Amount fields returned by bitcoind may exceed the range that a double can
represent exactly. Such numbers are kept as their decimal string so that
callers can feed them to :class:`decimal.Decimal` without rounding.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, List, Tuple, Union

MAX_SAFE_INTEGER = 2**53 - 1
MAX_SIGNIFICANT_DIGITS = 15

_LEADING_ZEROS = re.compile(r"^0+")


def _parse_int(literal: str) -> Union[int, str]:
    value = int(literal)
    if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
        return value
    return literal


def _parse_float(literal: str) -> Union[float, str]:
    mantissa = literal.lstrip("-").split("e")[0].split("E")[0]
    digits = _LEADING_ZEROS.sub("", mantissa.replace(".", ""))
    if len(digits.rstrip("0")) > MAX_SIGNIFICANT_DIGITS:
        return literal
    value = float(literal)
    # exponent out of range: overflow to inf or underflow to zero
    if not math.isfinite(value) or (value == 0.0 and digits.strip("0")):
        return literal
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected JSON constant {name}")


def _unique_object(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ValueError(f'Duplicate key "{key}"')
        result[key] = value
    return result


def loads(text: Union[str, bytes, bytearray]) -> Any:
    """Decode strict JSON, preserving out-of-range numbers as strings."""

    return json.loads(
        text,
        parse_int=_parse_int,
        parse_float=_parse_float,
        parse_constant=_reject_constant,
        object_pairs_hook=_unique_object,
    )
