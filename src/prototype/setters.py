"""Range-checked numeric writes and strict text parsing.

The ``set_*`` helpers validate a Python number against the target kind
and return the value narrowed to the target class; callers store the
result. The ``parse_*`` helpers accept exactly the literal forms listed in
their docstrings and raise ``ValueError`` otherwise.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Any

import numpy as np

from prototype.errors import (
    ConvertError,
    NegativeNumberError,
    NumberOverflowError,
    UnsupportedValueError,
)
from prototype.kinds import FLOAT32_MAX, INT_RANGES, Kind, TypeInfo

_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_UINT_LITERAL = re.compile(r"[0-9]+")
_FLOAT_LITERAL = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)

_TRUE = frozenset({"1", "t", "T", "true", "TRUE", "True"})
_FALSE = frozenset({"0", "f", "F", "false", "FALSE", "False"})


# ---------------------------------------------------------------------------
# Narrowing
# ---------------------------------------------------------------------------

def narrow(path: Sequence[str], info: TypeInfo, value: Any) -> Any:
    """Convert an already validated value to the target class."""
    cls = info.cls
    if cls is not None and type(value) is not cls:
        value = cls(value)
    if info.enum is not None:
        try:
            return info.enum(value)
        except ValueError as exc:
            raise ConvertError(path, info.annotation, value, str(exc)) from exc
    return value


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def set_int(path: Sequence[str], info: TypeInfo, i: int) -> Any:
    lo, hi = INT_RANGES[info.kind]
    if not lo <= i <= hi:
        raise NumberOverflowError(path, info.annotation, i)
    return narrow(path, info, i)


def set_uint(path: Sequence[str], info: TypeInfo, u: int) -> Any:
    _, hi = INT_RANGES[info.kind]
    if u > hi:
        raise NumberOverflowError(path, info.annotation, u)
    return narrow(path, info, u)


def set_float(path: Sequence[str], info: TypeInfo, f: float) -> Any:
    if info.kind is Kind.FLOAT32 and math.isfinite(f) and abs(f) > FLOAT32_MAX:
        raise NumberOverflowError(path, info.annotation, format_float(f))
    return narrow(path, info, f)


def int_to_uint(path: Sequence[str], info: TypeInfo, i: int) -> Any:
    if i < 0:
        raise NegativeNumberError(path, info.annotation, i)
    return set_uint(path, info, i)


def uint_to_int(path: Sequence[str], info: TypeInfo, u: int) -> Any:
    if u > INT_RANGES[Kind.INT64][1]:
        raise NumberOverflowError(path, info.annotation, u)
    return set_int(path, info, u)


def float_to_int(path: Sequence[str], info: TypeInfo, f: float) -> Any:
    if not math.isfinite(f):
        raise UnsupportedValueError(path, f, f"{format_float(f)} has no integer value")
    return set_int(path, info, int(f))


def float_to_uint(path: Sequence[str], info: TypeInfo, f: float) -> Any:
    if not math.isfinite(f):
        raise UnsupportedValueError(path, f, f"{format_float(f)} has no integer value")
    if f < 0:
        raise NegativeNumberError(path, info.annotation, format_float(f))
    return set_uint(path, info, int(f))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_bool(s: str) -> bool:
    """Accepts 1, t, T, TRUE, true, True, 0, f, F, FALSE, false, False."""
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError("invalid syntax")


def parse_int(s: str) -> int:
    """Optionally signed decimal digits within the 64-bit signed range."""
    if not _INT_LITERAL.fullmatch(s):
        raise ValueError("invalid syntax")
    i = int(s)
    lo, hi = INT_RANGES[Kind.INT64]
    if not lo <= i <= hi:
        raise ValueError("value out of range")
    return i


def parse_uint(s: str) -> int:
    """Unsigned decimal digits within the 64-bit unsigned range."""
    if not _UINT_LITERAL.fullmatch(s):
        raise ValueError("invalid syntax")
    u = int(s)
    if u > INT_RANGES[Kind.UINT64][1]:
        raise ValueError("value out of range")
    return u


def parse_float(s: str) -> float:
    """Decimal or exponent notation, ``inf``/``infinity``/``nan`` in any case."""
    if not _FLOAT_LITERAL.fullmatch(s):
        raise ValueError("invalid syntax")
    f = float(s)
    if math.isinf(f) and "inf" not in s.lower():
        raise ValueError("value out of range")
    return f


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_bool(b: bool) -> str:
    return "true" if b else "false"


def format_float(f: float) -> str:
    """Shortest round-tripping decimal form, no exponent."""
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    return np.format_float_positional(f, trim="-")
