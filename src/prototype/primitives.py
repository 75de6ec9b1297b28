"""Primitive cloners.

Every primitive cloner reads its scalar, walks the target down to the
location to write, and converts the scalar for that location's kind:

==========  =====  =========  ===========  ==========  ========  =====  =======
src / tgt   bool   int        uint         float       string    bytes  time
==========  =====  =========  ===========  ==========  ========  =====  =======
bool        copy   0/1        0/1          0/1         text      -      -
int         != 0   checked    checked>=0   checked     base 10   -      seconds
uint        != 0   <=int64    checked      checked     base 10   -      seconds
float       != 0   checked    >=0          checked     shortest  -      -
string      parse  parse      parse        parse       copy      utf-8  parse
bytes       parse  parse      parse        parse       raw text  copy   parse
time        -      seconds    seconds      seconds     RFC 3339  utf-8  copy
decimal     != 0   integral   integral     checked     text      -      -
==========  =====  =========  ===========  ==========  ========  =====  =======

Dynamic (``Any``) targets receive the widened scalar, well-known wrapper
targets the converted payload. Bytes written into a sequence target are
cloned element by element as ``uint8`` values. Anything else goes to the
hook layer.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import numpy as np

from prototype import wellknown
from prototype.aggregates import new_instance
from prototype.context import CloneContext
from prototype.dispatch import hook_cloner, indirect
from prototype.errors import (
    ConvertError,
    NegativeNumberError,
    NumberOverflowError,
    StringParseError,
    UnsupportedValueError,
)
from prototype.kinds import FLOAT_KINDS, INT_KINDS, SCALAR_KINDS, UINT_KINDS, Kind, TypeInfo
from prototype.setters import (
    float_to_int,
    float_to_uint,
    format_bool,
    format_float,
    int_to_uint,
    narrow,
    parse_bool,
    parse_float,
    parse_int,
    parse_uint,
    set_float,
    set_int,
    set_uint,
    uint_to_int,
)
from prototype.slots import Slot

Converter = Callable[[CloneContext, Sequence[str], Any, TypeInfo], Any]

_TEXT_DECODE = ("utf-8", "surrogateescape")


def _parse(path: Sequence[str], info: TypeInfo, text: str, parser: Callable[[str], Any]) -> Any:
    try:
        return parser(text)
    except ValueError as exc:
        raise StringParseError(path, info.annotation, text, exc) from exc


def _int_to_float(path: Sequence[str], info: TypeInfo, i: int) -> Any:
    try:
        f = float(i)
    except OverflowError as exc:
        raise NumberOverflowError(path, info.annotation, i) from exc
    return set_float(path, info, f)


def _int_to_time(ctx: CloneContext, path: Sequence[str], info: TypeInfo, i: int) -> Any:
    try:
        t = ctx.options.int_to_time(i)
    except (OverflowError, ValueError, OSError) as exc:
        raise NumberOverflowError(path, info.annotation, i) from exc
    return narrow(path, info, t)


# ---------------------------------------------------------------------------
# Converters: scalar -> value for the target kind, or NotImplemented
# ---------------------------------------------------------------------------

def from_bool(ctx: CloneContext, path: Sequence[str], b: bool, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.BOOL:
        return narrow(path, info, b)
    if kind in INT_KINDS:
        return set_int(path, info, int(b))
    if kind in UINT_KINDS:
        return set_uint(path, info, int(b))
    if kind in FLOAT_KINDS:
        return set_float(path, info, float(b))
    if kind is Kind.STRING:
        return narrow(path, info, format_bool(b))
    if kind is Kind.DECIMAL:
        return narrow(path, info, Decimal(int(b)))
    return NotImplemented


def from_int(ctx: CloneContext, path: Sequence[str], i: int, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.BOOL:
        return narrow(path, info, i != 0)
    if kind in INT_KINDS:
        return set_int(path, info, i)
    if kind in UINT_KINDS:
        return int_to_uint(path, info, i)
    if kind in FLOAT_KINDS:
        return _int_to_float(path, info, i)
    if kind is Kind.STRING:
        return narrow(path, info, str(i))
    if kind is Kind.DECIMAL:
        return narrow(path, info, Decimal(i))
    if kind is Kind.TIME:
        return _int_to_time(ctx, path, info, i)
    return NotImplemented


def from_uint(ctx: CloneContext, path: Sequence[str], u: int, info: TypeInfo) -> Any:
    kind = info.kind
    if kind in INT_KINDS:
        return uint_to_int(path, info, u)
    if kind in UINT_KINDS:
        return set_uint(path, info, u)
    return from_int(ctx, path, u, info)


def from_float(ctx: CloneContext, path: Sequence[str], f: Any, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.BOOL:
        return narrow(path, info, bool(f != 0))
    if kind in INT_KINDS:
        return float_to_int(path, info, f)
    if kind in UINT_KINDS:
        return float_to_uint(path, info, f)
    if kind in FLOAT_KINDS:
        return set_float(path, info, float(f))
    if kind is Kind.STRING:
        return narrow(path, info, format_float(f))
    if kind is Kind.DECIMAL:
        return narrow(path, info, Decimal(format_float(f)))
    return NotImplemented


def from_string(ctx: CloneContext, path: Sequence[str], s: str, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.STRING:
        return narrow(path, info, s)
    if kind is Kind.BYTES:
        return narrow(path, info, s.encode(*_TEXT_DECODE))
    if kind is Kind.BOOL:
        return narrow(path, info, _parse(path, info, s, parse_bool))
    if kind in INT_KINDS:
        return set_int(path, info, _parse(path, info, s, parse_int))
    if kind in UINT_KINDS:
        return set_uint(path, info, _parse(path, info, s, parse_uint))
    if kind in FLOAT_KINDS:
        return set_float(path, info, _parse(path, info, s, parse_float))
    if kind is Kind.TIME:
        return narrow(path, info, _parse(path, info, s, ctx.options.string_to_time))
    if kind is Kind.DECIMAL:
        try:
            return narrow(path, info, Decimal(s))
        except InvalidOperation as exc:
            raise StringParseError(path, info.annotation, s, exc) from exc
    return NotImplemented


def from_bytes(ctx: CloneContext, path: Sequence[str], b: bytes, info: TypeInfo) -> Any:
    if info.kind is Kind.BYTES:
        return narrow(path, info, b)
    return from_string(ctx, path, b.decode(*_TEXT_DECODE), info)


def from_time(ctx: CloneContext, path: Sequence[str], t: datetime, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.TIME:
        return narrow(path, info, t)
    if kind is Kind.STRING:
        return narrow(path, info, ctx.options.time_to_string(t))
    if kind is Kind.BYTES:
        return narrow(path, info, ctx.options.time_to_string(t).encode())
    if kind in INT_KINDS:
        return set_int(path, info, ctx.options.time_to_int(t))
    if kind in UINT_KINDS:
        return int_to_uint(path, info, ctx.options.time_to_int(t))
    if kind in FLOAT_KINDS:
        return set_float(path, info, float(ctx.options.time_to_int(t)))
    return NotImplemented


def from_decimal(ctx: CloneContext, path: Sequence[str], d: Decimal, info: TypeInfo) -> Any:
    kind = info.kind
    if kind is Kind.DECIMAL:
        return narrow(path, info, d)
    if kind is Kind.BOOL:
        return narrow(path, info, d != 0)
    if kind is Kind.STRING:
        return narrow(path, info, str(d))
    if kind in FLOAT_KINDS:
        return set_float(path, info, float(d))
    if kind in INT_KINDS or kind in UINT_KINDS:
        if not d.is_finite():
            raise UnsupportedValueError(path, d, f"{d} has no integer value")
        if d != d.to_integral_value():
            raise ConvertError(path, info.annotation, d, "not an integral value")
        if kind in UINT_KINDS:
            if d < 0:
                raise NegativeNumberError(path, info.annotation, d)
            return set_uint(path, info, int(d))
        return set_int(path, info, int(d))
    return NotImplemented


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def _write_wellknown(
    ctx: CloneContext,
    path: Sequence[str],
    slot: Slot,
    info: TypeInfo,
    scalar: Any,
    convert: Converter,
    dynamic: Any,
) -> bool:
    entry = wellknown.lookup(info.cls)
    if entry is None:
        return False
    if entry.discard:
        return True
    if entry.underlying is not None:
        value = convert(ctx, path, scalar, entry.underlying)
        if value is NotImplemented:
            return False
        slot.set(entry.wrap(value, ctx.options))
        return True
    if entry.accepts is not None and entry.accepts(dynamic):
        slot.set(entry.wrap(dynamic, ctx.options))
        return True
    return False


def write_scalar(
    ctx: CloneContext,
    path: Sequence[str],
    target: Slot,
    source: Any,
    scalar: Any,
    convert: Converter,
    dynamic: Any,
) -> None:
    """Write ``scalar`` into ``target`` through ``convert``.

    ``dynamic`` is the widened form stored into ``Any`` targets.
    """
    receiver, slot, info = indirect(target)
    if receiver is not None:
        receiver.clone_from(scalar)
        return

    kind = info.kind
    if kind in SCALAR_KINDS:
        value = convert(ctx, path, scalar, info)
        if value is not NotImplemented:
            slot.set(value)
            return
    elif kind is Kind.INTERFACE and info.empty:
        slot.set(dynamic)
        return
    elif kind is Kind.STRUCT and _write_wellknown(ctx, path, slot, info, scalar, convert, dynamic):
        return
    elif kind in (Kind.SLICE, Kind.ARRAY) and isinstance(scalar, bytes):
        from prototype.containers import sequence_cloner

        sequence_cloner(ctx, path, slot, np.frombuffer(scalar, dtype=np.uint8))
        return

    if isinstance(scalar, (str, bytes)) and callable(getattr(info.cls, "unmarshal_text", None)):
        receiver = new_instance(info.cls)
        receiver.unmarshal_text(scalar if isinstance(scalar, str) else scalar.decode(*_TEXT_DECODE))
        slot.set(receiver)
        return

    hook_cloner(ctx, path, slot, source)


def _scalar(source: Any) -> Any:
    return source.value if isinstance(source, Enum) else source


# ---------------------------------------------------------------------------
# Cloners
# ---------------------------------------------------------------------------

def bool_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    b = bool(_scalar(source))
    write_scalar(ctx, path, target, source, b, from_bool, b)


def int_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    i = int(_scalar(source))
    write_scalar(ctx, path, target, source, i, from_int, i)


def uint_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    u = int(_scalar(source))
    write_scalar(ctx, path, target, source, u, from_uint, np.uint64(u))


def float_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    f = _scalar(source)
    if not isinstance(f, np.floating):
        f = float(f)
    write_scalar(ctx, path, target, source, f, from_float, float(f))


def string_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    s = str(_scalar(source))
    write_scalar(ctx, path, target, source, s, from_string, s)


def bytes_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    b = bytes(source)
    write_scalar(ctx, path, target, source, b, from_bytes, b)


def time_cloner(ctx: CloneContext, path: list[str], target: Slot, source: datetime) -> None:
    write_scalar(ctx, path, target, source, source, from_time, source)


def decimal_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Decimal) -> None:
    write_scalar(ctx, path, target, source, source, from_decimal, source)
