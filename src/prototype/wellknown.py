"""Well-known wrapper types.

Nullable wrappers (``NullInt64`` and friends) and the protobuf well-known
messages are cloned through the scalar they carry instead of field by
field. As a source, a wrapper unwraps to its payload (an invalid Null*
or an ``Empty`` is treated as ``None``). As a target, the converted
payload is wrapped back, range-checked against the wrapper's scalar kind.

Any other protobuf message is handled through its JSON mapping: it reads
as a ``dict`` keyed by proto field name and is written from one.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any

import numpy as np
from google.protobuf import (
    any_pb2,
    descriptor_pool,
    duration_pb2,
    empty_pb2,
    json_format,
    message_factory,
    struct_pb2,
    timestamp_pb2,
    wrappers_pb2,
)
from google.protobuf.message import Message

from prototype.kinds import INT_RANGES, ZERO_TIME, Kind, TypeInfo

# ---------------------------------------------------------------------------
# Nullable wrappers
# ---------------------------------------------------------------------------


@dataclass
class NullBool:
    value: bool = False
    valid: bool = False


@dataclass
class NullByte:
    value: int = 0
    valid: bool = False


@dataclass
class NullInt16:
    value: int = 0
    valid: bool = False


@dataclass
class NullInt32:
    value: int = 0
    valid: bool = False


@dataclass
class NullInt64:
    value: int = 0
    valid: bool = False


@dataclass
class NullFloat64:
    value: float = 0.0
    valid: bool = False


@dataclass
class NullString:
    value: str = ""
    valid: bool = False


@dataclass
class NullTime:
    value: datetime = ZERO_TIME
    valid: bool = False


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WellKnown:
    """How one wrapper type reads and writes.

    Scalar wrappers set ``underlying``: the payload is converted as if the
    target were that scalar, then passed to ``wrap``. Dynamic wrappers
    (``Value``, ``Any``, ``Struct`` ...) take the widened payload as long
    as ``accepts`` allows it. ``discard`` wrappers carry nothing.
    """

    cls: type
    unwrap: Callable[[Any], Any]
    wrap: Callable[[Any, Any], Any] | None = None
    underlying: TypeInfo | None = None
    accepts: Callable[[Any], bool] | None = None
    discard: bool = False


def _null_unwrap(wrapper: Any) -> Any:
    return wrapper.value if wrapper.valid else None


def _null(cls: type, kind: Kind, value_cls: type) -> WellKnown:
    return WellKnown(
        cls,
        unwrap=_null_unwrap,
        wrap=lambda value, _: cls(value=value, valid=True),
        underlying=TypeInfo(cls, kind, value_cls),
    )


def _scalar_message(cls: type, kind: Kind, value_cls: type) -> WellKnown:
    return WellKnown(
        cls,
        unwrap=lambda message: message.value,
        wrap=lambda value, _: cls(value=value),
        underlying=TypeInfo(cls, kind, value_cls),
    )


def _to_timestamp(value: datetime, _: Any) -> timestamp_pb2.Timestamp:
    message = timestamp_pb2.Timestamp()
    message.FromDatetime(value)
    return message


def _to_duration(nanos: int, _: Any) -> duration_pb2.Duration:
    message = duration_pb2.Duration()
    message.FromNanoseconds(nanos)
    return message


def unpack_any(message: any_pb2.Any) -> Message:
    """Unpack an ``Any`` through the default descriptor pool.

    Raises ``KeyError`` when the packed type is not registered.
    """
    descriptor = descriptor_pool.Default().FindMessageTypeByName(message.TypeName())
    inner = message_factory.GetMessageClass(descriptor)()
    message.Unpack(inner)
    return inner


def jsonable(value: Any, options: Any) -> Any:
    """Reduce a widened value to what the protobuf JSON mapping accepts."""
    if isinstance(value, dict):
        return {str(k): jsonable(v, options) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v, options) for v in value]
    if isinstance(value, datetime):
        return options.time_to_string(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Message):
        return json_format.MessageToDict(value, preserving_proto_field_name=True)
    return value


def _to_value(value: Any, options: Any) -> struct_pb2.Value:
    return json_format.ParseDict(jsonable(value, options), struct_pb2.Value())


def _to_struct(value: Any, options: Any) -> struct_pb2.Struct:
    message = struct_pb2.Struct()
    message.update(jsonable(value, options))
    return message


def _to_list_value(value: Any, options: Any) -> struct_pb2.ListValue:
    message = struct_pb2.ListValue()
    message.extend(jsonable(value, options))
    return message


def pack(value: Any, options: Any) -> Message:
    """Box a widened value in the matching well-known message."""
    if isinstance(value, Message):
        return value
    if isinstance(value, bool):
        return wrappers_pb2.BoolValue(value=value)
    if isinstance(value, np.unsignedinteger):
        return wrappers_pb2.UInt64Value(value=int(value))
    if isinstance(value, int):
        if value > INT_RANGES[Kind.INT64][1]:
            return wrappers_pb2.UInt64Value(value=value)
        return wrappers_pb2.Int64Value(value=value)
    if isinstance(value, float):
        return wrappers_pb2.DoubleValue(value=value)
    if isinstance(value, str):
        return wrappers_pb2.StringValue(value=value)
    if isinstance(value, (bytes, bytearray)):
        return wrappers_pb2.BytesValue(value=bytes(value))
    if isinstance(value, datetime):
        return _to_timestamp(value, options)
    if isinstance(value, dict):
        return _to_struct(value, options)
    if isinstance(value, list):
        return _to_list_value(value, options)
    return _to_value(value, options)


def _to_any(value: Any, options: Any) -> any_pb2.Any:
    message = any_pb2.Any()
    message.Pack(pack(value, options))
    return message


def _message_to_dict(message: Message) -> Any:
    return json_format.MessageToDict(message, preserving_proto_field_name=True)


_CATALOGUE: dict[type, WellKnown] = {
    entry.cls: entry
    for entry in (
        _null(NullBool, Kind.BOOL, bool),
        _null(NullByte, Kind.UINT8, int),
        _null(NullInt16, Kind.INT16, int),
        _null(NullInt32, Kind.INT32, int),
        _null(NullInt64, Kind.INT64, int),
        _null(NullFloat64, Kind.FLOAT64, float),
        _null(NullString, Kind.STRING, str),
        _null(NullTime, Kind.TIME, datetime),
        _scalar_message(wrappers_pb2.BoolValue, Kind.BOOL, bool),
        _scalar_message(wrappers_pb2.Int32Value, Kind.INT32, int),
        _scalar_message(wrappers_pb2.Int64Value, Kind.INT64, int),
        _scalar_message(wrappers_pb2.UInt32Value, Kind.UINT32, int),
        _scalar_message(wrappers_pb2.UInt64Value, Kind.UINT64, int),
        _scalar_message(wrappers_pb2.FloatValue, Kind.FLOAT32, float),
        _scalar_message(wrappers_pb2.DoubleValue, Kind.FLOAT64, float),
        _scalar_message(wrappers_pb2.StringValue, Kind.STRING, str),
        _scalar_message(wrappers_pb2.BytesValue, Kind.BYTES, bytes),
        WellKnown(
            timestamp_pb2.Timestamp,
            unwrap=lambda message: message.ToDatetime(tzinfo=timezone.utc),
            wrap=_to_timestamp,
            underlying=TypeInfo(timestamp_pb2.Timestamp, Kind.TIME, datetime),
        ),
        WellKnown(
            duration_pb2.Duration,
            unwrap=lambda message: message.ToNanoseconds(),
            wrap=_to_duration,
            underlying=TypeInfo(duration_pb2.Duration, Kind.INT64, int),
        ),
        WellKnown(empty_pb2.Empty, unwrap=lambda message: None, discard=True),
        WellKnown(
            any_pb2.Any,
            unwrap=unpack_any,
            wrap=_to_any,
            accepts=lambda value: True,
        ),
        WellKnown(
            struct_pb2.Value,
            unwrap=_message_to_dict,
            wrap=_to_value,
            accepts=lambda value: True,
        ),
        WellKnown(
            struct_pb2.Struct,
            unwrap=_message_to_dict,
            wrap=_to_struct,
            accepts=lambda value: isinstance(value, dict),
        ),
        WellKnown(
            struct_pb2.ListValue,
            unwrap=_message_to_dict,
            wrap=_to_list_value,
            accepts=lambda value: isinstance(value, list),
        ),
    )
}


@lru_cache(maxsize=None)
def _generic_message(cls: type) -> WellKnown:
    return WellKnown(
        cls,
        unwrap=_message_to_dict,
        wrap=lambda value, options: json_format.ParseDict(
            jsonable(value, options), cls(), ignore_unknown_fields=True
        ),
        accepts=lambda value: isinstance(value, dict),
    )


def lookup(cls: Any) -> WellKnown | None:
    """Catalogue entry for ``cls``, or None for ordinary types."""
    entry = _CATALOGUE.get(cls)
    if entry is not None:
        return entry
    if isinstance(cls, type) and issubclass(cls, Message):
        return _generic_message(cls)
    return None
