"""Kind catalogue.

Every source value is classified by its runtime type and every target by
its declared annotation. Both sides resolve to a :class:`TypeInfo` whose
:class:`Kind` selects the conversion rules.
"""

from __future__ import annotations

import dataclasses
import inspect
import sys
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin

import numpy as np
from google.protobuf.message import Message
from pydantic import BaseModel

from prototype.slots import Ref


class Kind(str, Enum):
    INVALID = "invalid"
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    BYTES = "bytes"
    TIME = "time"
    DECIMAL = "decimal"
    ARRAY = "array"
    SLICE = "slice"
    MAP = "map"
    STRUCT = "struct"
    POINTER = "pointer"
    INTERFACE = "interface"
    UNSUPPORTED = "unsupported"


INT_KINDS = frozenset({Kind.INT, Kind.INT8, Kind.INT16, Kind.INT32, Kind.INT64})
UINT_KINDS = frozenset({Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINT64})
FLOAT_KINDS = frozenset({Kind.FLOAT32, Kind.FLOAT64})
NUMBER_KINDS = INT_KINDS | UINT_KINDS | FLOAT_KINDS
SCALAR_KINDS = NUMBER_KINDS | {
    Kind.BOOL, Kind.STRING, Kind.BYTES, Kind.TIME, Kind.DECIMAL,
}

# Inclusive bounds; plain ``int`` behaves as a 64-bit signed integer.
INT_RANGES: dict[Kind, tuple[int, int]] = {
    Kind.INT: (-(1 << 63), (1 << 63) - 1),
    Kind.INT8: (-(1 << 7), (1 << 7) - 1),
    Kind.INT16: (-(1 << 15), (1 << 15) - 1),
    Kind.INT32: (-(1 << 31), (1 << 31) - 1),
    Kind.INT64: (-(1 << 63), (1 << 63) - 1),
    Kind.UINT8: (0, (1 << 8) - 1),
    Kind.UINT16: (0, (1 << 16) - 1),
    Kind.UINT32: (0, (1 << 32) - 1),
    Kind.UINT64: (0, (1 << 64) - 1),
}

FLOAT32_MAX = float(np.finfo(np.float32).max)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_NUMPY_KINDS: dict[tuple[str, int], Kind] = {
    ("b", 1): Kind.BOOL,
    ("i", 1): Kind.INT8,
    ("i", 2): Kind.INT16,
    ("i", 4): Kind.INT32,
    ("i", 8): Kind.INT64,
    ("u", 1): Kind.UINT8,
    ("u", 2): Kind.UINT16,
    ("u", 4): Kind.UINT32,
    ("u", 8): Kind.UINT64,
    ("f", 4): Kind.FLOAT32,
    ("f", 8): Kind.FLOAT64,
}


@dataclass(frozen=True)
class TypeInfo:
    """Resolved view of a declared type.

    ``cls`` is the concrete class written into the target (``np.int8``,
    ``int``, a dataclass...). ``enum`` is set when values are wrapped in an
    :class:`~enum.Enum` whose members carry ``cls`` values. ``elem`` is the
    element type of sequences, the value type of maps and the referent of
    pointers; ``key`` is the key type of maps and ``items`` the positional
    types of fixed-length tuples. ``empty`` is False for interfaces that
    restrict what they hold (unions, protocols).
    """

    annotation: Any
    kind: Kind
    cls: Any = None
    elem: Any = Any
    key: Any = Any
    items: tuple[Any, ...] = ()
    enum: Any = None
    empty: bool = True


def strip_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *extras]`` into ``(T, extras)``."""
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        return args[0], tuple(args[1:])
    return annotation, ()


def type_info(annotation: Any) -> TypeInfo:
    try:
        return _cached_type_info(annotation)
    except TypeError:
        # Unhashable annotation metadata.
        return _build_type_info(annotation)


@lru_cache(maxsize=None)
def _cached_type_info(annotation: Any) -> TypeInfo:
    return _build_type_info(annotation)


def kind_of(value: Any) -> Kind:
    """Kind of a runtime value."""
    if value is None:
        return Kind.INVALID
    return type_info(type(value)).kind


def _build_type_info(annotation: Any) -> TypeInfo:
    base, _ = strip_annotated(annotation)
    if base is Any or base is object or isinstance(base, typing.TypeVar):
        return TypeInfo(annotation, Kind.INTERFACE)
    if base is None or base is type(None):
        return TypeInfo(annotation, Kind.INVALID)

    origin = get_origin(base)
    if origin is Union or origin is types.UnionType:
        args = get_args(base)
        present = tuple(a for a in args if a is not type(None))
        if len(present) < len(args):
            inner = present[0] if len(present) == 1 else Union[present]
            return TypeInfo(annotation, Kind.POINTER, elem=inner)
        return TypeInfo(annotation, Kind.INTERFACE, empty=False)

    if origin is not None:
        args = get_args(base)
        if origin is Ref:
            return TypeInfo(annotation, Kind.POINTER, cls=Ref, elem=args[0] if args else Any)
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return TypeInfo(annotation, Kind.SLICE, cls=tuple, elem=args[0])
            return TypeInfo(annotation, Kind.ARRAY, cls=tuple, items=args)
        if origin in (list, MutableSequence, Sequence):
            return TypeInfo(annotation, Kind.SLICE, cls=list, elem=args[0] if args else Any)
        if origin in (dict, Mapping, MutableMapping):
            key, value = args if len(args) == 2 else (Any, Any)
            return TypeInfo(annotation, Kind.MAP, cls=dict, key=key, elem=value)
        if origin in (typing.Literal, ClassVar):
            return TypeInfo(annotation, Kind.UNSUPPORTED)
        return dataclasses.replace(_build_type_info(origin), annotation=annotation)

    if not isinstance(base, type):
        return TypeInfo(annotation, Kind.UNSUPPORTED)
    return _class_info(annotation, base)


def _class_info(annotation: Any, cls: type) -> TypeInfo:
    if issubclass(cls, Enum):
        members = list(cls)
        if not members:
            return TypeInfo(annotation, Kind.UNSUPPORTED, cls=cls)
        inner = type_info(type(members[0].value))
        return TypeInfo(annotation, inner.kind, cls=inner.cls, enum=cls)
    if cls is bool:
        return TypeInfo(annotation, Kind.BOOL, cls=bool)
    if issubclass(cls, (np.number, np.bool_)):
        dtype = np.dtype(cls)
        kind = _NUMPY_KINDS.get((dtype.kind, dtype.itemsize), Kind.UNSUPPORTED)
        return TypeInfo(annotation, kind, cls=cls)
    if issubclass(cls, int):
        return TypeInfo(annotation, Kind.INT, cls=cls)
    if issubclass(cls, float):
        return TypeInfo(annotation, Kind.FLOAT64, cls=cls)
    if issubclass(cls, str):
        return TypeInfo(annotation, Kind.STRING, cls=cls)
    if issubclass(cls, memoryview):
        return TypeInfo(annotation, Kind.BYTES, cls=bytes)
    if issubclass(cls, (bytes, bytearray)):
        return TypeInfo(annotation, Kind.BYTES, cls=cls)
    if issubclass(cls, datetime):
        return TypeInfo(annotation, Kind.TIME, cls=cls)
    if issubclass(cls, Decimal):
        return TypeInfo(annotation, Kind.DECIMAL, cls=cls)
    if issubclass(cls, Ref):
        return TypeInfo(annotation, Kind.POINTER, cls=Ref)
    if issubclass(cls, np.ndarray):
        return TypeInfo(annotation, Kind.SLICE, cls=np.ndarray)
    if issubclass(cls, tuple):
        return TypeInfo(annotation, Kind.SLICE, cls=tuple)
    if issubclass(cls, list):
        return TypeInfo(annotation, Kind.SLICE, cls=list)
    if issubclass(cls, Mapping):
        return TypeInfo(annotation, Kind.MAP, cls=dict)
    if issubclass(cls, Sequence):
        return TypeInfo(annotation, Kind.SLICE, cls=list)
    if issubclass(cls, Message) or is_aggregate(cls):
        return TypeInfo(annotation, Kind.STRUCT, cls=cls)
    if getattr(cls, "_is_protocol", False) or inspect.isabstract(cls):
        return TypeInfo(annotation, Kind.INTERFACE, cls=cls, empty=False)
    return TypeInfo(annotation, Kind.UNSUPPORTED, cls=cls)


def is_aggregate(cls: Any) -> bool:
    """True for dataclasses, pydantic models and annotated plain classes."""
    if not isinstance(cls, type):
        return False
    if dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel):
        return True
    if cls.__module__ == "builtins" or issubclass(cls, Message):
        return False
    return any(inspect.get_annotations(klass) for klass in cls.__mro__[:-1])


def resolve_hints(obj: Any) -> dict[str, Any]:
    """Type hints of a class or function, with ``Annotated`` extras kept.

    Forward references that cannot be resolved degrade to ``Any``.
    """
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except (NameError, TypeError):
        pass

    if isinstance(obj, type):
        raw: dict[str, Any] = {}
        for klass in reversed(obj.__mro__[:-1]):
            raw.update(inspect.get_annotations(klass))
        namespace = vars(sys.modules.get(obj.__module__, typing))
    else:
        raw = dict(inspect.get_annotations(obj))
        namespace = getattr(obj, "__globals__", {})

    hints: dict[str, Any] = {}
    for name, hint in raw.items():
        try:
            hints[name] = _resolve_one(hint, dict(namespace))
        except (NameError, SyntaxError, TypeError):
            hints[name] = Any
    return hints


def _resolve_one(hint: Any, namespace: dict[str, Any]) -> Any:
    """Resolve a single annotation against ``namespace``."""
    holder = type("_Hint", (), {"__annotations__": {"hint": hint}})
    return typing.get_type_hints(holder, globalns=namespace, include_extras=True)["hint"]


def type_name(annotation: Any) -> str:
    if annotation is None:
        return "None"
    if isinstance(annotation, type):
        return annotation.__qualname__
    return repr(annotation).replace("typing.", "")
