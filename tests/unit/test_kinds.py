"""Test type classification of annotations and runtime values."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Annotated, Any, ClassVar, Optional, Protocol, Union

import numpy as np
from google.protobuf import wrappers_pb2
from pydantic import BaseModel

from prototype.kinds import Kind, is_aggregate, kind_of, resolve_hints, type_info, type_name
from prototype.slots import Ref
from prototype.tags import Tag


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


@dataclass
class Point:
    x: int = 0
    y: int = 0


class Account(BaseModel):
    owner: str = ""


class Plain:
    name: str
    count: int


class Opaque:
    pass


class Greeter(Protocol):
    def greet(self) -> str: ...


class Broken:
    ref: "DoesNotExist"  # noqa: F821
    ok: int
    limit: "ClassVar[int]"
    nested: "Optional[Point]"
    tagged: "Annotated[int, Tag('prototype', 'x')]"


class TestScalarKinds:
    def test_builtin_scalars(self):
        assert type_info(bool).kind is Kind.BOOL
        assert type_info(int).kind is Kind.INT
        assert type_info(float).kind is Kind.FLOAT64
        assert type_info(str).kind is Kind.STRING
        assert type_info(bytes).kind is Kind.BYTES
        assert type_info(bytearray).kind is Kind.BYTES
        assert type_info(datetime).kind is Kind.TIME
        assert type_info(Decimal).kind is Kind.DECIMAL

    def test_numpy_scalars(self):
        assert type_info(np.bool_).kind is Kind.BOOL
        assert type_info(np.int8).kind is Kind.INT8
        assert type_info(np.int16).kind is Kind.INT16
        assert type_info(np.int32).kind is Kind.INT32
        assert type_info(np.int64).kind is Kind.INT64
        assert type_info(np.uint8).kind is Kind.UINT8
        assert type_info(np.uint64).kind is Kind.UINT64
        assert type_info(np.float32).kind is Kind.FLOAT32
        assert type_info(np.float64).kind is Kind.FLOAT64

    def test_numpy_class_is_kept(self):
        assert type_info(np.uint16).cls is np.uint16

    def test_enums_take_their_value_kind(self):
        info = type_info(Color)
        assert info.kind is Kind.STRING
        assert info.enum is Color
        assert info.cls is str
        assert type_info(Level).kind is Kind.INT

    def test_annotated_is_stripped(self):
        assert type_info(Annotated[int, Tag("prototype", "n")]).kind is Kind.INT


class TestCompositeKinds:
    def test_optional_is_pointer(self):
        for annotation in (Optional[int], int | None):
            info = type_info(annotation)
            assert info.kind is Kind.POINTER
            assert info.cls is None
            assert info.elem is int

    def test_ref_is_pointer(self):
        info = type_info(Ref[int])
        assert info.kind is Kind.POINTER
        assert info.cls is Ref
        assert info.elem is int

    def test_union_is_restricted_interface(self):
        info = type_info(Union[int, str])
        assert info.kind is Kind.INTERFACE
        assert info.empty is False

    def test_any_and_object_are_dynamic(self):
        assert type_info(Any).kind is Kind.INTERFACE
        assert type_info(Any).empty is True
        assert type_info(object).kind is Kind.INTERFACE

    def test_sequences(self):
        info = type_info(list[int])
        assert info.kind is Kind.SLICE
        assert info.elem is int
        info = type_info(tuple[str, ...])
        assert info.kind is Kind.SLICE
        assert info.cls is tuple

    def test_fixed_tuple_is_array(self):
        info = type_info(tuple[int, str])
        assert info.kind is Kind.ARRAY
        assert info.items == (int, str)

    def test_mappings(self):
        info = type_info(dict[str, int])
        assert info.kind is Kind.MAP
        assert info.key is str
        assert info.elem is int

    def test_aggregates(self):
        assert type_info(Point).kind is Kind.STRUCT
        assert type_info(Account).kind is Kind.STRUCT
        assert type_info(Plain).kind is Kind.STRUCT
        assert type_info(wrappers_pb2.Int64Value).kind is Kind.STRUCT

    def test_protocol_is_restricted_interface(self):
        info = type_info(Greeter)
        assert info.kind is Kind.INTERFACE
        assert info.empty is False

    def test_unannotated_class_is_unsupported(self):
        assert type_info(Opaque).kind is Kind.UNSUPPORTED


class TestKindOf:
    def test_runtime_values(self):
        assert kind_of(None) is Kind.INVALID
        assert kind_of(True) is Kind.BOOL
        assert kind_of(1) is Kind.INT
        assert kind_of(np.uint8(1)) is Kind.UINT8
        assert kind_of([1]) is Kind.SLICE
        assert kind_of((1, 2)) is Kind.SLICE
        assert kind_of({}) is Kind.MAP
        assert kind_of(Point()) is Kind.STRUCT
        assert kind_of(np.array([1, 2])) is Kind.SLICE


class TestIntrospection:
    def test_is_aggregate(self):
        assert is_aggregate(Point)
        assert is_aggregate(Account)
        assert is_aggregate(Plain)
        assert not is_aggregate(Opaque)
        assert not is_aggregate(int)
        assert not is_aggregate(wrappers_pb2.Int64Value)

    def test_unresolvable_forward_ref_degrades_to_any(self):
        hints = resolve_hints(Broken)
        assert hints["ref"] is Any
        assert hints["ok"] is int

    def test_sibling_forward_refs_still_resolve(self):
        hints = resolve_hints(Broken)
        assert hints["limit"] == ClassVar[int]
        assert hints["nested"] == Optional[Point]
        assert hints["tagged"] == Annotated[int, Tag("prototype", "x")]

    def test_type_name(self):
        assert type_name(int) == "int"
        assert type_name(None) == "None"
        assert type_name(np.uint8) == "uint8"
