"""Test aggregate cloning: embedding, accessors, maps and dynamic targets."""

from dataclasses import dataclass, field
from typing import Annotated, Any, Optional

import numpy as np
import pytest
from pydantic import BaseModel

from prototype import (
    CloneError,
    NumberOverflowError,
    Ref,
    StringParseError,
    UnsupportedValueError,
    clone,
    context,
    convert,
    name_comparer,
    setter_prefix,
    tag_key,
)
from prototype.slots import Slot
from prototype.tags import Embedded, Tag


@dataclass
class A:
    a: int = 0
    b: int = 0


@dataclass
class C:
    a: int = 0
    b: int = 0
    c: int = 0


@dataclass
class B:
    c_embed: Annotated[C, Embedded()] = field(default_factory=C)
    a: int = 0
    b: int = 0


@dataclass
class Parent:
    a_embed: Annotated[A, Embedded()] = field(default_factory=A)
    b_embed: Annotated[B, Embedded()] = field(default_factory=B)
    a: int = 0


@dataclass
class Account:
    _id: str = ""
    _name: str = ""
    age: int = 0
    address: str = ""

    def id(self) -> str:
        return "id:" + self._id

    def name(self, ctx) -> str:
        return "name:" + self._name


@dataclass
class Profile:
    id: str = ""
    name: str = ""
    _age: int = 0
    _address: str = ""

    def set_age(self, age: int) -> None:
        self._age = age * 2

    def set_address(self, ctx, address: str) -> None:
        self._address = ctx + address


@dataclass
class Point:
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class FrozenPoint:
    x: int = 0
    y: int = 0


@dataclass
class Point32:
    x: np.int32 = np.int32(0)
    y: np.int32 = np.int32(0)


class UserModel(BaseModel):
    name: str
    age: int = 0


@dataclass
class UserRecord:
    name: str = ""
    age: int = 0


@dataclass
class Shape:
    label: str = ""
    origin: Point = field(default_factory=Point)
    corners: list[Point] = field(default_factory=list)
    parent: Optional["Shape"] = None


@dataclass
class Ranked:
    first: Annotated[int, Tag("prototype", "1")] = 0
    second: Annotated[int, Tag("prototype", "2")] = 0


@dataclass
class Camel:
    userName: str = ""


@dataclass
class Snake:
    user_name: str = ""


@dataclass
class Base:
    code: int = 0


@dataclass
class Wrapper:
    _base: Annotated[Optional[Base], Embedded()] = None


@dataclass
class Secret:
    value: str = ""

    def clone_to(self, target: Slot) -> None:
        target.set("***")


@dataclass
class Envelope:
    secret: Secret = field(default_factory=Secret)


@dataclass
class Masked:
    secret: str = ""


class TestEmbedding:
    def test_same_type_roundtrip(self):
        source = Parent(
            a_embed=A(a=2, b=3),
            b_embed=B(c_embed=C(a=6, b=7, c=8), a=4, b=5),
            a=1,
        )
        target = convert(source, Parent)
        assert target == source
        assert target is not source
        assert target.b_embed is not source.b_embed

    def test_embedded_fields_promote_to_flat_target(self):
        @dataclass
        class Flat:
            a: int = 0
            c: int = 0

        source = Parent(b_embed=B(c_embed=C(c=8)), a=1)
        assert convert(source, Flat) == Flat(a=1, c=8)

    def test_private_embedded_hop_cannot_be_allocated(self):
        with pytest.raises(CloneError, match="private"):
            convert({"code": 5}, Wrapper)


class TestAccessors:
    def test_getter_setter_roundtrip(self):
        source = Account(_id="u1", _name="p", age=30, address="sh")
        target = convert(source, Profile, tag_key("prototype"), setter_prefix("set_"), context("china-"))
        assert target.id == "id:u1"
        assert target.name == "name:p"
        assert target._age == 60
        assert target._address == "china-sh"

    def test_getter_exceptions_propagate(self):
        @dataclass
        class Faulty:
            _token: str = ""

            def token(self) -> str:
                raise RuntimeError("vault sealed")

        @dataclass
        class Sink:
            token: str = ""

        with pytest.raises(RuntimeError, match="vault sealed"):
            convert(Faulty(), Sink)


class TestStructToStruct:
    def test_nested_and_recursive_types(self):
        source = Shape(
            label="square",
            origin=Point(1, 2),
            corners=[Point(0, 0), Point(1, 1)],
            parent=Shape(label="root"),
        )
        target = convert(source, Shape)
        assert target == source
        assert target.corners[0] is not source.corners[0]
        assert target.parent is not source.parent

    def test_pydantic_to_dataclass(self):
        record = convert(UserModel(name="ada", age=36), UserRecord)
        assert record == UserRecord(name="ada", age=36)

    def test_dataclass_to_pydantic(self):
        model = convert(UserRecord(name="ada", age=36), UserModel)
        assert isinstance(model, UserModel)
        assert model.name == "ada"
        assert model.age == 36

    def test_frozen_target(self):
        assert convert(Point(1, 2), FrozenPoint) == FrozenPoint(1, 2)

    def test_field_conversion_is_range_checked(self):
        with pytest.raises(NumberOverflowError) as info:
            convert(Point(x=2**40), Point32)
        assert info.value.full_path == ("x",)

    def test_existing_target_is_filled(self):
        ref = Ref(Point, Point(x=5, y=6))
        original = ref.value
        clone(ref, {"x": 1})
        assert ref.value is original
        assert original == Point(x=1, y=6)

    def test_default_comparer_folds_case(self):
        @dataclass
        class Upper:
            USERNAME: str = ""

        @dataclass
        class Lower:
            username: str = ""

        assert convert(Upper("ada"), Lower) == Lower("ada")

    def test_custom_comparer(self):
        def loose(a, b):
            return a.replace("_", "").casefold() == b.replace("_", "").casefold()

        assert convert(Camel("ada"), Snake, name_comparer(loose)) == Snake("ada")
        assert convert(Camel("ada"), Snake) == Snake("")

    def test_self_cycle(self):
        node = Shape(label="loop")
        node.parent = node
        with pytest.raises(UnsupportedValueError, match="cycle"):
            convert(node, Shape)


class TestStructToMaps:
    def test_dynamic(self):
        source = Shape(label="s", origin=Point(1, 2), corners=[Point(3, 4)])
        assert convert(source, Any) == {
            "label": "s",
            "origin": {"x": 1, "y": 2},
            "corners": [{"x": 3, "y": 4}],
            "parent": None,
        }

    def test_typed_map(self):
        assert convert(Point(1, 2), dict[str, str]) == {"x": "1", "y": "2"}

    def test_labels_decode_into_keys(self):
        assert convert(Ranked(10, 20), dict[int, int]) == {1: 10, 2: 20}

    def test_undecodable_label(self):
        with pytest.raises(StringParseError):
            convert(Point(1, 2), dict[int, int])


class TestCustomCloners:
    def test_clone_to_source(self):
        assert convert(Secret("hunter2"), str) == "***"

    def test_clone_to_field(self):
        assert convert(Envelope(Secret("hunter2")), Masked) == Masked("***")

    def test_clone_from_target(self):
        class Collector:
            def __init__(self):
                self.seen = None

            def clone_from(self, source):
                self.seen = source

        source = Point(1, 2)
        collector = convert(source, Collector)
        assert collector.seen is source
