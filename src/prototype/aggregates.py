"""Aggregate introspection and allocation.

Aggregates are dataclasses, pydantic models and plain classes with
annotated attributes. This module lists their declared fields in
declaration order and builds zero-valued instances of them.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, ClassVar, get_origin

from google.protobuf.message import Message
from pydantic import BaseModel

from prototype.kinds import (
    FLOAT_KINDS,
    INT_KINDS,
    UINT_KINDS,
    ZERO_TIME,
    Kind,
    resolve_hints,
    strip_annotated,
    type_info,
)
from prototype.tags import EMBEDDED_KEY, Embedded, Tag


@dataclass(frozen=True)
class DeclaredField:
    """One attribute declared directly on an aggregate."""

    name: str
    annotation: Any
    tags: Mapping[str, str] = field(default_factory=dict)
    embedded: bool = False


def _collect(extras: tuple[Any, ...] | list[Any], tags: dict[str, str]) -> bool:
    embedded = False
    for extra in extras:
        if isinstance(extra, Tag):
            tags[extra.key] = extra.value
        elif isinstance(extra, Embedded):
            embedded = True
    return embedded


def _collect_mapping(metadata: Mapping[str, Any], tags: dict[str, str]) -> bool:
    embedded = False
    for key, value in metadata.items():
        if key == EMBEDDED_KEY:
            embedded = bool(value)
        elif isinstance(value, str):
            tags[key] = value
    return embedded


@lru_cache(maxsize=None)
def declared_fields(cls: type) -> tuple[DeclaredField, ...]:
    """Fields declared on ``cls`` (including inherited ones), in order."""
    hints = resolve_hints(cls)
    out: list[DeclaredField] = []

    if issubclass(cls, BaseModel):
        for name, info in cls.model_fields.items():
            tags: dict[str, str] = {}
            embedded = _collect(info.metadata, tags)
            if isinstance(info.json_schema_extra, Mapping):
                embedded = _collect_mapping(info.json_schema_extra, tags) or embedded
            out.append(DeclaredField(name, info.annotation, tags, embedded))
        for name in cls.__private_attributes__:
            annotation, extras = strip_annotated(hints.get(name, Any))
            tags = {}
            embedded = _collect(extras, tags)
            out.append(DeclaredField(name, annotation, tags, embedded))
        return tuple(out)

    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            annotation, extras = strip_annotated(hints.get(f.name, Any))
            tags = {}
            embedded = _collect(extras, tags)
            embedded = _collect_mapping(f.metadata, tags) or embedded
            out.append(DeclaredField(f.name, annotation, tags, embedded))
        return tuple(out)

    for name, hint in hints.items():
        if get_origin(hint) is ClassVar or hint is ClassVar:
            continue
        annotation, extras = strip_annotated(hint)
        tags = {}
        embedded = _collect(extras, tags)
        out.append(DeclaredField(name, annotation, tags, embedded))
    return tuple(out)


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def new_instance(cls: type) -> Any:
    """Build an instance of ``cls`` with every required field at its zero value."""
    if issubclass(cls, Message):
        return cls()

    if issubclass(cls, BaseModel):
        zeros = {
            name: zero_value(info.annotation)
            for name, info in cls.model_fields.items()
            if info.is_required()
        }
        return cls.model_construct(**zeros)

    if dataclasses.is_dataclass(cls):
        hints = resolve_hints(cls)
        kwargs = {
            f.name: zero_value(hints.get(f.name, Any))
            for f in dataclasses.fields(cls)
            if f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        }
        return cls(**kwargs)

    try:
        obj = cls()
    except TypeError:
        obj = cls.__new__(cls)
    for decl in declared_fields(cls):
        if not hasattr(obj, decl.name):
            setattr(obj, decl.name, zero_value(decl.annotation))
    return obj


def zero_value(annotation: Any) -> Any:
    """The value a freshly declared location of this type holds."""
    info = type_info(annotation)
    kind = info.kind
    if kind is Kind.BOOL:
        zero: Any = False
    elif kind in INT_KINDS or kind in UINT_KINDS:
        zero = 0
    elif kind in FLOAT_KINDS:
        zero = 0.0
    elif kind is Kind.STRING:
        zero = ""
    elif kind is Kind.BYTES:
        return info.cls()
    elif kind is Kind.TIME:
        return ZERO_TIME
    elif kind is Kind.DECIMAL:
        return Decimal(0)
    elif kind is Kind.SLICE:
        return () if info.cls is tuple else []
    elif kind is Kind.ARRAY:
        return tuple(zero_value(item) for item in info.items)
    elif kind is Kind.MAP:
        return {}
    elif kind is Kind.STRUCT:
        return new_instance(info.cls)
    else:
        return None

    if info.enum is not None:
        try:
            return info.enum(zero)
        except ValueError:
            return None
    return info.cls(zero) if info.cls is not None else zero
