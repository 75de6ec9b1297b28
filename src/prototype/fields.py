"""Structural field index.

For an aggregate type this module computes, once per (type, tag key,
getter prefix, setter prefix), every field reachable through embedding,
the label each one matches under, and which field wins when several
share a label:

* a shallower field beats a deeper one;
* at equal depth a tagged field beats an untagged one;
* two fields at the same depth with the same tagged-ness cancel out and
  neither is dominant.

Fields that lose (or cancel) stay reachable as *recessives*, keyed by
their full attribute path, so that aggregates with identical layouts
still copy every value.

Private attributes (leading underscore) take part only through accessor
methods: ``<getter_prefix><name>()`` to read and
``<setter_prefix><name>(value)`` to write, each optionally taking the
call's context object as first argument.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from itertools import groupby
from typing import Any

from google.protobuf.message import Message
from pydantic import BaseModel

from prototype.aggregates import declared_fields, new_instance
from prototype.errors import CloneError
from prototype.kinds import Kind, is_aggregate, resolve_hints, type_info, type_name
from prototype.slots import AttrSlot, Ref
from prototype.tags import SKIP, is_valid_label, parse_tag

logger = logging.getLogger(__name__)

# Returned by ``read_field`` when the field cannot be reached.
MISSING = object()

_FRAMEWORK_BASES = (object, BaseModel, Message)


@dataclass(frozen=True)
class Accessor:
    """A discovered getter or setter method."""

    name: str
    takes_context: bool
    value_type: Any = Any


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    label: str
    tagged: bool
    index: tuple[int, ...]
    names: tuple[str, ...]
    annotation: Any
    owner: type
    embeds: tuple[type, ...] = ()
    options: tuple[str, ...] = ()
    exported: bool = True
    ignored: bool = False
    embedded: bool = False
    getter: Accessor | None = None
    setter: Accessor | None = None

    @property
    def depth(self) -> int:
        return len(self.index)

    @property
    def full_name(self) -> str:
        return ".".join(self.names)


@dataclass
class StructFields:
    fields: tuple[FieldDescriptor, ...]
    dominants: dict[str, FieldDescriptor] = field(default_factory=dict)
    recessives: dict[str, dict[str, FieldDescriptor]] = field(default_factory=dict)
    self_fields: dict[str, FieldDescriptor] = field(default_factory=dict)

    def dominant(
        self, label: str, comparer: Callable[[str, str], bool]
    ) -> FieldDescriptor | None:
        fd = self.dominants.get(label)
        if fd is not None:
            return fd
        for key, fd in self.dominants.items():
            if comparer(key, label):
                return fd
        return None

    def recessive(
        self, label: str, comparer: Callable[[str, str], bool]
    ) -> dict[str, FieldDescriptor]:
        found = self.recessives.get(label)
        if found is not None:
            return found
        for key, found in self.recessives.items():
            if comparer(key, label):
                return found
        return {}

    def self_field(
        self, label: str, comparer: Callable[[str, str], bool]
    ) -> FieldDescriptor | None:
        fd = self.self_fields.get(label)
        if fd is not None:
            return fd
        for key, fd in self.self_fields.items():
            if comparer(key, label):
                return fd
        return None


# ---------------------------------------------------------------------------
# Accessor discovery
# ---------------------------------------------------------------------------

def _methods(cls: type) -> dict[str, Callable[..., Any]]:
    out: dict[str, Callable[..., Any]] = {}
    for klass in cls.__mro__:
        if klass in _FRAMEWORK_BASES:
            continue
        for name, attr in vars(klass).items():
            if name.startswith("_") or name in out:
                continue
            if inspect.isfunction(attr):
                out[name] = attr
    return out


def _required_params(func: Callable[..., Any]) -> list[inspect.Parameter]:
    params = list(inspect.signature(func).parameters.values())[1:]
    return [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]


def _returns_value(func: Callable[..., Any]) -> bool:
    returns = inspect.signature(func).return_annotation
    return returns not in (inspect.Signature.empty, None, "None")


def _as_getter(name: str, func: Callable[..., Any], shared: bool) -> Accessor | None:
    params = _required_params(func)
    if not params:
        return Accessor(name, takes_context=False)
    if len(params) == 1 and (not shared or _returns_value(func)):
        return Accessor(name, takes_context=True)
    return None


def _as_setter(name: str, func: Callable[..., Any], shared: bool) -> Accessor | None:
    params = _required_params(func)
    hints = resolve_hints(func)
    if len(params) == 1 and (not shared or not _returns_value(func)):
        return Accessor(name, False, hints.get(params[0].name, Any))
    if len(params) == 2:
        return Accessor(name, True, hints.get(params[1].name, Any))
    return None


def _accessors(
    methods: dict[str, Callable[..., Any]],
    base: str,
    getter_prefix: str,
    setter_prefix: str,
) -> tuple[Accessor | None, Accessor | None]:
    getter_name = (getter_prefix + base).casefold()
    setter_name = (setter_prefix + base).casefold()
    shared = getter_name == setter_name
    getter = setter = None
    for name, func in methods.items():
        folded = name.casefold()
        if getter is None and folded == getter_name:
            getter = _as_getter(name, func, shared)
        if setter is None and folded == setter_name:
            setter = _as_setter(name, func, shared)
    return getter, setter


# ---------------------------------------------------------------------------
# Index construction
# ---------------------------------------------------------------------------

@dataclass
class _Pending:
    cls: type
    index: tuple[int, ...] = ()
    names: tuple[str, ...] = ()
    embeds: tuple[type, ...] = ()


def _embedded_class(annotation: Any) -> type | None:
    info = type_info(annotation)
    if info.kind is Kind.POINTER and info.cls is None:
        info = type_info(info.elem)
    if info.kind is Kind.STRUCT and is_aggregate(info.cls):
        return info.cls
    return None


def _dominant(group: list[FieldDescriptor]) -> FieldDescriptor | None:
    # Sorted by depth then tagged-first: only the first two need checking.
    if len(group) > 1 and group[0].depth == group[1].depth and group[0].tagged == group[1].tagged:
        return None
    return group[0]


def type_fields(
    cls: type, tag_key: str, getter_prefix: str = "", setter_prefix: str = ""
) -> StructFields:
    """Breadth-first walk of ``cls`` and its embedded aggregates."""
    current: list[_Pending] = []
    next_level = [_Pending(cls)]
    count: Counter[type] = Counter()
    next_count: Counter[type] = Counter()
    visited: set[type] = set()
    found: list[FieldDescriptor] = []
    self_fields: dict[str, FieldDescriptor] = {}

    while next_level:
        current, next_level = next_level, []
        count, next_count = next_count, Counter()

        for pending in current:
            if pending.cls in visited:
                continue
            visited.add(pending.cls)
            methods = _methods(pending.cls)

            for i, decl in enumerate(declared_fields(pending.cls)):
                exported = not decl.name.startswith("_")
                index = pending.index + (i,)
                names = pending.names + (decl.name,)
                base = decl.name.lstrip("_") or decl.name
                tag = decl.tags.get(tag_key, "")

                if tag == SKIP:
                    found.append(FieldDescriptor(
                        decl.name, base, False, index, names, decl.annotation,
                        pending.cls, pending.embeds, exported=exported, ignored=True,
                    ))
                    continue

                label, options = parse_tag(tag)
                if not is_valid_label(label):
                    label = ""

                inner = _embedded_class(decl.annotation) if decl.embedded else None
                if label or inner is None:
                    getter, setter = _accessors(methods, base, getter_prefix, setter_prefix)
                    if not exported and getter is None and setter is None:
                        continue
                    desc = FieldDescriptor(
                        decl.name, label or base, bool(label), index, names,
                        decl.annotation, pending.cls, pending.embeds, options,
                        exported=exported, getter=getter, setter=setter,
                    )
                    found.append(desc)
                    if not pending.index:
                        self_fields.setdefault(desc.label, desc)
                    if count[pending.cls] > 1:
                        # A second copy makes the duplicate annihilate itself.
                        found.append(desc)
                    continue

                if not pending.index:
                    self_fields.setdefault(base, FieldDescriptor(
                        decl.name, base, False, index, names, decl.annotation,
                        pending.cls, options=options, exported=exported, embedded=True,
                    ))
                next_count[inner] += 1
                if next_count[inner] == 1:
                    next_level.append(_Pending(inner, index, names, pending.embeds + (inner,)))

    visible = sorted(
        (f for f in found if not f.ignored),
        key=lambda f: (f.label, f.depth, not f.tagged, f.index),
    )
    dominants: list[FieldDescriptor] = []
    recessives: dict[str, dict[str, FieldDescriptor]] = {}
    for label, grouped in groupby(visible, key=lambda f: f.label):
        group = list(grouped)
        dom = _dominant(group)
        rest = group
        if dom is not None:
            dominants.append(dom)
            rest = group[1:]
        if rest:
            recessives[label] = {f.full_name: f for f in rest}

    dominants.sort(key=lambda f: f.index)
    unique = {id(f): f for f in found}.values()
    result = StructFields(
        fields=tuple(sorted(unique, key=lambda f: f.index)),
        dominants={f.label: f for f in dominants},
        recessives=recessives,
        self_fields=self_fields,
    )
    logger.debug(
        "Indexed %s: %d fields, %d dominant (tag=%r)",
        type_name(cls), len(result.fields), len(result.dominants), tag_key,
    )
    return result


_field_cache: dict[tuple[type, str, str, str], StructFields] = {}


def cached_struct_fields(
    cls: type, tag_key: str, getter_prefix: str = "", setter_prefix: str = ""
) -> StructFields:
    """``type_fields`` memoised per (type, tag key, prefixes)."""
    key = (cls, tag_key, getter_prefix, setter_prefix)
    fields = _field_cache.get(key)
    if fields is None:
        fields = _field_cache.setdefault(key, type_fields(*key))
    return fields


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------

def read_field(root: Any, fd: FieldDescriptor, context: Any = None) -> Any:
    """Value of ``fd`` in ``root``, or ``MISSING`` if a hop on the way is unset."""
    owner = root
    for name in fd.names[:-1]:
        owner = getattr(owner, name, None)
        if isinstance(owner, Ref):
            owner = owner.value
        if owner is None:
            return MISSING
    if fd.getter is not None:
        method = getattr(owner, fd.getter.name)
        return method(context) if fd.getter.takes_context else method()
    if not fd.exported:
        return MISSING
    return getattr(owner, fd.name, MISSING)


def field_owner(root: Any, fd: FieldDescriptor, path: Sequence[str]) -> Any:
    """The aggregate holding ``fd``, allocating unset embedded hops."""
    owner = root
    for name, cls in zip(fd.names[:-1], fd.embeds):
        child = getattr(owner, name, None)
        if child is None:
            if name.startswith("_"):
                raise CloneError(
                    f"cannot set embedded reference to private {type_name(cls)}",
                    path, cls,
                )
            child = new_instance(cls)
            AttrSlot(owner, name, cls).set(child)
        owner = child
    return owner
