"""Mapping and sequence cloners."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np

from prototype import wellknown
from prototype.aggregates import new_instance, zero_value
from prototype.context import CloneContext
from prototype.dispatch import clone_value, hook_cloner, indirect
from prototype.errors import CloneError
from prototype.fields import cached_struct_fields
from prototype.interfaces import TextMarshaler
from prototype.keys import stringify_key
from prototype.kinds import Kind, TypeInfo, is_aggregate
from prototype.primitives import bytes_cloner
from prototype.slots import AttrSlot, ItemSlot, Ref, Slot
from prototype.structs import write_field

# ---------------------------------------------------------------------------
# Mappings
# ---------------------------------------------------------------------------

Pairs = list[tuple[str, Any, Any]]


def mapping_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Mapping) -> None:
    pairs = sorted(
        ((stringify_key(path, k), k, v) for k, v in source.items()),
        key=lambda pair: pair[0],
    )
    with ctx.track(id(source), path, source):
        receiver, slot, info = indirect(target)
        if receiver is not None:
            receiver.clone_from(source)
            return

        kind = info.kind
        if kind is Kind.MAP:
            _map_to_map(ctx, path, slot, info, source, pairs)
            return
        if kind is Kind.INTERFACE and info.empty:
            current = slot.get()
            if current is not None and is_aggregate(type(current)):
                _map_to_struct(ctx, path, slot, type(current), source, pairs)
            else:
                slot.set(map_to_dynamic(ctx, path, pairs))
            return
        if kind is Kind.STRUCT:
            entry = wellknown.lookup(info.cls)
            if entry is not None and entry.accepts is not None:
                slot.set(entry.wrap(map_to_dynamic(ctx, path, pairs), ctx.options))
                return
            if is_aggregate(info.cls):
                _map_to_struct(ctx, path, slot, info.cls, source, pairs)
                return
        hook_cloner(ctx, path, slot, source)


def _reuse(ctx: CloneContext, slot: Slot, info: TypeInfo, source: Any) -> dict | None:
    if not ctx.options.deep_clone:
        shared = ctx.shared(source, info.annotation)
        if shared is not None:
            slot.set(shared)
            return None
    result = slot.get()
    if not isinstance(result, dict):
        result = {}
        slot.set(result)
    if not ctx.options.deep_clone:
        ctx.share(source, info.annotation, result)
    return result


def _map_to_map(
    ctx: CloneContext, path: list[str], slot: Slot, info: TypeInfo, source: Any, pairs: Pairs
) -> None:
    result = _reuse(ctx, slot, info, source)
    if result is None:
        return
    for text, key, value in pairs:
        child = [*path, text]
        try:
            key_cell = Ref(info.key)
            clone_value(ctx, child, key_cell, text if isinstance(key, TextMarshaler) else key)
            if key_cell.value is None:
                continue
            cell = Ref(info.elem, zero_value(info.elem))
            clone_value(ctx, child, cell, value)
            result[key_cell.value] = cell.value
        except CloneError as exc:
            ctx.collect(exc)


def _map_to_struct(
    ctx: CloneContext, path: list[str], slot: Slot, cls: type, source: Any, pairs: Pairs
) -> None:
    opts = ctx.options
    obj = slot.get()
    if not isinstance(obj, cls):
        obj = new_instance(cls)
        slot.set(obj)
    fields = cached_struct_fields(cls, opts.target_tag_key, opts.getter_prefix, opts.setter_prefix)
    for text, _, value in pairs:
        child = [*path, text]
        try:
            fd = fields.dominant(text, opts.name_comparer)
            if fd is not None:
                write_field(ctx, child, obj, fd, value)
                continue
            embedded = fields.self_field(text, opts.name_comparer)
            if embedded is not None and embedded.embedded:
                clone_value(ctx, child, AttrSlot(obj, embedded.name, embedded.annotation), value)
        except CloneError as exc:
            ctx.collect(exc)


def map_to_dynamic(ctx: CloneContext, path: list[str], pairs: Pairs) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for text, _, value in pairs:
        try:
            cell = Ref()
            clone_value(ctx, [*path, text], cell, value)
            result[text] = cell.value
        except CloneError as exc:
            ctx.collect(exc)
    return result


# ---------------------------------------------------------------------------
# Sequences
# ---------------------------------------------------------------------------

def sequence_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    if _is_byte_array(source) and _takes_bytes(target):
        bytes_cloner(ctx, path, target, source.tobytes())
        return

    items = list(source)
    with ctx.track((id(source), len(items)), path, source):
        receiver, slot, info = indirect(target)
        if receiver is not None:
            receiver.clone_from(source)
            return

        kind = info.kind
        if kind is Kind.SLICE:
            _seq_to_seq(ctx, path, slot, info, source, items)
        elif kind is Kind.ARRAY:
            _seq_to_fixed(ctx, path, slot, info, items)
        elif kind is Kind.BYTES:
            _seq_to_bytes(ctx, path, slot, info, items)
        elif kind is Kind.INTERFACE and info.empty:
            slot.set(seq_to_dynamic(ctx, path, items))
        elif kind is Kind.STRUCT and _accepts_list(info):
            entry = wellknown.lookup(info.cls)
            slot.set(entry.wrap(seq_to_dynamic(ctx, path, items), ctx.options))
        else:
            hook_cloner(ctx, path, slot, source)


def _is_byte_array(source: Any) -> bool:
    return isinstance(source, np.ndarray) and source.dtype == np.uint8 and source.ndim == 1


def _takes_bytes(target: Slot) -> bool:
    """Whether a byte array should be written into ``target`` as one bytes value."""
    receiver, _, info = indirect(target)
    if receiver is not None:
        return True
    kind = info.kind
    if kind in (Kind.STRING, Kind.BYTES) or (kind is Kind.INTERFACE and info.empty):
        return True
    return kind is Kind.STRUCT and wellknown.lookup(info.cls) is not None and not _accepts_list(info)


def _accepts_list(info: TypeInfo) -> bool:
    entry = wellknown.lookup(info.cls)
    return entry is not None and entry.accepts is not None and entry.accepts([])


def _fill(ctx: CloneContext, path: list[str], values: list[Any], types: list[Any], items: list[Any]) -> None:
    for i, (item, type_) in enumerate(zip(items, types)):
        try:
            clone_value(ctx, [*path, str(i)], ItemSlot(values, i, type_), item)
        except CloneError as exc:
            ctx.collect(exc)


def _seq_to_seq(
    ctx: CloneContext, path: list[str], slot: Slot, info: TypeInfo, source: Any, items: list[Any]
) -> None:
    if not ctx.options.deep_clone:
        shared = ctx.shared(source, info.annotation)
        if shared is not None:
            slot.set(shared)
            return

    values = [zero_value(info.elem) for _ in items]
    if info.cls is list:
        slot.set(values)
        if not ctx.options.deep_clone:
            ctx.share(source, info.annotation, values)
    _fill(ctx, path, values, [info.elem] * len(items), items)

    if info.cls is tuple:
        slot.set(tuple(values))
    elif info.cls is np.ndarray:
        # Untyped array targets keep the element dtype of an array source.
        dtype = source.dtype if isinstance(source, np.ndarray) and info.elem is Any else None
        slot.set(np.asarray(values, dtype=dtype))


def _seq_to_fixed(
    ctx: CloneContext, path: list[str], slot: Slot, info: TypeInfo, items: list[Any]
) -> None:
    values = [zero_value(type_) for type_ in info.items]
    _fill(ctx, path, values, list(info.items), items)
    slot.set(tuple(values))


def _seq_to_bytes(
    ctx: CloneContext, path: list[str], slot: Slot, info: TypeInfo, items: list[Any]
) -> None:
    values = [np.uint8(0)] * len(items)
    _fill(ctx, path, values, [np.uint8] * len(items), items)
    slot.set(info.cls(bytes(values)))


def seq_to_dynamic(ctx: CloneContext, path: list[str], items: list[Any]) -> list[Any]:
    values: list[Any] = [None] * len(items)
    _fill(ctx, path, values, [Any] * len(items), items)
    return values
