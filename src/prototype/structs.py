"""Aggregate cloner.

Aggregate to aggregate runs two passes over the source index: dominants
are matched to target dominants by label (exact, then through the name
comparer), and recessives are matched by full attribute path so that
identically laid-out embedding trees copy every promoted field.
Aggregates also clone into dynamic targets (``dict[str, Any]``) and into
typed maps, where each label is decoded into the map's key type.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from prototype import wellknown
from prototype.aggregates import declared_fields, new_instance, zero_value
from prototype.context import CloneContext
from prototype.dispatch import ClonerFunc, clone_value, hook_cloner, indirect, type_cloner
from prototype.errors import CloneError, ConvertError
from prototype.fields import MISSING, FieldDescriptor, cached_struct_fields, field_owner, read_field
from prototype.keys import decode_key
from prototype.kinds import Kind, TypeInfo, is_aggregate, type_info
from prototype.slots import AttrSlot, Ref, Slot


def struct_cloner(tp: type) -> ClonerFunc:
    """Build the cloner for aggregate type ``tp``."""
    entry = wellknown.lookup(tp)
    if entry is not None:
        return _wellknown_cloner(entry)

    # Cloners of directly declared aggregate fields, resolved up front.
    field_cloners: dict[str, tuple[type, ClonerFunc]] = {}
    for decl in declared_fields(tp):
        info = type_info(decl.annotation)
        if info.kind is Kind.POINTER and info.cls is None:
            info = type_info(info.elem)
        if info.kind is Kind.STRUCT and is_aggregate(info.cls):
            field_cloners[decl.name] = (info.cls, type_cloner(info.cls))

    def clone_struct(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
        with ctx.track(id(source), path, source):
            _clone_struct(ctx, path, target, source, field_cloners)

    return clone_struct


def _wellknown_cloner(entry: wellknown.WellKnown) -> ClonerFunc:
    def clone_wellknown(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
        try:
            value = entry.unwrap(source)
        except KeyError as exc:
            raise ConvertError(path, target.type, source, f"unknown packed type {exc}") from exc
        if value is not None:
            clone_value(ctx, path, target, value)

    return clone_wellknown


def _clone_struct(
    ctx: CloneContext,
    path: list[str],
    target: Slot,
    source: Any,
    field_cloners: dict[str, tuple[type, ClonerFunc]],
) -> None:
    receiver, slot, info = indirect(target)
    if receiver is not None:
        receiver.clone_from(source)
        return

    kind = info.kind
    if kind is Kind.INTERFACE and info.empty:
        current = slot.get()
        if current is not None and is_aggregate(type(current)):
            _struct_to_struct(ctx, path, slot, type(current), source, field_cloners)
        else:
            slot.set(struct_to_dynamic(ctx, path, source))
        return
    if kind is Kind.STRUCT:
        entry = wellknown.lookup(info.cls)
        if entry is not None and entry.accepts is not None:
            slot.set(entry.wrap(struct_to_dynamic(ctx, path, source), ctx.options))
            return
        if is_aggregate(info.cls):
            _struct_to_struct(ctx, path, slot, info.cls, source, field_cloners)
            return
    elif kind is Kind.MAP:
        _struct_to_map(ctx, path, slot, info, source)
        return
    hook_cloner(ctx, path, slot, source)


def _field_cloner(
    fd: FieldDescriptor, value: Any, field_cloners: dict[str, tuple[type, ClonerFunc]]
) -> ClonerFunc | None:
    if fd.depth != 1:
        return None
    known = field_cloners.get(fd.name)
    if known is not None and type(value) is known[0]:
        return known[1]
    return None


def write_field(
    ctx: CloneContext,
    path: list[str],
    obj: Any,
    fd: FieldDescriptor,
    value: Any,
    cloner: ClonerFunc | None = None,
) -> None:
    """Clone ``value`` into field ``fd`` of ``obj``, through its setter if any."""
    owner = field_owner(obj, fd, path)
    setter = fd.setter
    if setter is not None:
        cell = Ref(setter.value_type, zero_value(setter.value_type))
        clone_value(ctx, path, cell, value, cloner)
        method = getattr(owner, setter.name)
        if setter.takes_context:
            method(ctx.options.context, cell.value)
        else:
            method(cell.value)
        return
    if not fd.exported:
        return
    clone_value(ctx, path, AttrSlot(owner, fd.name, fd.annotation), value, cloner)


def _allocate(ctx: CloneContext, slot: Slot, cls: type, source: Any) -> Any:
    """The instance to fill, or None when an earlier allocation is shared."""
    if not ctx.options.deep_clone:
        shared = ctx.shared(source, cls)
        if shared is not None:
            slot.set(shared)
            return None
    obj = slot.get()
    if not isinstance(obj, cls):
        obj = new_instance(cls)
        slot.set(obj)
    if not ctx.options.deep_clone:
        ctx.share(source, cls, obj)
    return obj


def _struct_to_struct(
    ctx: CloneContext,
    path: list[str],
    slot: Slot,
    cls: type,
    source: Any,
    field_cloners: dict[str, tuple[type, ClonerFunc]],
) -> None:
    obj = _allocate(ctx, slot, cls, source)
    if obj is None:
        return

    opts = ctx.options
    src_fields = cached_struct_fields(
        type(source), opts.source_tag_key, opts.getter_prefix, opts.setter_prefix
    )
    tgt_fields = cached_struct_fields(
        cls, opts.target_tag_key, opts.getter_prefix, opts.setter_prefix
    )

    for label, sfd in src_fields.dominants.items():
        try:
            tfd = tgt_fields.dominant(label, opts.name_comparer)
            if tfd is None:
                continue
            value = read_field(source, sfd, opts.context)
            if value is MISSING:
                continue
            write_field(
                ctx, [*path, label], obj, tfd, value, _field_cloner(sfd, value, field_cloners)
            )
        except CloneError as exc:
            ctx.collect(exc)

    for label, src_recessives in src_fields.recessives.items():
        tgt_recessives = tgt_fields.recessive(label, opts.name_comparer)
        if not tgt_recessives:
            continue
        for full_name, sfd in src_recessives.items():
            tfd = tgt_recessives.get(full_name)
            if tfd is None:
                continue
            try:
                value = read_field(source, sfd, opts.context)
                if value is MISSING:
                    continue
                write_field(ctx, [*path, *sfd.names], obj, tfd, value)
            except CloneError as exc:
                ctx.collect(exc)


def struct_to_dynamic(ctx: CloneContext, path: list[str], source: Any) -> dict[str, Any]:
    """``label -> widened value`` for every readable dominant field."""
    opts = ctx.options
    fields = cached_struct_fields(
        type(source), opts.source_tag_key, opts.getter_prefix, opts.setter_prefix
    )
    result: dict[str, Any] = {}
    for label, fd in fields.dominants.items():
        try:
            value = read_field(source, fd, opts.context)
            if value is MISSING:
                continue
            cell = Ref()
            clone_value(ctx, [*path, label], cell, value)
            result[label] = cell.value
        except CloneError as exc:
            ctx.collect(exc)
    return result


def _struct_to_map(
    ctx: CloneContext, path: Sequence[str], slot: Slot, info: TypeInfo, source: Any
) -> None:
    opts = ctx.options
    fields = cached_struct_fields(
        type(source), opts.source_tag_key, opts.getter_prefix, opts.setter_prefix
    )
    result = slot.get()
    if not isinstance(result, dict):
        result = {}
        slot.set(result)
    for label, fd in fields.dominants.items():
        child = [*path, label]
        try:
            value = read_field(source, fd, opts.context)
            if value is MISSING:
                continue
            key = decode_key(ctx, child, label, info.key)
            cell = Ref(info.elem, zero_value(info.elem))
            clone_value(ctx, child, cell, value)
            result[key] = cell.value
        except CloneError as exc:
            ctx.collect(exc)
