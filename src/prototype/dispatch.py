"""Type dispatch.

Each source runtime type maps to one cloner function, built once and kept
in a process-wide cache. Building the cloner of an aggregate resolves the
cloners of its field types, so a self-referential type would ask for its
own cloner while it is still being built: a placeholder that waits for
the finished cloner is published first and breaks the recursion.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from prototype.aggregates import new_instance
from prototype.context import CloneContext
from prototype.errors import UnsupportedTypeError
from prototype.hooks import find_hook
from prototype.interfaces import ClonerFrom
from prototype.kinds import FLOAT_KINDS, INT_KINDS, UINT_KINDS, Kind, TypeInfo, type_info, type_name
from prototype.slots import Ref, Slot

logger = logging.getLogger(__name__)

ClonerFunc = Callable[[CloneContext, list[str], Slot, Any], None]

_cloners: dict[type, ClonerFunc] = {}
_cloners_lock = threading.Lock()


def clone_value(
    ctx: CloneContext,
    path: list[str],
    target: Slot,
    source: Any,
    cloner: ClonerFunc | None = None,
) -> None:
    """Clone one node through the cloner of the source's type."""
    if source is None:
        return
    if cloner is None:
        cloner = type_cloner(type(source))
    cloner(ctx, path, target, source)


def type_cloner(tp: type) -> ClonerFunc:
    cloner = _cloners.get(tp)
    if cloner is not None:
        return cloner

    ready = threading.Event()
    built: list[ClonerFunc] = []

    def placeholder(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
        ready.wait()
        built[0](ctx, path, target, source)

    with _cloners_lock:
        cloner = _cloners.get(tp)
        if cloner is not None:
            return cloner
        _cloners[tp] = placeholder

    try:
        cloner = _new_type_cloner(tp)
    except BaseException:
        with _cloners_lock:
            del _cloners[tp]
        built.append(hook_cloner)
        ready.set()
        raise

    built.append(cloner)
    ready.set()
    with _cloners_lock:
        _cloners[tp] = cloner
    logger.debug("Built cloner for %s", type_name(tp))
    return cloner


def _new_type_cloner(tp: type) -> ClonerFunc:
    from prototype import containers, primitives, structs

    if callable(getattr(tp, "clone_to", None)):
        return clone_to_cloner

    kind = type_info(tp).kind
    if kind is Kind.BOOL:
        return primitives.bool_cloner
    if kind in INT_KINDS:
        return primitives.int_cloner
    if kind in UINT_KINDS:
        return primitives.uint_cloner
    if kind in FLOAT_KINDS:
        return primitives.float_cloner
    if kind is Kind.STRING:
        return primitives.string_cloner
    if kind is Kind.BYTES:
        return primitives.bytes_cloner
    if kind is Kind.TIME:
        return primitives.time_cloner
    if kind is Kind.DECIMAL:
        return primitives.decimal_cloner
    if kind is Kind.SLICE:
        return containers.sequence_cloner
    if kind is Kind.MAP:
        return containers.mapping_cloner
    if kind is Kind.STRUCT:
        return structs.struct_cloner(tp)
    if kind is Kind.POINTER:
        return pointer_cloner
    return hook_cloner


# ---------------------------------------------------------------------------
# Generic cloners
# ---------------------------------------------------------------------------

def clone_to_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Any) -> None:
    source.clone_to(target)


def pointer_cloner(ctx: CloneContext, path: list[str], target: Slot, source: Ref) -> None:
    if source.value is None:
        return
    with ctx.track(id(source), path, source):
        clone_value(ctx, path, target, source.value)


def hook_cloner(ctx: CloneContext, path: Sequence[str], target: Slot, source: Any) -> None:
    """Last resort: a registered hook, else ``UnsupportedTypeError``."""
    hook = find_hook(ctx.options, source, target)
    if hook is None:
        raise UnsupportedTypeError(path, type(source), target.type)
    hook(list(path), target, source)


# ---------------------------------------------------------------------------
# Target indirection
# ---------------------------------------------------------------------------

def indirect(slot: Slot) -> tuple[Any, Slot, TypeInfo]:
    """Walk through reference cells down to the location to write.

    Missing ``Ref`` cells are allocated; ``Optional`` locations are viewed
    through their inner type. Returns ``(receiver, slot, info)`` where
    ``receiver`` is a ``clone_from`` implementer that takes over the write,
    if one was found on the way.
    """
    info = type_info(slot.type)
    while True:
        current = slot.get()
        if isinstance(current, ClonerFrom) and not isinstance(current, type):
            return current, slot, info
        if info.kind is Kind.POINTER:
            if info.cls is Ref:
                if not isinstance(current, Ref):
                    current = Ref(info.elem)
                    slot.set(current)
                slot = current
            else:
                slot = slot.retype(info.elem)
            info = type_info(slot.type)
            continue
        if info.kind is Kind.INTERFACE and isinstance(current, Ref):
            slot = current
            info = type_info(slot.type)
            continue
        break

    cls = info.cls
    if isinstance(cls, type) and callable(getattr(cls, "clone_from", None)):
        receiver = new_instance(cls)
        slot.set(receiver)
        return receiver, slot, info
    return None, slot, info
