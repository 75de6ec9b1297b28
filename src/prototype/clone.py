"""Entry points."""

from __future__ import annotations

import logging
from typing import Any

from prototype.context import free_clone_context, new_clone_context
from prototype.dispatch import clone_value
from prototype.errors import InvalidTargetError, UnsupportedValueError
from prototype.kinds import Kind, type_info, type_name
from prototype.options import Option, build_options
from prototype.slots import Ref

logger = logging.getLogger(__name__)


def clone(target: Ref, source: Any, *options: Option, **overrides: Any) -> None:
    """Clone ``source`` into the location held by ``target``.

    Args:
        target: The ``Ref`` to write into; its declared type drives every
            conversion below it.
        source: Any value.
        *options: Option callables from ``prototype.options``.
        **overrides: ``Options`` fields set directly, e.g. ``setter_prefix="set_"``.

    Raises:
        InvalidTargetError: ``target`` is not a ``Ref``.
        CloneError: A conversion failed (``CloneErrors`` in best-effort mode).
    """
    if not isinstance(target, Ref):
        raise InvalidTargetError(target)

    opts = build_options(*options, **overrides)
    if source is None:
        if type_info(target.type).kind in (Kind.POINTER, Kind.INTERFACE):
            target.set(None)
        return

    logger.debug("clone %s -> %s", type(source).__qualname__, type_name(target.type))
    ctx = new_clone_context(opts)
    try:
        try:
            clone_value(ctx, [], target, source)
        except RecursionError as exc:
            raise UnsupportedValueError([], source, "nesting exceeds the interpreter stack") from exc
        ctx.raise_collected()
    finally:
        free_clone_context(ctx)


def convert(source: Any, to: Any, *options: Option, **overrides: Any) -> Any:
    """Clone ``source`` into a fresh ``Ref(to)`` and return the result."""
    ref = Ref(to)
    clone(ref, source, *options, **overrides)
    return ref.value
