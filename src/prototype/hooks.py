"""Hook lookup.

Hooks run only when no built-in conversion applies to a node. They are
consulted value-level first, then type-level, then kind-level; the first
match handles the node on its own.
"""

from __future__ import annotations

import logging
from typing import Any

from prototype.kinds import kind_of, type_info
from prototype.options import Hook, Options, value_key
from prototype.slots import Slot

logger = logging.getLogger(__name__)


def find_hook(options: Options, source: Any, target: Slot) -> Hook | None:
    if options.value_hooks:
        source_key = value_key(source)
        by_target = options.value_hooks.get(source_key) if source_key else None
        if by_target:
            target_key = value_key(target.get())
            if target_key is not None and target_key in by_target:
                logger.debug("Value hook matched %r", source)
                return by_target[target_key]

    if options.type_hooks:
        by_target = options.type_hooks.get(type(source))
        if by_target:
            try:
                hook = by_target.get(target.type)
            except TypeError:
                hook = None
            if hook is not None:
                logger.debug("Type hook matched %s", type(source).__qualname__)
                return hook

    if options.kind_hooks:
        by_target = options.kind_hooks.get(kind_of(source))
        if by_target:
            hook = by_target.get(type_info(target.type).kind)
            if hook is not None:
                logger.debug("Kind hook matched %s", kind_of(source).value)
                return hook

    return None
