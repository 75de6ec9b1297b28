"""Per-call clone state.

A :class:`CloneContext` lives for exactly one top-level ``clone`` call. It
tracks how many references deep the walk is, which references are on the
current path once that depth passes ``cycle_depth``, the errors collected
in best-effort mode, and the allocations shared when deep cloning is off.
Contexts are recycled through a small pool.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from prototype.errors import CloneErrors, UnsupportedValueError

if TYPE_CHECKING:
    from prototype.options import Options

logger = logging.getLogger(__name__)


class CloneContext:
    def __init__(self) -> None:
        self.level = 0
        self.seen: set[Hashable] = set()
        self.options: Options | None = None
        self.errors: list[Exception] = []
        self.memo: dict[tuple[int, Any], tuple[Any, Any]] = {}

    @contextmanager
    def track(self, key: Hashable, path: Sequence[str], value: Any) -> Iterator[None]:
        """Follow one reference; fail if it is already on the current path."""
        self.level += 1
        remembered = False
        try:
            if self.level > self.options.cycle_depth:
                if key in self.seen:
                    logger.debug("Cycle at %s after %d levels", ".".join(path), self.level)
                    raise UnsupportedValueError(path, value, "encountered a cycle")
                self.seen.add(key)
                remembered = True
            yield
        finally:
            if remembered:
                self.seen.discard(key)
            self.level -= 1

    def collect(self, exc: Exception) -> None:
        """Re-raise ``exc`` or, in best-effort mode, keep it for later."""
        if self.options.interrupt_on_error:
            raise exc
        logger.debug("Collected clone error: %s", exc)
        self.errors.append(exc)

    def raise_collected(self) -> None:
        if self.errors:
            raise CloneErrors(self.errors)

    # Aliasing preservation when deep cloning is off.

    def shared(self, source: Any, target_type: Any) -> Any:
        try:
            hit = self.memo.get((id(source), target_type))
        except TypeError:
            # Unhashable annotations are never shared.
            return None
        return hit[1] if hit is not None else None

    def share(self, source: Any, target_type: Any, allocated: Any) -> None:
        # The source is kept alive so its id cannot be reused mid-call.
        try:
            self.memo[(id(source), target_type)] = (source, allocated)
        except TypeError:
            return


_pool: list[CloneContext] = []
_pool_lock = threading.Lock()


def new_clone_context(options: Options) -> CloneContext:
    with _pool_lock:
        ctx = _pool.pop() if _pool else None
    if ctx is None:
        ctx = CloneContext()
    ctx.options = options
    return ctx


def free_clone_context(ctx: CloneContext) -> None:
    ctx.level = 0
    ctx.seen.clear()
    ctx.options = None
    ctx.errors = []
    ctx.memo.clear()
    with _pool_lock:
        _pool.append(ctx)
