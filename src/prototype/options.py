"""Per-call options.

Options are built from option callables and keyword overrides::

    clone(ref, src, tag_key("json"), setter_prefix("set_"))
    clone(ref, src, getter_prefix="get_", interrupt_on_error=False)

Anything left unset falls back to :func:`prototype.config.get_settings`.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from prototype.config import get_settings
from prototype.kinds import Kind
from prototype.slots import Slot

# hook(full_path, target, source) performs the whole clone of one node.
Hook = Callable[[list[str], Slot, Any], None]
Option = Callable[[dict[str, Any]], None]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def equal_fold(a: str, b: str) -> bool:
    """Unicode case-insensitive label comparison."""
    return a.casefold() == b.casefold()


def as_utc(t: datetime) -> datetime:
    return t.replace(tzinfo=timezone.utc) if t.tzinfo is None else t


def unix_seconds(t: datetime) -> int:
    return (as_utc(t) - _EPOCH) // timedelta(seconds=1)


def from_unix_seconds(seconds: int) -> datetime:
    return _EPOCH + timedelta(seconds=seconds)


def format_rfc3339(t: datetime) -> str:
    text = as_utc(t).isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def parse_rfc3339(text: str) -> datetime:
    return as_utc(datetime.fromisoformat(text))


# ---------------------------------------------------------------------------
# Options model
# ---------------------------------------------------------------------------

class Options(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    source_tag_key: str = ""
    target_tag_key: str = ""
    getter_prefix: str = ""
    setter_prefix: str = ""
    context: Any = None
    deep_clone: bool = True
    name_comparer: Callable[[str, str], bool] = equal_fold
    time_to_int: Callable[[datetime], int] = unix_seconds
    int_to_time: Callable[[int], datetime] = from_unix_seconds
    time_to_string: Callable[[datetime], str] = format_rfc3339
    string_to_time: Callable[[str], datetime] = parse_rfc3339
    value_hooks: dict[Any, dict[Any, Any]] = Field(default_factory=dict)
    type_hooks: dict[Any, dict[Any, Any]] = Field(default_factory=dict)
    kind_hooks: dict[Kind, dict[Kind, Any]] = Field(default_factory=dict)
    interrupt_on_error: bool = True
    cycle_depth: int = Field(default=64, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        """Fill unset values from the process settings."""
        if not isinstance(data, dict):
            return data
        settings = get_settings()
        data = dict(data)
        tag = data.pop("tag_key", None) or settings.tag_key
        if not data.get("source_tag_key"):
            data["source_tag_key"] = tag
        if not data.get("target_tag_key"):
            data["target_tag_key"] = tag
        data.setdefault("getter_prefix", settings.getter_prefix)
        data.setdefault("setter_prefix", settings.setter_prefix)
        data.setdefault("interrupt_on_error", settings.interrupt_on_error)
        data.setdefault("cycle_depth", settings.cycle_depth)
        return data


def build_options(*options: Option, **overrides: Any) -> Options:
    values: dict[str, Any] = {}
    for option in options:
        option(values)
    values.update(overrides)
    return Options(**values)


# ---------------------------------------------------------------------------
# Option callables
# ---------------------------------------------------------------------------

def tag_key(key: str) -> Option:
    """Use ``key`` for both source and target field tags."""
    def apply(values: dict[str, Any]) -> None:
        values["source_tag_key"] = key
        values["target_tag_key"] = key
    return apply


def source_tag_key(key: str) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["source_tag_key"] = key
    return apply


def target_tag_key(key: str) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["target_tag_key"] = key
    return apply


def getter_prefix(prefix: str) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["getter_prefix"] = prefix
    return apply


def setter_prefix(prefix: str) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["setter_prefix"] = prefix
    return apply


def context(ctx: Any) -> Option:
    """Object passed to getters and setters that accept a context argument."""
    def apply(values: dict[str, Any]) -> None:
        values["context"] = ctx
    return apply


def deep_clone() -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["deep_clone"] = True
    return apply


def disable_deep_clone() -> Option:
    """Reuse one allocation per shared source object instead of copying it again."""
    def apply(values: dict[str, Any]) -> None:
        values["deep_clone"] = False
    return apply


def name_comparer(comparer: Callable[[str, str], bool]) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["name_comparer"] = comparer
    return apply


def time_codec(
    to_int: Callable[[datetime], int] | None = None,
    from_int: Callable[[int], datetime] | None = None,
    to_string: Callable[[datetime], str] | None = None,
    from_string: Callable[[str], datetime] | None = None,
) -> Option:
    """Replace some or all of the time conversions."""
    def apply(values: dict[str, Any]) -> None:
        if to_int is not None:
            values["time_to_int"] = to_int
        if from_int is not None:
            values["int_to_time"] = from_int
        if to_string is not None:
            values["time_to_string"] = to_string
        if from_string is not None:
            values["string_to_time"] = from_string
    return apply


def interrupt_on_error(enabled: bool = True) -> Option:
    def apply(values: dict[str, Any]) -> None:
        values["interrupt_on_error"] = enabled
    return apply


def value_key(value: Any) -> tuple[type, Any] | None:
    """Lookup key of a value hook selector; None for unhashable values."""
    try:
        hash(value)
    except TypeError:
        return None
    return (type(value), value)


def value_hook(source_value: Any, target_value: Any, hook: Hook) -> Option:
    """Handle nodes whose source equals ``source_value`` while the target holds ``target_value``."""
    source_key = value_key(source_value)
    target_key = value_key(target_value)
    if source_key is None or target_key is None:
        raise TypeError("value hook selectors must be hashable")

    def apply(values: dict[str, Any]) -> None:
        hooks = values.setdefault("value_hooks", {})
        hooks.setdefault(source_key, {})[target_key] = hook
    return apply


def type_hook(source_type: Any, target_type: Any, hook: Hook) -> Option:
    """Handle nodes from runtime type ``source_type`` into declared ``target_type``."""
    def apply(values: dict[str, Any]) -> None:
        hooks = values.setdefault("type_hooks", {})
        hooks.setdefault(source_type, {})[target_type] = hook
    return apply


def kind_hook(source_kind: Kind, target_kind: Kind, hook: Hook) -> Option:
    def apply(values: dict[str, Any]) -> None:
        hooks = values.setdefault("kind_hooks", {})
        hooks.setdefault(source_kind, {})[target_kind] = hook
    return apply
