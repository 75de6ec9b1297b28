"""Map key conversion.

Keys are stringified to sort map entries and to match aggregate labels,
and labels are decoded back into typed keys when an aggregate is cloned
into a map.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

import numpy as np

from prototype.aggregates import new_instance
from prototype.context import CloneContext
from prototype.errors import UnsupportedTypeError
from prototype.interfaces import TextMarshaler
from prototype.kinds import NUMBER_KINDS, Kind, type_info
from prototype.primitives import from_string
from prototype.setters import format_bool, format_float


def stringify_key(path: Sequence[str], key: Any) -> str:
    if isinstance(key, TextMarshaler):
        text = key.marshal_text()
        return text.decode() if isinstance(text, bytes) else text
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return key
    if isinstance(key, (bool, np.bool_)):
        return format_bool(bool(key))
    if isinstance(key, (int, np.integer)):
        return str(int(key))
    if isinstance(key, (float, np.floating)):
        return format_float(key)
    if isinstance(key, bytes):
        return key.decode("utf-8", "surrogateescape")
    if type(key).__str__ is not object.__str__:
        return str(key)
    raise UnsupportedTypeError(path, type(key), str)


def decode_key(ctx: CloneContext, path: Sequence[str], text: str, annotation: Any) -> Any:
    """Turn a label into a key of type ``annotation``."""
    info = type_info(annotation)
    if info.kind is Kind.INTERFACE and info.empty:
        return text
    if info.enum is None and callable(getattr(info.cls, "unmarshal_text", None)):
        key = new_instance(info.cls)
        key.unmarshal_text(text)
        return key
    if info.kind in (Kind.STRING, Kind.BOOL) or info.kind in NUMBER_KINDS:
        return from_string(ctx, path, text, info)
    raise UnsupportedTypeError(path, str, annotation)
