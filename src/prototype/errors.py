"""Exception hierarchy for the clone engine.

Every conversion failure raised by the engine is a :class:`CloneError`
carrying the field path at which it happened. Exceptions raised by user
hooks, getters and setters are not wrapped and propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from prototype.kinds import type_name


class ErrorKind(str, Enum):
    INVALID_TARGET = "invalid_target"
    OVERFLOW = "overflow"
    NEGATIVE_NUMBER = "negative_number"
    STRING_PARSE = "string_parse"
    UNSUPPORTED_TYPE = "unsupported_type"
    UNSUPPORTED_VALUE = "unsupported_value"
    CONVERT = "convert"
    MULTIPLE = "multiple"


class CloneError(Exception):
    """Base exception for all clone failures."""

    kind: ErrorKind = ErrorKind.CONVERT

    def __init__(
        self,
        message: str,
        full_path: Sequence[str] = (),
        target_type: Any = None,
        value: Any = None,
    ):
        self.message = message
        self.full_path = tuple(full_path)
        self.target_type = target_type
        self.value = value
        super().__init__(self._render())

    @property
    def path(self) -> str:
        return ".".join(self.full_path)

    def _render(self) -> str:
        if self.full_path:
            return f"prototype: {self.path}: {self.message}"
        return f"prototype: {self.message}"


# --- Arguments ---
class InvalidTargetError(CloneError):
    """The top-level target is not a ``Ref``."""

    kind = ErrorKind.INVALID_TARGET

    def __init__(self, target: Any):
        if target is None:
            message = "clone(None)"
        else:
            message = f"clone(non-Ref {type(target).__qualname__})"
        super().__init__(message, value=target)


# --- Numbers ---
class NumberOverflowError(CloneError):
    """A number does not fit the target's range."""

    kind = ErrorKind.OVERFLOW

    def __init__(self, full_path: Sequence[str], target_type: Any, value: Any):
        super().__init__(
            f"value {value} overflows {type_name(target_type)}",
            full_path, target_type, str(value),
        )


class NegativeNumberError(CloneError):
    """A negative number was written into an unsigned target."""

    kind = ErrorKind.NEGATIVE_NUMBER

    def __init__(self, full_path: Sequence[str], target_type: Any, value: Any):
        super().__init__(
            f"negative value {value} cannot be set to {type_name(target_type)}",
            full_path, target_type, str(value),
        )


# --- Text ---
class StringParseError(CloneError):
    """Text could not be parsed into the target's kind.

    The underlying parser error is kept as ``cause`` (and ``__cause__``).
    """

    kind = ErrorKind.STRING_PARSE

    def __init__(
        self,
        full_path: Sequence[str],
        target_type: Any,
        literal: str,
        cause: BaseException | None = None,
    ):
        self.literal = literal
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"cannot parse {literal!r} as {type_name(target_type)}{detail}",
            full_path, target_type, literal,
        )


# --- Types and values ---
class UnsupportedTypeError(CloneError):
    """No built-in rule or hook maps the source type to the target type."""

    kind = ErrorKind.UNSUPPORTED_TYPE

    def __init__(self, full_path: Sequence[str], source_type: Any, target_type: Any):
        self.source_type = source_type
        super().__init__(
            f"unsupported clone from {type_name(source_type)} to {type_name(target_type)}",
            full_path, target_type,
        )


class UnsupportedValueError(CloneError):
    """The source value itself cannot be cloned (cycles, non-finite floats)."""

    kind = ErrorKind.UNSUPPORTED_VALUE

    def __init__(self, full_path: Sequence[str], value: Any, reason: str):
        self.reason = reason
        super().__init__(
            f"unsupported value of type {type(value).__qualname__}: {reason}",
            full_path, None, value,
        )


class ConvertError(CloneError):
    """A value-level conversion failed (enum members, packed messages, ...)."""

    kind = ErrorKind.CONVERT

    def __init__(self, full_path: Sequence[str], target_type: Any, value: Any, reason: str):
        self.reason = reason
        super().__init__(
            f"cannot convert {value!r} to {type_name(target_type)}: {reason}",
            full_path, target_type, value,
        )


class CloneErrors(CloneError):
    """All failures collected when ``interrupt_on_error`` is off."""

    kind = ErrorKind.MULTIPLE

    def __init__(self, errors: Sequence[BaseException]):
        self.errors = list(errors)
        lines = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} errors: {lines}")
