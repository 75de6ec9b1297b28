"""Prototype: reflective, type-directed cloning of Python values.

``clone(Ref(T), source)`` copies ``source`` into a location declared as
``T``, converting scalars, walking containers and matching aggregate
fields by label.
"""

from prototype.clone import clone, convert
from prototype.errors import (
    CloneError,
    CloneErrors,
    ConvertError,
    ErrorKind,
    InvalidTargetError,
    NegativeNumberError,
    NumberOverflowError,
    StringParseError,
    UnsupportedTypeError,
    UnsupportedValueError,
)
from prototype.fields import cached_struct_fields
from prototype.interfaces import ClonerFrom, ClonerTo, TextMarshaler, TextUnmarshaler
from prototype.kinds import Kind
from prototype.options import (
    Hook,
    Options,
    context,
    deep_clone,
    disable_deep_clone,
    equal_fold,
    getter_prefix,
    interrupt_on_error,
    kind_hook,
    name_comparer,
    setter_prefix,
    source_tag_key,
    tag_key,
    target_tag_key,
    time_codec,
    type_hook,
    value_hook,
)
from prototype.slots import Ref, Slot
from prototype.tags import Embedded, Tag
from prototype.wellknown import (
    NullBool,
    NullByte,
    NullFloat64,
    NullInt16,
    NullInt32,
    NullInt64,
    NullString,
    NullTime,
)

__version__ = "0.1.0"

__all__ = [
    "CloneError",
    "CloneErrors",
    "ClonerFrom",
    "ClonerTo",
    "ConvertError",
    "Embedded",
    "ErrorKind",
    "Hook",
    "InvalidTargetError",
    "Kind",
    "NegativeNumberError",
    "NullBool",
    "NullByte",
    "NullFloat64",
    "NullInt16",
    "NullInt32",
    "NullInt64",
    "NullString",
    "NullTime",
    "NumberOverflowError",
    "Options",
    "Ref",
    "Slot",
    "StringParseError",
    "Tag",
    "TextMarshaler",
    "TextUnmarshaler",
    "UnsupportedTypeError",
    "UnsupportedValueError",
    "cached_struct_fields",
    "clone",
    "context",
    "convert",
    "deep_clone",
    "disable_deep_clone",
    "equal_fold",
    "getter_prefix",
    "interrupt_on_error",
    "kind_hook",
    "name_comparer",
    "setter_prefix",
    "source_tag_key",
    "tag_key",
    "target_tag_key",
    "time_codec",
    "type_hook",
    "value_hook",
]
