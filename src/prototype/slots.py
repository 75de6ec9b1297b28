"""Writable locations.

A clone writes into a *slot*: a typed cell that can be read and replaced.
``Ref`` is the public slot callers hand to :func:`prototype.clone`; the
engine creates attribute and item slots internally while it walks
aggregates and containers.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Slot(ABC):
    """A typed, writable location."""

    type: Any

    @abstractmethod
    def get(self) -> Any: ...

    @abstractmethod
    def set(self, value: Any) -> None: ...

    def retype(self, type_: Any) -> Slot:
        """View this slot through a narrower declared type."""
        return _RetypedSlot(self, type_)


class Ref(Slot, Generic[T]):
    """A reference cell: the target handed to ``clone``.

    ``Ref(int)`` declares an ``int`` location; ``Ref()`` accepts anything
    and receives dynamic (widened) values.
    """

    def __init__(self, type_: Any = Any, value: Any = None) -> None:
        self.type = type_
        self.value = value

    def get(self) -> Any:
        return self.value

    def set(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.type!r}, {self.value!r})"


class AttrSlot(Slot):
    """An attribute of an aggregate instance."""

    def __init__(self, owner: Any, name: str, type_: Any) -> None:
        self.owner = owner
        self.name = name
        self.type = type_

    def get(self) -> Any:
        return getattr(self.owner, self.name, None)

    def set(self, value: Any) -> None:
        if _is_frozen(type(self.owner)) and not self.name.startswith("_"):
            object.__setattr__(self.owner, self.name, value)
        else:
            setattr(self.owner, self.name, value)


class ItemSlot(Slot):
    """An element of a list or a value of a dict."""

    def __init__(self, container: Any, key: Any, type_: Any) -> None:
        self.container = container
        self.key = key
        self.type = type_

    def get(self) -> Any:
        if isinstance(self.container, dict):
            return self.container.get(self.key)
        return self.container[self.key]

    def set(self, value: Any) -> None:
        self.container[self.key] = value


class _RetypedSlot(Slot):
    def __init__(self, inner: Slot, type_: Any) -> None:
        self.inner = inner
        self.type = type_

    def get(self) -> Any:
        return self.inner.get()

    def set(self, value: Any) -> None:
        self.inner.set(value)


def _is_frozen(cls: type) -> bool:
    if dataclasses.is_dataclass(cls):
        return cls.__dataclass_params__.frozen
    if issubclass(cls, BaseModel):
        return bool(cls.model_config.get("frozen"))
    return False
