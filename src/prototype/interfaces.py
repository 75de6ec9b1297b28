"""Protocol interfaces recognised by the clone engine.

Types opt into custom behaviour by implementing these methods; the engine
checks for them structurally, no registration is needed.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from prototype.slots import Slot


@runtime_checkable
class ClonerFrom(Protocol):
    """A target that fills itself from any source value."""

    def clone_from(self, source: Any) -> None: ...


@runtime_checkable
class ClonerTo(Protocol):
    """A source that writes itself into a target slot."""

    def clone_to(self, target: Slot) -> None: ...


@runtime_checkable
class TextMarshaler(Protocol):
    """A map key that renders itself as text."""

    def marshal_text(self) -> str | bytes: ...


@runtime_checkable
class TextUnmarshaler(Protocol):
    """A key or value type that parses itself from text."""

    def unmarshal_text(self, text: str) -> None: ...
