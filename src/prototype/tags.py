"""Field tag markers.

Aggregates rename, skip, or embed fields through markers attached to their
annotations::

    @dataclass
    class User:
        user_id: Annotated[str, Tag("prototype", "id")]
        secret: Annotated[str, Tag("prototype", "-")]
        base: Annotated[Base, Embedded()]

Dataclass ``field(metadata=...)`` and pydantic ``Field(json_schema_extra=...)``
entries keyed by the tag key are recognised as well (see ``aggregates``).
"""

from __future__ import annotations

from dataclasses import dataclass

# Metadata key that marks a field as embedded in dict-style metadata.
EMBEDDED_KEY = "embedded"

# Tag value that removes a field from matching.
SKIP = "-"

# Punctuation allowed in a tag label besides letters and digits.
_LABEL_PUNCTUATION = "!#$%&()*+-./:;<=>?@[]^_{|}~ "


@dataclass(frozen=True)
class Tag:
    """A ``key: value`` tag, e.g. ``Tag("prototype", "name,omitempty")``."""

    key: str
    value: str


@dataclass(frozen=True)
class Embedded:
    """Marks an aggregate-typed field whose fields are promoted to the parent."""


def parse_tag(tag: str) -> tuple[str, tuple[str, ...]]:
    """Split a tag value into its label and its comma-separated options."""
    label, _, rest = tag.partition(",")
    options = tuple(opt for opt in rest.split(",") if opt) if rest else ()
    return label, options


def is_valid_label(label: str) -> bool:
    if not label:
        return False
    for ch in label:
        if ch in _LABEL_PUNCTUATION:
            continue
        if not ch.isalpha() and not ch.isdigit():
            return False
    return True
