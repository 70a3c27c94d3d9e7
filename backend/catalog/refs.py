"""Typed entity identifiers.

Every persisted entity id carries its kind as a short prefix (``la_…`` for a
label, ``sc_…`` for a scene). Code works with :class:`EntityRef`, which keeps
the kind as an explicit field instead of re-parsing strings at each use.
"""

import uuid
from dataclasses import dataclass
from enum import StrEnum

from catalog.errors import InvalidEntityRef


class EntityKind(StrEnum):
    ACTOR = "actor"
    LABEL = "label"
    SCENE = "scene"
    MARKER = "marker"
    IMAGE = "image"
    STUDIO = "studio"
    MOVIE = "movie"
    CROSS_REFERENCE = "cross_reference"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]


_PREFIXES = {
    EntityKind.ACTOR: "ac",
    EntityKind.LABEL: "la",
    EntityKind.SCENE: "sc",
    EntityKind.MARKER: "mk",
    EntityKind.IMAGE: "im",
    EntityKind.STUDIO: "st",
    EntityKind.MOVIE: "mo",
    EntityKind.CROSS_REFERENCE: "xr",
}
_KINDS_BY_PREFIX = {prefix: kind for kind, prefix in _PREFIXES.items()}


@dataclass(frozen=True, slots=True)
class EntityRef:
    kind: EntityKind
    raw: str

    def __str__(self) -> str:
        return f"{self.kind.prefix}_{self.raw}"

    @classmethod
    def new(cls, kind: EntityKind) -> "EntityRef":
        return cls(kind, uuid.uuid4().hex)

    @classmethod
    def parse(cls, value: "str | EntityRef") -> "EntityRef":
        if isinstance(value, EntityRef):
            return value
        prefix, sep, raw = str(value).partition("_")
        kind = _KINDS_BY_PREFIX.get(prefix)
        if not sep or not raw or kind is None:
            raise InvalidEntityRef(f"Not a valid entity id: {value!r}")
        return cls(kind, raw)


def new_id(kind: EntityKind) -> str:
    return str(EntityRef.new(kind))
