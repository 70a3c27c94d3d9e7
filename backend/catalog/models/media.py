"""Scene, marker and image models.

Direct references (a marker's scene, a scene's studio) are plain id columns
without foreign keys: the referenced row may disappear before dependents are
rebuilt, and readers must tolerate that.
"""

import math

from sqlalchemy import JSON, BigInteger, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from catalog.database import Base
from catalog.models.library import EntityMixin, RateableMixin
from catalog.refs import EntityKind, new_id


def round_half_up(value: float) -> int:
    """Whole seconds, with .5 rounding up (builtin round() rounds half to even)."""
    return math.floor(value + 0.5)


class Scene(EntityMixin, RateableMixin, Base):
    __tablename__ = "scenes"
    kind = EntityKind.SCENE

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.SCENE))
    path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    release_date: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)  # seconds
    size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # bytes
    studio: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)


class Marker(EntityMixin, RateableMixin, Base):
    __tablename__ = "markers"
    kind = EntityKind.MARKER

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.MARKER))
    scene: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    time: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds into the scene
    thumbnail: Mapped[str | None] = mapped_column(String(64), nullable=True)
    custom_fields: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    @validates("time")
    def _round_time(self, key, value):
        return round_half_up(value)


class Image(EntityMixin, RateableMixin, Base):
    __tablename__ = "images"
    kind = EntityKind.IMAGE

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.IMAGE))
    path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    scene: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
