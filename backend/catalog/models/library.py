"""Label, studio and actor models."""

import time
from typing import ClassVar

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.database import Base
from catalog.refs import EntityKind, EntityRef, new_id


def now_ms() -> int:
    return int(time.time() * 1000)


class EntityMixin:
    kind: ClassVar[EntityKind]

    name: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    added_on: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)

    @property
    def ref(self) -> EntityRef:
        return EntityRef.parse(self.id)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id} {self.name!r}>"


class RateableMixin:
    rating: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bookmark: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # epoch ms


class Label(EntityMixin, Base):
    __tablename__ = "labels"
    kind = EntityKind.LABEL

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.LABEL))
    aliases: Mapped[list] = mapped_column(JSON, default=list, nullable=False)


class Studio(EntityMixin, RateableMixin, Base):
    __tablename__ = "studios"
    kind = EntityKind.STUDIO

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.STUDIO))
    aliases: Mapped[list] = mapped_column(JSON, default=list, nullable=False)


class Actor(EntityMixin, RateableMixin, Base):
    __tablename__ = "actors"
    kind = EntityKind.ACTOR

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.ACTOR))
    aliases: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    born_on: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(8), nullable=True)
