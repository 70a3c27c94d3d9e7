"""Directed, typed edges between entities."""

from sqlalchemy import Enum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog.database import Base
from catalog.refs import EntityKind, EntityRef, new_id


def _kind_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class CrossReference(Base):
    __tablename__ = "cross_references"
    __table_args__ = (
        UniqueConstraint("from_id", "to_id", name="uq_cross_references_from_to"),
        Index("ix_cross_references_from_kind", "from_id", "to_kind"),
        Index("ix_cross_references_to", "to_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: new_id(EntityKind.CROSS_REFERENCE))
    from_id: Mapped[str] = mapped_column(String(64), nullable=False)
    from_kind: Mapped[EntityKind] = mapped_column(Enum(EntityKind, native_enum=False, values_callable=_kind_values), nullable=False)
    to_id: Mapped[str] = mapped_column(String(64), nullable=False)
    to_kind: Mapped[EntityKind] = mapped_column(Enum(EntityKind, native_enum=False, values_callable=_kind_values), nullable=False)

    @classmethod
    def between(cls, from_ref: EntityRef, to_ref: EntityRef) -> "CrossReference":
        return cls(
            id=new_id(EntityKind.CROSS_REFERENCE),
            from_id=str(from_ref),
            from_kind=from_ref.kind,
            to_id=str(to_ref),
            to_kind=to_ref.kind,
        )

    @property
    def source(self) -> EntityRef:
        return EntityRef.parse(self.from_id)

    @property
    def target(self) -> EntityRef:
        return EntityRef.parse(self.to_id)

    def __repr__(self) -> str:
        return f"<CrossReference {self.from_id} -> {self.to_id}>"
