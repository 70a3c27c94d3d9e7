"""Cross-reference store.

Edges are directed ``from -> to`` rows. A relation is the set of edges from one
source to targets of one kind ("marker has labels"); it is normally replaced
as a whole by :func:`replace_relation` rather than diffed.
"""

from collections.abc import Iterable

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import DuplicateEdge, InvalidEntityRef
from catalog.models.cross_reference import CrossReference
from catalog.refs import EntityKind, EntityRef

logger = structlog.get_logger()


async def _find_edge(db: AsyncSession, from_ref: EntityRef, to_ref: EntityRef) -> CrossReference | None:
    result = await db.execute(
        select(CrossReference).where(
            CrossReference.from_id == str(from_ref),
            CrossReference.to_id == str(to_ref),
        )
    )
    return result.scalar_one_or_none()


async def add(
    db: AsyncSession,
    from_ref: EntityRef | str,
    to_ref: EntityRef | str,
    strict: bool = False,
) -> CrossReference:
    """Insert one edge. Existing edges are returned as-is unless ``strict``."""
    from_ref, to_ref = EntityRef.parse(from_ref), EntityRef.parse(to_ref)

    existing = await _find_edge(db, from_ref, to_ref)
    if existing is not None:
        if strict:
            raise DuplicateEdge(str(from_ref), str(to_ref))
        return existing

    edge = CrossReference.between(from_ref, to_ref)
    db.add(edge)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent writer of the same edge
        await db.rollback()
        if strict:
            raise DuplicateEdge(str(from_ref), str(to_ref)) from None
        existing = await _find_edge(db, from_ref, to_ref)
        if existing is None:
            raise
        return existing

    logger.debug("cross_reference_added", source=edge.from_id, target=edge.to_id)
    return edge


async def replace_relation(
    db: AsyncSession,
    from_ref: EntityRef | str,
    kind: EntityKind,
    to_refs: Iterable[EntityRef | str],
) -> list[CrossReference]:
    """Replace every ``from -> <kind>`` edge with one edge per unique target.

    Delete and insert are committed together, so readers see either the old
    set or the new one.
    """
    from_ref = EntityRef.parse(from_ref)
    targets = list(dict.fromkeys(EntityRef.parse(r) for r in to_refs))
    wrong_kind = [str(t) for t in targets if t.kind != kind]
    if wrong_kind:
        raise InvalidEntityRef(f"Expected {kind} ids, got: {', '.join(wrong_kind)}")

    edges = [CrossReference.between(from_ref, target) for target in targets]
    try:
        await db.execute(
            delete(CrossReference).where(
                CrossReference.from_id == str(from_ref),
                CrossReference.to_kind == kind,
            )
        )
        db.add_all(edges)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "relation_replaced",
        source=str(from_ref),
        kind=str(kind),
        targets=[e.to_id for e in edges],
    )
    return edges


async def get_by_source(
    db: AsyncSession,
    from_ref: EntityRef | str,
    kind: EntityKind | None = None,
) -> list[CrossReference]:
    query = select(CrossReference).where(CrossReference.from_id == str(EntityRef.parse(from_ref)))
    if kind is not None:
        query = query.where(CrossReference.to_kind == kind)
    result = await db.execute(query.order_by(CrossReference.id))
    return list(result.scalars().all())


async def get_by_target(
    db: AsyncSession,
    to_ref: EntityRef | str,
    kind: EntityKind | None = None,
) -> list[CrossReference]:
    query = select(CrossReference).where(CrossReference.to_id == str(EntityRef.parse(to_ref)))
    if kind is not None:
        query = query.where(CrossReference.from_kind == kind)
    result = await db.execute(query.order_by(CrossReference.id))
    return list(result.scalars().all())


async def get_targets(db: AsyncSession, from_ref: EntityRef | str, kind: EntityKind) -> list[EntityRef]:
    return [edge.target for edge in await get_by_source(db, from_ref, kind)]


async def get_sources(db: AsyncSession, to_ref: EntityRef | str, kind: EntityKind) -> list[EntityRef]:
    return [edge.source for edge in await get_by_target(db, to_ref, kind)]


async def remove_by_source(db: AsyncSession, from_ref: EntityRef | str) -> int:
    result = await db.execute(
        delete(CrossReference).where(CrossReference.from_id == str(EntityRef.parse(from_ref)))
    )
    await db.commit()
    return result.rowcount


async def remove_by_target(db: AsyncSession, to_ref: EntityRef | str) -> int:
    result = await db.execute(
        delete(CrossReference).where(CrossReference.to_id == str(EntityRef.parse(to_ref)))
    )
    await db.commit()
    return result.rowcount
