"""Entity store: find / find_one / insert / update / remove over the ORM models."""

from collections.abc import AsyncIterator, Iterable
from typing import Any

import structlog
from sqlalchemy import delete, select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import EntityNotFound, InvalidEntityRef
from catalog.models import MODELS
from catalog.refs import EntityKind, EntityRef
from catalog.services import cross_references

logger = structlog.get_logger()


def model_for(kind: EntityKind):
    try:
        return MODELS[kind]
    except KeyError:
        raise InvalidEntityRef(f"No entity store for kind '{kind}'") from None


async def find(db: AsyncSession, model, *where, order_by=None) -> list:
    query = select(model).where(*where)
    if order_by is not None:
        query = query.order_by(order_by)
    result = await db.execute(query)
    return list(result.scalars().all())


async def find_one(db: AsyncSession, model, *where):
    result = await db.execute(select(model).where(*where).limit(1))
    return result.scalar_one_or_none()


async def insert(db: AsyncSession, entity):
    db.add(entity)
    await db.commit()
    return entity


async def update(db: AsyncSession, model, where: Iterable, values: dict[str, Any]) -> int:
    result = await db.execute(
        sql_update(model).where(*where).values(**values).execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount


async def remove(db: AsyncSession, model, *where) -> int:
    result = await db.execute(delete(model).where(*where))
    await db.commit()
    return result.rowcount


async def get_by_ref(db: AsyncSession, ref: EntityRef | str):
    ref = EntityRef.parse(ref)
    return await db.get(model_for(ref.kind), str(ref))


async def require(db: AsyncSession, ref: EntityRef | str):
    entity = await get_by_ref(db, ref)
    if entity is None:
        raise EntityNotFound(str(ref))
    return entity


async def get_many(db: AsyncSession, model, ids: Iterable[str]) -> list:
    """Load entities by id, in the order of ``ids``. Missing ids are skipped."""
    ids = list(dict.fromkeys(ids))
    if not ids:
        return []
    rows = await find(db, model, model.id.in_(ids))
    by_id = {row.id: row for row in rows}
    return [by_id[i] for i in ids if i in by_id]


async def iter_all(db: AsyncSession, model, chunk_size: int = 1000) -> AsyncIterator:
    """Yield every row of ``model`` ordered by id, fetched in keyset chunks."""
    last_id = None
    while True:
        query = select(model).order_by(model.id).limit(chunk_size)
        if last_id is not None:
            query = query.where(model.id > last_id)
        rows = (await db.execute(query)).scalars().all()
        if not rows:
            return
        for row in rows:
            yield row
        last_id = rows[-1].id


async def get_related(db: AsyncSession, ref: EntityRef, kind: EntityKind) -> list:
    """Entities of ``kind`` that ``ref`` points at through cross references.

    Edges whose target no longer exists are dropped and logged.
    """
    targets = await cross_references.get_targets(db, ref, kind)
    if not targets:
        return []
    ids = [str(t) for t in targets]
    entities = await get_many(db, model_for(kind), ids)
    if len(entities) < len(ids):
        found = {e.id for e in entities}
        logger.warning(
            "dangling_reference",
            source=str(ref),
            missing=[i for i in ids if i not in found],
        )
    return entities
