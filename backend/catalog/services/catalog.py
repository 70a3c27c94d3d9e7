"""Catalog mutations.

Each operation writes to the entity / cross-reference stores first and then
pushes the affected documents to the index, so the index never holds state
the stores do not.
"""

from collections.abc import Iterable
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import InvalidUpdate
from catalog.models import Marker
from catalog.models.cross_reference import CrossReference
from catalog.models.media import round_half_up
from catalog.refs import EntityKind, EntityRef
from catalog.search import sync
from catalog.search.context import SearchContext
from catalog.search.documents import INDEX_DEFINITIONS
from catalog.services import cross_references, entities

logger = structlog.get_logger()

READ_ONLY_FIELDS = {"id"}


async def insert_entity(db: AsyncSession, context: SearchContext, entity):
    await entities.insert(db, entity)
    logger.info("entity_created", id=entity.id, name=entity.name)
    if entity.kind in INDEX_DEFINITIONS:
        await sync.update_items(db, context.index_for(entity.kind), INDEX_DEFINITIONS[entity.kind], [entity])
    return entity


async def patch_entity(db: AsyncSession, context: SearchContext, ref: EntityRef | str, values: dict[str, Any]):
    ref = EntityRef.parse(ref)
    model = entities.model_for(ref.kind)
    await entities.require(db, ref)

    columns = set(model.__table__.columns.keys()) - READ_ONLY_FIELDS
    unknown = sorted(set(values) - columns)
    if unknown:
        raise InvalidUpdate(f"Cannot update {', '.join(unknown)} on {ref.kind}")
    required = sorted(k for k, v in values.items() if v is None and not model.__table__.columns[k].nullable)
    if required:
        raise InvalidUpdate(f"Cannot clear {', '.join(required)} on {ref.kind}")
    if not values:
        return await entities.require(db, ref)

    if values.get("time") is not None:
        values = {**values, "time": round_half_up(values["time"])}

    await entities.update(db, model, [model.id == str(ref)], values)
    logger.info("entity_updated", id=str(ref), fields=sorted(values))
    await sync.update_dependents(db, context, ref)
    return await entities.require(db, ref)


async def set_relation(
    db: AsyncSession,
    context: SearchContext,
    ref: EntityRef | str,
    kind: EntityKind,
    ids: Iterable[EntityRef | str],
) -> list[CrossReference]:
    """Replace the ``kind`` targets of ``ref`` and re-index whatever reads them."""
    ref = EntityRef.parse(ref)
    await entities.require(db, ref)

    previous = await cross_references.get_targets(db, ref, kind)
    edges = await cross_references.replace_relation(db, ref, kind, ids)

    await sync.update_dependents(db, context, ref)
    if kind in INDEX_DEFINITIONS:
        # Target documents count reverse edges (an actor's num_scenes)
        touched = {str(t) for t in previous} | {e.to_id for e in edges}
        await sync.reindex_ids(db, context, {kind: touched})
    return edges


async def get_related(db: AsyncSession, ref: EntityRef | str, kind: EntityKind) -> list:
    ref = EntityRef.parse(ref)
    await entities.require(db, ref)
    return await entities.get_related(db, ref, kind)


async def _drop(db: AsyncSession, ref: EntityRef) -> None:
    await cross_references.remove_by_source(db, ref)
    await cross_references.remove_by_target(db, ref)
    model = entities.model_for(ref.kind)
    await entities.remove(db, model, model.id == str(ref))


async def remove_entity(db: AsyncSession, context: SearchContext, ref: EntityRef | str) -> list[str]:
    """Delete an entity, its edges and documents; re-index what pointed at it.

    Removing a scene also removes its markers. Returns the removed ids.
    """
    ref = EntityRef.parse(ref)
    await entities.require(db, ref)

    dependents = await sync.collect_dependents(db, ref)
    for edge in await cross_references.get_by_source(db, ref):
        if edge.to_kind in INDEX_DEFINITIONS:
            dependents.setdefault(edge.to_kind, set()).add(edge.to_id)

    removed = [ref]
    if ref.kind == EntityKind.SCENE:
        removed += [m.ref for m in await entities.find(db, Marker, Marker.scene == str(ref))]

    for item in removed:
        await _drop(db, item)
        if item.kind in INDEX_DEFINITIONS:
            await sync.remove_items(context.index_for(item.kind), [str(item)])

    removed_ids = [str(item) for item in removed]
    logger.info("entity_removed", id=str(ref), cascade=removed_ids[1:])
    await sync.reindex_ids(db, context, dependents, exclude=removed_ids)
    return removed_ids


async def remove_custom_field(db: AsyncSession, field_id: str) -> int:
    """Drop one custom field from every marker that carries it; returns how many changed."""
    changed = 0
    async for marker in entities.iter_all(db, Marker):
        if field_id in (marker.custom_fields or {}):
            marker.custom_fields = {k: v for k, v in marker.custom_fields.items() if k != field_id}
            changed += 1
    await db.commit()
    logger.info("custom_field_removed", field=field_id, markers=changed)
    return changed
