"""Entity mutation endpoints that keep the search index in step."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import get_db
from catalog.dependencies import get_search_context
from catalog.refs import EntityKind
from catalog.schemas.search import CrossReferenceOut, EntityOut, EntityPatch, RelationUpdate
from catalog.search.context import SearchContext
from catalog.services import catalog

router = APIRouter(prefix="/entities", tags=["entities"])


@router.patch("/{entity_id}", response_model=EntityOut)
async def patch_entity(
    entity_id: str,
    body: EntityPatch,
    context: SearchContext = Depends(get_search_context),
    db: AsyncSession = Depends(get_db),
):
    entity = await catalog.patch_entity(db, context, entity_id, body.changes())
    return EntityOut.from_entity(entity)


@router.delete("/{entity_id}", response_model=dict)
async def delete_entity(
    entity_id: str,
    context: SearchContext = Depends(get_search_context),
    db: AsyncSession = Depends(get_db),
):
    removed = await catalog.remove_entity(db, context, entity_id)
    return {"removed": removed}


@router.get("/{entity_id}/relations/{kind}", response_model=list[EntityOut])
async def list_related(
    entity_id: str,
    kind: EntityKind,
    db: AsyncSession = Depends(get_db),
):
    return [EntityOut.from_entity(e) for e in await catalog.get_related(db, entity_id, kind)]


@router.put("/{entity_id}/relations/{kind}", response_model=list[CrossReferenceOut])
async def replace_relation(
    entity_id: str,
    kind: EntityKind,
    body: RelationUpdate,
    context: SearchContext = Depends(get_search_context),
    db: AsyncSession = Depends(get_db),
):
    """Replace every `kind` target of the entity (e.g. a marker's labels)."""
    edges = await catalog.set_relation(db, context, entity_id, kind, body.ids)
    return [CrossReferenceOut.model_validate(e) for e in edges]
