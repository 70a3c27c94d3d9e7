"""Indexing management endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import get_db
from catalog.dependencies import get_search_context
from catalog.refs import EntityKind
from catalog.schemas.search import RebuildResponse
from catalog.search.context import SearchContext
from catalog.search.documents import get_definition
from catalog.search.sync import build_index

router = APIRouter(prefix="/indexing", tags=["indexing"])


@router.post("/{kind}/rebuild", response_model=RebuildResponse)
async def rebuild(
    kind: EntityKind,
    background: bool = Query(default=True),
    context: SearchContext = Depends(get_search_context),
    db: AsyncSession = Depends(get_db),
):
    """Rebuild one collection from the entity store, in a worker or inline."""
    definition = get_definition(kind)

    if background:
        from worker.tasks.indexing import rebuild_index

        result = rebuild_index.delay(str(definition.kind))
        return RebuildResponse(collection=definition.collection, status="dispatched", task_id=result.id)

    count = await build_index(db, context, definition.kind)
    return RebuildResponse(collection=definition.collection, status="completed", indexed=count)
