"""Search endpoints - structured queries against the index engine."""

import time

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import get_db
from catalog.dependencies import get_search_context
from catalog.refs import EntityKind
from catalog.schemas.search import SearchHit, SearchRequest, SearchResponse
from catalog.search.context import SearchContext
from catalog.search.service import hydrate, search_items

router = APIRouter(prefix="/search", tags=["search"])


@router.post("/{kind}", response_model=SearchResponse)
async def search(
    kind: EntityKind,
    body: SearchRequest,
    context: SearchContext = Depends(get_search_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Search one collection.

    - `query` → full-text match on the collection's text fields
    - `favorite` / `bookmark` / `rating` / `include` / `exclude` → ANDed filters
    - `sort_by` = `$shuffle` → order is stable for a given `seed`
    """
    start = time.monotonic()
    results = await search_items(context, kind, body, shuffle_seed=body.seed)
    rows = await hydrate(db, kind, results.items)

    return SearchResponse(
        items=[SearchHit.model_validate(row) for row in rows],
        total=results.total,
        num_pages=results.num_pages,
        took_ms=round((time.monotonic() - start) * 1000, 1),
    )
