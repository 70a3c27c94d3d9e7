"""Read path: translate a query, run it on the engine, hydrate the hits."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.refs import EntityKind
from catalog.search.context import SearchContext
from catalog.search.documents import get_definition
from catalog.search.protocol import SearchResults
from catalog.search.query import SearchQuery, translate
from catalog.services import entities

logger = structlog.get_logger()


async def search_items(
    context: SearchContext,
    kind: EntityKind | str,
    options: SearchQuery,
    shuffle_seed: str = "default",
) -> SearchResults:
    definition = get_definition(kind)
    logger.info("search", collection=definition.collection, query=options.query)

    translated = translate(
        options,
        definition,
        shuffle_seed=shuffle_seed,
        include_mode=context.include_mode,
        page_size=context.page_size,
    )
    return await context.index_for(definition.kind).search(
        query=translated.query,
        filter=translated.filter,
        sort=translated.sort,
        skip=translated.skip,
        take=translated.take,
    )


async def hydrate(db: AsyncSession, kind: EntityKind | str, ids: list[str]) -> list:
    """Load the entities behind search hits, in ranked order.

    The index may briefly lag behind the store; ids no longer stored are dropped.
    """
    definition = get_definition(kind)
    rows = await entities.get_many(db, definition.model, ids)
    if len(rows) < len(ids):
        logger.warning("search_hits_missing", collection=definition.collection, missing=len(ids) - len(rows))
    return rows
