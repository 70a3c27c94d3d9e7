"""Index synchronization: bulk builds, incremental updates and relation fan-out."""

import asyncio
import time
from collections import defaultdict
from collections.abc import AsyncIterable, Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from catalog.errors import BulkIndexError, IndexBuildCancelled, IndexEngineError, IndexEngineUnavailable
from catalog.models import Image, Marker, Scene
from catalog.refs import EntityKind, EntityRef
from catalog.search.context import SearchContext
from catalog.search.documents import INDEX_DEFINITIONS, IndexDefinition, get_definition
from catalog.search.protocol import Document, SearchIndex
from catalog.services import cross_references, entities

logger = structlog.get_logger()

FLUSH_WAIT = wait_exponential(min=1, max=10)


async def _aiter(items: Iterable | AsyncIterable):
    if isinstance(items, AsyncIterable):
        async for item in items:
            yield item
    else:
        for item in items:
            yield item


async def _flush(index: SearchIndex, docs: list[Document], attempts: int) -> None:
    logger.info("index_flush_start", collection=index.name, count=len(docs))
    start = time.monotonic()
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=FLUSH_WAIT,
        retry=retry_if_exception_type(IndexEngineUnavailable),
        reraise=True,
    ):
        with attempt:
            await index.index(docs)
    logger.info("index_flush_done", collection=index.name, count=len(docs), seconds=round(time.monotonic() - start, 3))


async def index_items(
    db: AsyncSession,
    index: SearchIndex,
    definition: IndexDefinition,
    items: Iterable | AsyncIterable,
    slice_size: int = 5000,
    cancel: asyncio.Event | None = None,
    flush_attempts: int = 3,
) -> int:
    """Build documents for ``items`` and index them in slices; returns the count indexed."""
    docs: list[Document] = []
    num_items = 0

    async def flush() -> None:
        nonlocal docs, num_items
        if cancel is not None and cancel.is_set():
            logger.warning("index_build_cancelled", collection=index.name, indexed=num_items)
            raise IndexBuildCancelled(index.name, num_items)
        try:
            await _flush(index, docs, flush_attempts)
        except IndexEngineError as e:
            logger.error("index_flush_failed", collection=index.name, indexed=num_items, error=str(e))
            raise BulkIndexError(index.name, num_items, e) from e
        num_items += len(docs)
        docs = []

    async for item in _aiter(items):
        doc = await definition.builder(db, item)
        docs.append(doc.to_document())
        if len(docs) >= slice_size:
            await flush()

    if docs:
        await flush()
    return num_items


async def build_index(
    db: AsyncSession,
    context: SearchContext,
    kind: EntityKind,
    cancel: asyncio.Event | None = None,
) -> int:
    """Rebuild one collection from every entity of ``kind`` in the store."""
    definition = get_definition(kind)
    index = context.index_for(definition.kind)

    logger.info("index_build_start", collection=index.name)
    start = time.monotonic()
    if context.clear_on_rebuild:
        await index.clear()

    count = await index_items(
        db,
        index,
        definition,
        entities.iter_all(db, definition.model, chunk_size=context.slice_size),
        slice_size=context.slice_size,
        cancel=cancel,
        flush_attempts=context.flush_attempts,
    )
    logger.info("index_build_done", collection=index.name, size=count, seconds=round(time.monotonic() - start, 3))
    return count


async def update_items(db: AsyncSession, index: SearchIndex, definition: IndexDefinition, items: Iterable) -> int:
    """Rebuild and upsert the documents of already-mutated entities."""
    docs = [(await definition.builder(db, item)).to_document() for item in items]
    if not docs:
        return 0
    start = time.monotonic()
    await index.update(docs)
    logger.info("index_update_done", collection=index.name, count=len(docs), seconds=round(time.monotonic() - start, 3))
    return len(docs)


async def remove_items(index: SearchIndex, ids: list[str]) -> None:
    if ids:
        await index.delete(ids)
        logger.info("index_delete_done", collection=index.name, count=len(ids))


async def collect_dependents(db: AsyncSession, ref: EntityRef) -> dict[EntityKind, set[str]]:
    """Ids of every indexed document that reads ``ref``, including its own."""
    deps: dict[EntityKind, set[str]] = defaultdict(set)
    if ref.kind in INDEX_DEFINITIONS:
        deps[ref.kind].add(str(ref))

    if ref.kind == EntityKind.LABEL:
        for edge in await cross_references.get_by_target(db, ref):
            if edge.from_kind in INDEX_DEFINITIONS:
                deps[edge.from_kind].add(edge.from_id)

    elif ref.kind == EntityKind.ACTOR:
        scene_ids = {str(s) for s in await cross_references.get_sources(db, ref, EntityKind.SCENE)}
        deps[EntityKind.SCENE] |= scene_ids
        deps[EntityKind.IMAGE] |= {str(i) for i in await cross_references.get_sources(db, ref, EntityKind.IMAGE)}
        if scene_ids:
            markers = await entities.find(db, Marker, Marker.scene.in_(scene_ids))
            deps[EntityKind.MARKER] |= {m.id for m in markers}

    elif ref.kind == EntityKind.SCENE:
        deps[EntityKind.MARKER] |= {m.id for m in await entities.find(db, Marker, Marker.scene == str(ref))}
        deps[EntityKind.IMAGE] |= {i.id for i in await entities.find(db, Image, Image.scene == str(ref))}

    elif ref.kind == EntityKind.STUDIO:
        deps[EntityKind.SCENE] |= {s.id for s in await entities.find(db, Scene, Scene.studio == str(ref))}

    return {kind: ids for kind, ids in deps.items() if ids}


async def update_dependents(
    db: AsyncSession,
    context: SearchContext,
    ref: EntityRef,
    exclude: Iterable[str] = (),
) -> dict[EntityKind, int]:
    """Re-index ``ref`` and everything that denormalizes it; returns counts per kind."""
    counts = await reindex_ids(db, context, await collect_dependents(db, ref), exclude)
    logger.info("dependents_reindexed", source=str(ref), counts={str(k): v for k, v in counts.items()})
    return counts


async def reindex_ids(
    db: AsyncSession,
    context: SearchContext,
    ids_by_kind: dict[EntityKind, set[str]],
    exclude: Iterable[str] = (),
) -> dict[EntityKind, int]:
    skipped = set(exclude)
    counts: dict[EntityKind, int] = {}
    for kind, ids in ids_by_kind.items():
        definition = INDEX_DEFINITIONS[kind]
        rows = await entities.get_many(db, definition.model, sorted(set(ids) - skipped))
        counts[kind] = await update_items(db, context.index_for(kind), definition, rows)
    return counts
