"""Indexing tasks - full collection rebuilds and targeted re-indexing."""

import asyncio

import structlog
from celery import shared_task

from worker.celery_app import app  # noqa: F401 - binds shared tasks to the configured app

logger = structlog.get_logger()


@shared_task(
    bind=True,
    name="worker.tasks.indexing.rebuild_index",
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def rebuild_index(self, kind: str):
    """Rebuild one search collection from the entity store."""
    from catalog.errors import BulkIndexError

    try:
        logger.info("rebuild_index_start", kind=kind)
        count = asyncio.run(_rebuild(kind))
        logger.info("rebuild_index_done", kind=kind, indexed=count)
        return {"status": "ok", "kind": kind, "indexed": count}

    except BulkIndexError as exc:
        logger.error("rebuild_index_error", kind=kind, indexed=exc.indexed, error=str(exc))
        raise self.retry(exc=exc)


@shared_task(
    bind=True,
    name="worker.tasks.indexing.reindex_entities",
    max_retries=3,
    default_retry_delay=15,
    acks_late=True,
)
def reindex_entities(self, kind: str, ids: list[str]):
    """Re-index specific entities and every document that denormalizes them."""
    from catalog.errors import IndexEngineUnavailable

    try:
        counts = asyncio.run(_reindex(ids))
        logger.info("reindex_entities_done", kind=kind, requested=len(ids), counts=counts)
        return {"status": "ok", "kind": kind, "counts": counts}

    except IndexEngineUnavailable as exc:
        logger.error("reindex_entities_error", kind=kind, error=str(exc))
        raise self.retry(exc=exc)


# ── Helper functions ──────────────────────────────────────

async def _open():
    """A private engine per task: each asyncio.run() call has its own event loop."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import NullPool

    from catalog.config import get_settings
    from catalog.search.context import SearchContext

    settings = get_settings()
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    search = await SearchContext.from_settings(settings).open()
    return engine, session_factory, search


async def _rebuild(kind: str) -> int:
    from catalog.refs import EntityKind
    from catalog.search.sync import build_index

    engine, session_factory, search = await _open()
    try:
        async with session_factory() as db:
            return await build_index(db, search, EntityKind(kind))
    finally:
        await search.close()
        await engine.dispose()


async def _reindex(ids: list[str]) -> dict[str, int]:
    from catalog.refs import EntityRef
    from catalog.search.sync import update_dependents

    engine, session_factory, search = await _open()
    totals: dict[str, int] = {}
    try:
        async with session_factory() as db:
            for entity_id in ids:
                counts = await update_dependents(db, search, EntityRef.parse(entity_id))
                for kind, count in counts.items():
                    totals[str(kind)] = totals.get(str(kind), 0) + count
    finally:
        await search.close()
        await engine.dispose()
    return totals
