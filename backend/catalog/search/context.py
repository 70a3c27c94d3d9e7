"""Search context: the application's handle on the index engine.

Created once by the composition root (FastAPI lifespan, Celery task), opened
before use and closed at shutdown. Holds one index handle per indexed kind.
"""

import structlog

from catalog.config import Settings
from catalog.refs import EntityKind
from catalog.search.documents import INDEX_DEFINITIONS
from catalog.search.http_engine import HttpIndexEngine
from catalog.search.memory_engine import MemoryIndexEngine
from catalog.search.protocol import IndexEngine, SearchIndex

logger = structlog.get_logger()


def create_index_engine(settings: Settings) -> IndexEngine:
    if settings.INDEX_BACKEND == "memory":
        return MemoryIndexEngine()
    if settings.INDEX_BACKEND == "http":
        return HttpIndexEngine(settings.INDEX_ENGINE_URL, timeout=settings.INDEX_ENGINE_TIMEOUT)
    raise ValueError(f"Unknown INDEX_BACKEND '{settings.INDEX_BACKEND}' (expected 'http' or 'memory')")


class SearchContext:
    def __init__(
        self,
        engine: IndexEngine,
        slice_size: int = 5000,
        flush_attempts: int = 3,
        page_size: int = 24,
        include_mode: str = "all",
        clear_on_rebuild: bool = False,
    ):
        self.engine = engine
        self.slice_size = slice_size
        self.flush_attempts = flush_attempts
        self.page_size = page_size
        self.include_mode = include_mode
        self.clear_on_rebuild = clear_on_rebuild
        self.indexes: dict[EntityKind, SearchIndex] = {}

    @classmethod
    def from_settings(cls, settings: Settings, engine: IndexEngine | None = None) -> "SearchContext":
        return cls(
            engine or create_index_engine(settings),
            slice_size=settings.INDEX_SLICE_SIZE,
            flush_attempts=settings.INDEX_FLUSH_ATTEMPTS,
            page_size=settings.DEFAULT_PAGE_SIZE,
            include_mode=settings.SEARCH_INCLUDE_MODE,
            clear_on_rebuild=settings.INDEX_CLEAR_ON_REBUILD,
        )

    async def open(self) -> "SearchContext":
        for kind, definition in INDEX_DEFINITIONS.items():
            self.indexes[kind] = await self.engine.create_index(definition.collection, definition.fields)
        logger.info("search_context_opened", collections=[i.name for i in self.indexes.values()])
        return self

    async def close(self) -> None:
        self.indexes.clear()
        await self.engine.close()
        logger.info("search_context_closed")

    def index_for(self, kind: EntityKind) -> SearchIndex:
        try:
            return self.indexes[kind]
        except KeyError:
            raise RuntimeError(f"No open index for '{kind}'; call SearchContext.open() first") from None

    async def __aenter__(self) -> "SearchContext":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()
