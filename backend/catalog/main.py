"""FastAPI application entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from catalog.api import api_router
from catalog.config import get_settings
from catalog.database import engine
from catalog.middleware.error_handler import register_error_handlers
from catalog.middleware.observability import ObservabilityMiddleware, configure_logging
from catalog.models import Base
from catalog.search.context import SearchContext

settings = get_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("startup", environment=settings.ENVIRONMENT, index_backend=settings.INDEX_BACKEND)

    # Create tables (in production, use alembic migrate instead)
    if settings.ENVIRONMENT == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    search = SearchContext.from_settings(settings)
    await search.open()
    app.state.search = search

    yield

    # Shutdown
    await search.close()
    await engine.dispose()
    logger.info("shutdown")


app = FastAPI(
    title="Catalog Index API",
    description="Media catalog search - cross references, index synchronization and structured queries",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS
origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

register_error_handlers(app)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}


def run():
    """Serve the API with uvicorn (``catalog-api`` console script)."""
    import uvicorn

    uvicorn.run("catalog.main:app", host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    run()
