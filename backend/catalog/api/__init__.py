"""API route registration."""

from fastapi import APIRouter

from catalog.config import get_settings
from catalog.api.entities import router as entities_router
from catalog.api.indexing import router as indexing_router
from catalog.api.search import router as search_router

api_router = APIRouter(prefix=get_settings().API_V1_PREFIX)
api_router.include_router(search_router)
api_router.include_router(indexing_router)
api_router.include_router(entities_router)
