"""FastAPI dependency injection."""

from fastapi import Request

from catalog.search.context import SearchContext


def get_search_context(request: Request) -> SearchContext:
    """The SearchContext opened by the application lifespan."""
    return request.app.state.search
