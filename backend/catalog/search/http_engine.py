"""HTTP client for the external full-text index engine."""

from typing import Any

import httpx
import structlog

from catalog.errors import IndexEngineError, IndexEngineUnavailable
from catalog.search.protocol import (
    Document,
    FilterTree,
    IndexEngine,
    SearchIndex,
    SearchResults,
    SortOptions,
)

logger = structlog.get_logger()


async def _request(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.error("index_engine_http_error", method=method, url=url, status=status, body=e.response.text[:500])
        if status >= 500:
            raise IndexEngineUnavailable(f"Index engine error ({status}) on {method} {url}") from e
        raise IndexEngineError(f"Index engine rejected {method} {url} ({status}): {e.response.text}") from e
    except httpx.RequestError as e:
        logger.error("index_engine_unreachable", method=method, url=url, error=str(e))
        raise IndexEngineUnavailable(f"Could not reach index engine at {url}: {e}") from e


class HttpIndex(SearchIndex):
    def __init__(self, client: httpx.AsyncClient, name: str, fields: list[str]):
        super().__init__(name, fields)
        self._client = client

    async def index(self, docs: list[Document]) -> int:
        await _request(self._client, "POST", f"/index/{self.name}/index", json={"items": docs})
        return len(docs)

    async def update(self, docs: list[Document]) -> None:
        await _request(self._client, "PATCH", f"/index/{self.name}/update", json={"items": docs})

    async def delete(self, ids: list[str]) -> None:
        await _request(self._client, "POST", f"/index/{self.name}/delete", json={"items": ids})

    async def clear(self) -> None:
        await _request(self._client, "DELETE", f"/index/{self.name}/clear")

    async def search(
        self,
        query: str | None = None,
        filter: FilterTree | None = None,
        sort: SortOptions | None = None,
        skip: int = 0,
        take: int = 24,
    ) -> SearchResults:
        params: dict[str, Any] = {"skip": skip, "take": take}
        if query:
            params["q"] = query
        body = {
            "filter": filter.model_dump() if filter is not None else None,
            "sort": sort.model_dump() if sort is not None else None,
        }
        response = await _request(self._client, "POST", f"/index/{self.name}/search", params=params, json=body)
        data = response.json()
        return SearchResults(
            items=data.get("items", []),
            total=data.get("num_hits", 0),
            num_pages=data.get("num_pages", 0),
        )


class HttpIndexEngine(IndexEngine):
    """Talks to the index engine's REST API; one shared connection pool."""

    def __init__(self, base_url: str, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def create_index(self, name: str, fields: list[str]) -> HttpIndex:
        await _request(self._client, "PUT", f"/index/{name}", json={"fields": fields})
        logger.info("index_created", collection=name, fields=fields, engine=self.base_url)
        return HttpIndex(self._client, name, fields)

    async def close(self) -> None:
        await self._client.aclose()
