"""Index engine contract: filter trees, sort options, results and index handles."""

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

SHUFFLE = "$shuffle"


class FilterCondition(BaseModel):
    operation: Literal["=", ">=", "<=", "contains", "exists"]
    property: str
    type: Literal["boolean", "number", "string", "array", "null"]
    value: Any = None


class FilterLeaf(BaseModel):
    condition: FilterCondition


class FilterGroup(BaseModel):
    type: Literal["AND", "OR", "NOT"]
    children: list["FilterGroup | FilterLeaf"] = Field(default_factory=list)


FilterGroup.model_rebuild()

FilterTree = FilterGroup | FilterLeaf


class SortOptions(BaseModel):
    sort_by: str
    sort_asc: bool = False
    # 'number' / 'string' for field sorts, the seed for SHUFFLE
    sort_type: str


class SearchResults(BaseModel):
    items: list[str]
    total: int
    num_pages: int = 0


Document = dict[str, Any]


class SearchIndex(ABC):
    """Handle on one named document collection."""

    def __init__(self, name: str, fields: list[str]):
        self.name = name
        self.fields = list(fields)

    @abstractmethod
    async def index(self, docs: list[Document]) -> int:
        """Insert or replace documents; returns how many were written."""

    @abstractmethod
    async def update(self, docs: list[Document]) -> None:
        """Upsert documents by ``_id``."""

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    @abstractmethod
    async def search(
        self,
        query: str | None = None,
        filter: FilterTree | None = None,
        sort: SortOptions | None = None,
        skip: int = 0,
        take: int = 24,
    ) -> SearchResults:
        ...


class IndexEngine(ABC):
    @abstractmethod
    async def create_index(self, name: str, fields: list[str]) -> SearchIndex:
        ...

    async def close(self) -> None:
        pass
