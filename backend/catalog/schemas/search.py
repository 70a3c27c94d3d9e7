"""Search, indexing and relation schemas."""

from typing import Any

from pydantic import BaseModel, Field

from catalog.search.query import SearchQuery


class SearchRequest(SearchQuery):
    seed: str = "default"  # shuffle seed, keep it stable while paging


class SearchHit(BaseModel):
    id: str
    name: str
    added_on: int
    rating: int | None = None
    favorite: bool | None = None
    bookmark: int | None = None

    model_config = {"from_attributes": True}


class SearchResponse(BaseModel):
    items: list[SearchHit]
    total: int
    num_pages: int
    took_ms: float


class RebuildResponse(BaseModel):
    collection: str
    status: str
    indexed: int | None = None
    task_id: str | None = None


class RelationUpdate(BaseModel):
    ids: list[str] = Field(default_factory=list)


class CrossReferenceOut(BaseModel):
    id: str
    from_id: str
    to_id: str

    model_config = {"from_attributes": True}


class EntityPatch(BaseModel):
    """Partial update; only the fields present in the body are written."""

    name: str | None = None
    aliases: list[str] | None = None
    rating: int | None = Field(default=None, ge=0, le=10)
    favorite: bool | None = None
    bookmark: int | None = None
    scene: str | None = None
    studio: str | None = None
    time: float | None = None
    path: str | None = None
    release_date: int | None = None
    duration: float | None = None
    size: int | None = None
    born_on: int | None = None
    nationality: str | None = None
    custom_fields: dict[str, Any] | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class EntityOut(BaseModel):
    id: str
    name: str
    fields: dict[str, Any]

    @classmethod
    def from_entity(cls, entity) -> "EntityOut":
        columns = entity.__table__.columns.keys()
        return cls(id=entity.id, name=entity.name, fields={c: getattr(entity, c) for c in columns})
