"""Translate structured search queries into the index engine's filter tree and sort options.

Every active filter adds one child to a top-level AND group; inactive filters
add nothing. All validation happens here, before the engine is called.
"""

from typing import Literal, NamedTuple

from pydantic import BaseModel

from catalog.errors import InvalidEntityRef, InvalidFilter, InvalidSortKey
from catalog.refs import EntityRef
from catalog.search.documents import IndexDefinition, ReferenceField
from catalog.search.pagination import build_pagination
from catalog.search.protocol import (
    SHUFFLE,
    FilterCondition,
    FilterGroup,
    FilterLeaf,
    SortOptions,
)

MAX_RATING = 10

IncludeMode = Literal["all", "any"]


class SearchQuery(BaseModel):
    query: str | None = None
    favorite: bool | None = None
    bookmark: bool | None = None
    rating: int | None = None
    include: list[str] | None = None
    exclude: list[str] | None = None
    sort_by: str | None = None
    sort_dir: str | None = None
    skip: int | None = None
    take: int | None = None
    page: int | None = None


class TranslatedQuery(NamedTuple):
    query: str | None
    filter: FilterGroup
    sort: SortOptions | None
    skip: int
    take: int


def _leaf(operation: str, prop: str, type_: str, value=None) -> FilterLeaf:
    return FilterLeaf(condition=FilterCondition(operation=operation, property=prop, type=type_, value=value))


def filter_favorites(filter: FilterGroup, options: SearchQuery) -> None:
    if options.favorite:
        filter.children.append(_leaf("=", "favorite", "boolean", True))


def filter_bookmark(filter: FilterGroup, options: SearchQuery) -> None:
    if options.bookmark:
        filter.children.append(_leaf("exists", "bookmark", "number", True))


def filter_rating(filter: FilterGroup, options: SearchQuery) -> None:
    if options.rating is None:
        return
    if not 0 <= options.rating <= MAX_RATING:
        raise InvalidFilter(f"rating must be between 0 and {MAX_RATING} (got {options.rating})")
    if options.rating:
        filter.children.append(_leaf(">=", "rating", "number", options.rating))


def _membership(ref: EntityRef, definition: IndexDefinition) -> FilterLeaf:
    target: ReferenceField | None = definition.reference_fields.get(ref.kind)
    if target is None:
        raise InvalidFilter(f"{definition.collection} cannot be filtered by {ref.kind} ({ref})")
    if target.multi:
        return _leaf("contains", target.name, "array", str(ref))
    return _leaf("=", target.name, "string", str(ref))


def _parse_refs(values: list[str] | None, name: str) -> list[EntityRef]:
    try:
        return list(dict.fromkeys(EntityRef.parse(v) for v in values or []))
    except InvalidEntityRef as e:
        raise InvalidFilter(f"{name}: {e}") from None


def filter_include(
    filter: FilterGroup,
    options: SearchQuery,
    definition: IndexDefinition,
    mode: IncludeMode = "all",
) -> None:
    refs = _parse_refs(options.include, "include")
    if refs:
        filter.children.append(
            FilterGroup(
                type="AND" if mode == "all" else "OR",
                children=[_membership(ref, definition) for ref in refs],
            )
        )


def filter_exclude(filter: FilterGroup, options: SearchQuery, definition: IndexDefinition) -> None:
    refs = _parse_refs(options.exclude, "exclude")
    if refs:
        filter.children.append(
            FilterGroup(
                type="AND",
                children=[FilterGroup(type="NOT", children=[_membership(ref, definition)]) for ref in refs],
            )
        )


def build_filter(options: SearchQuery, definition: IndexDefinition, include_mode: IncludeMode = "all") -> FilterGroup:
    overlap = set(options.include or []) & set(options.exclude or [])
    if overlap:
        raise InvalidFilter(f"ids both included and excluded: {', '.join(sorted(overlap))}")

    filter = FilterGroup(type="AND", children=[])
    filter_favorites(filter, options)
    filter_bookmark(filter, options)
    filter_rating(filter, options)
    filter_include(filter, options, definition, include_mode)
    filter_exclude(filter, options, definition)
    return filter


def build_sort(options: SearchQuery, definition: IndexDefinition, shuffle_seed: str = "default") -> SortOptions | None:
    if not options.sort_by:
        return None

    if options.sort_by == SHUFFLE:
        return SortOptions(sort_by=SHUFFLE, sort_asc=False, sort_type=shuffle_seed)

    sort_type = definition.sort_types.get(options.sort_by)
    if sort_type is None:
        raise InvalidSortKey(options.sort_by, [*definition.sort_types, SHUFFLE])

    direction = (options.sort_dir or "desc").lower()
    if direction not in ("asc", "desc"):
        raise InvalidFilter(f"sort_dir must be 'asc' or 'desc' (got {options.sort_dir!r})")

    return SortOptions(sort_by=options.sort_by, sort_asc=direction == "asc", sort_type=sort_type)


def translate(
    options: SearchQuery,
    definition: IndexDefinition,
    shuffle_seed: str = "default",
    include_mode: IncludeMode = "all",
    page_size: int = 24,
) -> TranslatedQuery:
    filter = build_filter(options, definition, include_mode)
    sort = build_sort(options, definition, shuffle_seed)
    skip, take = build_pagination(options.take, options.skip, options.page, page_size)
    return TranslatedQuery(query=options.query, filter=filter, sort=sort, skip=skip, take=take)
