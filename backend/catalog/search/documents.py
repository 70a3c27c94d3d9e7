"""Search documents and the per-kind builders that produce them.

A search document is a flat projection of one entity plus the names and ids of
the entities it is related to, so the index engine can match and filter on
them without joins. Builders never fail on missing related data: a reference
whose target is gone simply contributes nothing.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import InvalidEntityRef, InvalidFilter
from catalog.models import MODELS, Actor, Image, Marker, Scene, Studio
from catalog.refs import EntityKind, EntityRef
from catalog.services import cross_references, entities

logger = structlog.get_logger()


class SearchDoc(BaseModel):
    id: str = Field(serialization_alias="_id")
    added_on: int
    name: str
    rating: int = 0
    bookmark: int | None = None
    favorite: bool = False

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MarkerSearchDoc(SearchDoc):
    actors: list[str] = []
    actor_names: list[str] = []
    labels: list[str] = []
    label_names: list[str] = []
    scene: str = ""
    scene_name: str = ""


class SceneSearchDoc(SearchDoc):
    actors: list[str] = []
    actor_names: list[str] = []
    labels: list[str] = []
    label_names: list[str] = []
    studio: str = ""
    studio_name: str = ""
    release_date: int | None = None
    duration: float | None = None
    size: int | None = None


class ImageSearchDoc(SearchDoc):
    actors: list[str] = []
    actor_names: list[str] = []
    labels: list[str] = []
    label_names: list[str] = []
    scene: str = ""
    scene_name: str = ""


class ActorSearchDoc(SearchDoc):
    aliases: list[str] = []
    labels: list[str] = []
    label_names: list[str] = []
    born_on: int | None = None
    nationality: str | None = None
    num_scenes: int = 0


def _names(items) -> list[str]:
    """Display names plus aliases, for text matching."""
    return [name for item in items for name in [item.name, *(getattr(item, "aliases", None) or [])]]


async def _direct(db: AsyncSession, model, entity_id: str | None, source: str):
    """Follow a direct id column; a dangling id yields ``None``."""
    if not entity_id:
        return None
    entity = await db.get(model, entity_id)
    if entity is None:
        logger.warning("dangling_reference", source=source, missing=[entity_id])
    return entity


async def create_marker_search_doc(db: AsyncSession, marker: Marker) -> MarkerSearchDoc:
    labels = await entities.get_related(db, marker.ref, EntityKind.LABEL)
    scene = await _direct(db, Scene, marker.scene, source=marker.id)
    actors = await entities.get_related(db, scene.ref, EntityKind.ACTOR) if scene else []

    return MarkerSearchDoc(
        id=marker.id,
        added_on=marker.added_on,
        name=marker.name,
        actors=[a.id for a in actors],
        actor_names=_names(actors),
        labels=[l.id for l in labels],
        label_names=_names(labels),
        scene=scene.id if scene else "",
        scene_name=scene.name if scene else "",
        rating=marker.rating,
        bookmark=marker.bookmark,
        favorite=marker.favorite,
    )


async def create_scene_search_doc(db: AsyncSession, scene: Scene) -> SceneSearchDoc:
    labels = await entities.get_related(db, scene.ref, EntityKind.LABEL)
    actors = await entities.get_related(db, scene.ref, EntityKind.ACTOR)
    studio = await _direct(db, Studio, scene.studio, source=scene.id)

    return SceneSearchDoc(
        id=scene.id,
        added_on=scene.added_on,
        name=scene.name,
        actors=[a.id for a in actors],
        actor_names=_names(actors),
        labels=[l.id for l in labels],
        label_names=_names(labels),
        studio=studio.id if studio else "",
        studio_name=studio.name if studio else "",
        rating=scene.rating,
        bookmark=scene.bookmark,
        favorite=scene.favorite,
        release_date=scene.release_date,
        duration=scene.duration,
        size=scene.size,
    )


async def create_image_search_doc(db: AsyncSession, image: Image) -> ImageSearchDoc:
    labels = await entities.get_related(db, image.ref, EntityKind.LABEL)
    actors = await entities.get_related(db, image.ref, EntityKind.ACTOR)
    scene = await _direct(db, Scene, image.scene, source=image.id)

    return ImageSearchDoc(
        id=image.id,
        added_on=image.added_on,
        name=image.name,
        actors=[a.id for a in actors],
        actor_names=_names(actors),
        labels=[l.id for l in labels],
        label_names=_names(labels),
        scene=scene.id if scene else "",
        scene_name=scene.name if scene else "",
        rating=image.rating,
        bookmark=image.bookmark,
        favorite=image.favorite,
    )


async def create_actor_search_doc(db: AsyncSession, actor: Actor) -> ActorSearchDoc:
    labels = await entities.get_related(db, actor.ref, EntityKind.LABEL)
    scenes = await cross_references.get_sources(db, actor.ref, EntityKind.SCENE)

    return ActorSearchDoc(
        id=actor.id,
        added_on=actor.added_on,
        name=actor.name,
        aliases=list(actor.aliases or []),
        labels=[l.id for l in labels],
        label_names=_names(labels),
        rating=actor.rating,
        bookmark=actor.bookmark,
        favorite=actor.favorite,
        born_on=actor.born_on,
        nationality=actor.nationality,
        num_scenes=len(scenes),
    )


class ReferenceField(NamedTuple):
    name: str
    multi: bool = True


_BASE_SORT_TYPES = {
    "added_on": "number",
    "name": "string",
    "rating": "number",
    "bookmark": "number",
}


@dataclass(frozen=True)
class IndexDefinition:
    """Everything the synchronizer and translator need to know about one collection."""

    kind: EntityKind
    collection: str
    fields: list[str]
    builder: Callable[[AsyncSession, Any], Awaitable[SearchDoc]]
    sort_types: dict[str, str] = field(default_factory=lambda: dict(_BASE_SORT_TYPES))
    reference_fields: dict[EntityKind, ReferenceField] = field(default_factory=dict)

    @property
    def model(self):
        return MODELS[self.kind]


INDEX_DEFINITIONS: dict[EntityKind, IndexDefinition] = {
    EntityKind.MARKER: IndexDefinition(
        kind=EntityKind.MARKER,
        collection="markers",
        fields=["name", "label_names", "scene_name", "actors", "actor_names"],
        builder=create_marker_search_doc,
        reference_fields={
            EntityKind.LABEL: ReferenceField("labels"),
            EntityKind.ACTOR: ReferenceField("actors"),
            EntityKind.SCENE: ReferenceField("scene", multi=False),
        },
    ),
    EntityKind.SCENE: IndexDefinition(
        kind=EntityKind.SCENE,
        collection="scenes",
        fields=["name", "label_names", "actor_names", "studio_name"],
        builder=create_scene_search_doc,
        sort_types={
            **_BASE_SORT_TYPES,
            "release_date": "number",
            "duration": "number",
            "size": "number",
        },
        reference_fields={
            EntityKind.LABEL: ReferenceField("labels"),
            EntityKind.ACTOR: ReferenceField("actors"),
            EntityKind.STUDIO: ReferenceField("studio", multi=False),
        },
    ),
    EntityKind.IMAGE: IndexDefinition(
        kind=EntityKind.IMAGE,
        collection="images",
        fields=["name", "label_names", "actor_names", "scene_name"],
        builder=create_image_search_doc,
        reference_fields={
            EntityKind.LABEL: ReferenceField("labels"),
            EntityKind.ACTOR: ReferenceField("actors"),
            EntityKind.SCENE: ReferenceField("scene", multi=False),
        },
    ),
    EntityKind.ACTOR: IndexDefinition(
        kind=EntityKind.ACTOR,
        collection="actors",
        fields=["name", "aliases", "label_names"],
        builder=create_actor_search_doc,
        sort_types={
            **_BASE_SORT_TYPES,
            "born_on": "number",
            "num_scenes": "number",
        },
        reference_fields={
            EntityKind.LABEL: ReferenceField("labels"),
        },
    ),
}


def get_definition(kind: EntityKind | str) -> IndexDefinition:
    try:
        return INDEX_DEFINITIONS[EntityKind(kind)]
    except (KeyError, ValueError):
        raise InvalidFilter(f"'{kind}' is not a searchable kind") from None


async def build_search_doc(db: AsyncSession, kind: EntityKind, entity_id: str) -> SearchDoc:
    """Load one entity and build its document; raises ``EntityNotFound``."""
    definition = get_definition(kind)
    ref = EntityRef.parse(entity_id)
    if ref.kind != definition.kind:
        raise InvalidEntityRef(f"{entity_id} is not a {definition.kind}")
    entity = await entities.require(db, ref)
    return await definition.builder(db, entity)
