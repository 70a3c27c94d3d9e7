"""SQLAlchemy models - import all for Alembic auto-detection."""

from catalog.database import Base
from catalog.models.cross_reference import CrossReference
from catalog.models.library import Actor, Label, Studio
from catalog.models.media import Image, Marker, Scene
from catalog.refs import EntityKind

MODELS = {
    EntityKind.ACTOR: Actor,
    EntityKind.LABEL: Label,
    EntityKind.STUDIO: Studio,
    EntityKind.SCENE: Scene,
    EntityKind.MARKER: Marker,
    EntityKind.IMAGE: Image,
}

__all__ = [
    "Base",
    "CrossReference",
    "Actor", "Label", "Studio",
    "Scene", "Marker", "Image",
    "MODELS",
]
