"""
Shared test fixtures: an in-memory SQLite database and an opened in-memory search context.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from catalog.models import Actor, Base, Image, Label, Marker, Scene, Studio  # noqa: E402
from catalog.refs import new_id  # noqa: E402
from catalog.search.context import SearchContext  # noqa: E402
from catalog.search.memory_engine import MemoryIndexEngine  # noqa: E402


def make(model, **fields):
    """Build an unsaved entity with its id assigned up front."""
    fields.setdefault("id", new_id(model.kind))
    fields.setdefault("name", model.__name__.lower())
    if model is Marker:
        fields.setdefault("time", 0)
    return model(**fields)


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh schema, session and memory-backed SearchContext per test."""

    slice_size = 5000

    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self.db = self.session_factory()
        self.search = await SearchContext(MemoryIndexEngine(), slice_size=self.slice_size).open()

    async def asyncTearDown(self):
        await self.db.close()
        await self.search.close()
        await self.engine.dispose()

    async def save(self, *items):
        self.db.add_all(items)
        await self.db.commit()
        return items[0] if len(items) == 1 else items

    def docs(self, kind) -> dict:
        return self.search.index_for(kind).docs


__all__ = [
    "DatabaseTestCase", "make",
    "Actor", "Image", "Label", "Marker", "Scene", "Studio",
]
