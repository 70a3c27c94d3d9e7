"""
Integration tests for catalog mutations (backend/catalog/services/catalog.py).

Each mutation must leave the stores and the memory index consistent.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from catalog.errors import EntityNotFound, InvalidEntityRef, InvalidUpdate  # noqa: E402
from catalog.refs import EntityKind, new_id  # noqa: E402
from catalog.search import sync  # noqa: E402
from catalog.services import catalog, cross_references, entities  # noqa: E402
from tests.helpers import Actor, DatabaseTestCase, Image, Label, Marker, Scene, make  # noqa: E402


class TestInsertAndPatch(DatabaseTestCase):

    async def test_insert_indexes_document(self):
        scene = make(Scene, name="Holiday")
        await catalog.insert_entity(self.db, self.search, scene)
        self.assertEqual(self.docs(EntityKind.SCENE)[scene.id]["name"], "Holiday")

    async def test_insert_unindexed_kind(self):
        label = make(Label, name="Beach")
        await catalog.insert_entity(self.db, self.search, label)
        self.assertIsNotNone(await entities.get_by_ref(self.db, label.ref))

    async def test_patch_updates_document(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        await catalog.insert_entity(self.db, self.search, marker)

        patched = await catalog.patch_entity(self.db, self.search, marker.id, {"rating": 7, "time": 12.6})

        self.assertEqual(patched.rating, 7)
        self.assertEqual(patched.time, 13)
        self.assertEqual(self.docs(EntityKind.MARKER)[marker.id]["rating"], 7)

    async def test_patch_time_rounds_half_up(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        await catalog.insert_entity(self.db, self.search, marker)

        for given, stored in ((2.5, 3), (3.5, 4), (2.4, 2)):
            with self.subTest(time=given):
                patched = await catalog.patch_entity(self.db, self.search, marker.id, {"time": given})
                self.assertEqual(patched.time, stored)

    def test_new_marker_time_rounds_half_up(self):
        self.assertEqual(make(Marker, name="m", scene="sc_gone", time=0.5).time, 1)

    async def test_patch_rejects_clearing_required_column(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        await catalog.insert_entity(self.db, self.search, marker)

        with self.assertRaises(InvalidUpdate):
            await catalog.patch_entity(self.db, self.search, marker.id, {"scene": None})
        self.assertEqual((await entities.get_by_ref(self.db, marker.ref)).scene, "sc_gone")

    async def test_patch_scene_rename_reaches_markers(self):
        scene = make(Scene, name="Holiday")
        marker = make(Marker, name="Opening", scene=scene.id)
        await catalog.insert_entity(self.db, self.search, scene)
        await catalog.insert_entity(self.db, self.search, marker)

        await catalog.patch_entity(self.db, self.search, scene.ref, {"name": "Vacation"})

        self.assertEqual(self.docs(EntityKind.MARKER)[marker.id]["scene_name"], "Vacation")

    async def test_patch_rejects_unknown_and_read_only_fields(self):
        label = make(Label, name="Beach")
        await self.save(label)
        for values in ({"colour": "red"}, {"id": "la_other"}, {"rating": 3}):
            with self.subTest(values=values):
                with self.assertRaises(InvalidUpdate):
                    await catalog.patch_entity(self.db, self.search, label.ref, values)

    async def test_patch_missing_entity(self):
        with self.assertRaises(EntityNotFound):
            await catalog.patch_entity(self.db, self.search, new_id(EntityKind.SCENE), {"name": "x"})


class TestSetRelation(DatabaseTestCase):

    async def test_marker_labels(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        a, b = make(Label, name="A"), make(Label, name="B")
        await self.save(marker, a, b)

        edges = await catalog.set_relation(self.db, self.search, marker.ref, EntityKind.LABEL, [a.id, a.id, b.id])

        self.assertEqual([e.to_id for e in edges], [a.id, b.id])
        self.assertEqual(sorted(self.docs(EntityKind.MARKER)[marker.id]["labels"]), sorted([a.id, b.id]))

    async def test_scene_actors_update_actor_counts(self):
        scene = make(Scene, name="Holiday")
        alice, bob = make(Actor, name="Alice"), make(Actor, name="Bob")
        await self.save(scene, alice, bob)

        await catalog.set_relation(self.db, self.search, scene.ref, EntityKind.ACTOR, [alice.id])
        self.assertEqual(self.docs(EntityKind.ACTOR)[alice.id]["num_scenes"], 1)

        await catalog.set_relation(self.db, self.search, scene.ref, EntityKind.ACTOR, [bob.id])
        actors = self.docs(EntityKind.ACTOR)
        self.assertEqual(actors[alice.id]["num_scenes"], 0)
        self.assertEqual(actors[bob.id]["num_scenes"], 1)
        self.assertEqual(self.docs(EntityKind.SCENE)[scene.id]["actor_names"], ["Bob"])

    async def test_scene_actors_reach_markers(self):
        scene = make(Scene, name="Holiday")
        marker = make(Marker, name="Opening", scene=scene.id)
        alice = make(Actor, name="Alice")
        await self.save(scene, marker, alice)

        await catalog.set_relation(self.db, self.search, scene.ref, EntityKind.ACTOR, [alice.id])
        self.assertEqual(self.docs(EntityKind.MARKER)[marker.id]["actors"], [alice.id])

    async def test_wrong_kind(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        await self.save(marker)
        with self.assertRaises(InvalidEntityRef):
            await catalog.set_relation(self.db, self.search, marker.ref, EntityKind.LABEL, [new_id(EntityKind.ACTOR)])

    async def test_get_related(self):
        marker = make(Marker, name="Opening", scene="sc_gone")
        label = make(Label, name="A")
        await self.save(marker, label)
        await catalog.set_relation(self.db, self.search, marker.ref, EntityKind.LABEL, [label.id])

        related = await catalog.get_related(self.db, marker.id, EntityKind.LABEL)
        self.assertEqual([e.id for e in related], [label.id])


class TestRemoveEntity(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.label = make(Label, name="Beach")
        self.actor = make(Actor, name="Alice")
        self.scene = make(Scene, name="Holiday")
        self.markers = [make(Marker, name=f"m{i}", scene=self.scene.id) for i in range(2)]
        self.image = make(Image, name="Still", scene=self.scene.id)
        await self.save(self.label, self.actor, self.scene, *self.markers, self.image)

        await cross_references.replace_relation(self.db, self.scene.ref, EntityKind.ACTOR, [self.actor.ref])
        for item in [self.scene, self.image, *self.markers]:
            await cross_references.add(self.db, item.ref, self.label.ref)
        for kind in (EntityKind.MARKER, EntityKind.SCENE, EntityKind.IMAGE, EntityKind.ACTOR):
            await sync.build_index(self.db, self.search, kind)

    async def test_remove_scene_cascades_to_markers(self):
        removed = await catalog.remove_entity(self.db, self.search, self.scene.ref)

        self.assertEqual(set(removed), {self.scene.id, *(m.id for m in self.markers)})
        self.assertNotIn(self.scene.id, self.docs(EntityKind.SCENE))
        self.assertEqual(self.docs(EntityKind.MARKER), {})
        self.assertIsNone(await entities.get_by_ref(self.db, self.markers[0].ref))

        # the image stays, with its scene reference now dangling
        self.assertEqual(self.docs(EntityKind.IMAGE)[self.image.id]["scene"], "")
        # the actor loses the scene from its count
        self.assertEqual(self.docs(EntityKind.ACTOR)[self.actor.id]["num_scenes"], 0)
        self.assertEqual(await cross_references.get_sources(self.db, self.label.ref, EntityKind.SCENE), [])

    async def test_remove_label_cleans_documents(self):
        await catalog.remove_entity(self.db, self.search, self.label.ref)

        for marker in self.markers:
            self.assertEqual(self.docs(EntityKind.MARKER)[marker.id]["labels"], [])
        self.assertEqual(self.docs(EntityKind.SCENE)[self.scene.id]["label_names"], [])
        self.assertEqual(await cross_references.get_by_target(self.db, self.label.ref), [])

    async def test_remove_actor(self):
        removed = await catalog.remove_entity(self.db, self.search, self.actor.ref)

        self.assertEqual(removed, [self.actor.id])
        self.assertNotIn(self.actor.id, self.docs(EntityKind.ACTOR))
        self.assertEqual(self.docs(EntityKind.SCENE)[self.scene.id]["actors"], [])
        self.assertEqual(self.docs(EntityKind.MARKER)[self.markers[0].id]["actor_names"], [])

    async def test_remove_missing(self):
        with self.assertRaises(EntityNotFound):
            await catalog.remove_entity(self.db, self.search, new_id(EntityKind.IMAGE))


class TestRemoveCustomField(DatabaseTestCase):

    async def test_field_dropped_from_every_marker(self):
        markers = [
            make(Marker, name="a", scene="sc_gone", custom_fields={"cf_1": "x", "cf_2": 1}),
            make(Marker, name="b", scene="sc_gone", custom_fields={"cf_1": "y"}),
            make(Marker, name="c", scene="sc_gone", custom_fields={"cf_2": 2}),
        ]
        await self.save(*markers)

        changed = await catalog.remove_custom_field(self.db, "cf_1")

        self.assertEqual(changed, 2)
        stored = {m.name: m.custom_fields for m in await entities.find(self.db, Marker)}
        self.assertEqual(stored, {"a": {"cf_2": 1}, "b": {}, "c": {"cf_2": 2}})

    async def test_unknown_field_changes_nothing(self):
        await self.save(make(Marker, name="a", scene="sc_gone", custom_fields={"cf_1": "x"}))
        self.assertEqual(await catalog.remove_custom_field(self.db, "cf_9"), 0)


if __name__ == '__main__':
    unittest.main()
