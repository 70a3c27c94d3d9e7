"""
API tests for the search, indexing and entity routes.

Runs the FastAPI app in-process over httpx.ASGITransport with the database
dependency pointed at the test session and a memory-backed SearchContext.
"""

import sys
import os
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import httpx  # noqa: E402

from catalog.database import get_db  # noqa: E402
from catalog.main import app  # noqa: E402
from catalog.refs import EntityKind, new_id  # noqa: E402
from catalog.search import sync  # noqa: E402
from catalog.services import cross_references  # noqa: E402
from tests.helpers import DatabaseTestCase, Label, Marker, Scene, make  # noqa: E402

PREFIX = "/api/v1"


class ApiTestCase(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()

        async def override_db():
            yield self.db

        app.dependency_overrides[get_db] = override_db
        app.state.search = self.search
        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()


class TestSearchApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.scene = make(Scene, name="Holiday")
        self.beach = make(Label, name="Beach")
        self.markers = [
            make(Marker, name="Sunset", scene=self.scene.id, rating=5, favorite=True),
            make(Marker, name="Walk", scene=self.scene.id, rating=2, favorite=True),
            make(Marker, name="Dinner", scene=self.scene.id, rating=4),
        ]
        await self.save(self.scene, self.beach, *self.markers)
        await cross_references.add(self.db, self.markers[0].ref, self.beach.ref)
        await sync.build_index(self.db, self.search, EntityKind.MARKER)

    async def test_filters_combine(self):
        response = await self.client.post(f"{PREFIX}/search/marker", json={"favorite": True, "rating": 3})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 1)
        self.assertEqual([hit["id"] for hit in body["items"]], [self.markers[0].id])
        self.assertIn("took_ms", body)

    async def test_include_label(self):
        response = await self.client.post(f"{PREFIX}/search/marker", json={"include": [self.beach.id]})
        self.assertEqual([hit["name"] for hit in response.json()["items"]], ["Sunset"])

    async def test_sort_and_page(self):
        response = await self.client.post(
            f"{PREFIX}/search/marker",
            json={"sort_by": "rating", "take": 2, "page": 1},
        )
        body = response.json()
        self.assertEqual([hit["name"] for hit in body["items"]], ["Walk"])
        self.assertEqual(body["num_pages"], 2)

    async def test_invalid_sort_key(self):
        response = await self.client.post(f"{PREFIX}/search/marker", json={"sort_by": "colour"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "InvalidSortKey")
        self.assertIn("$shuffle", body["allowed"])

    async def test_unindexed_kind(self):
        response = await self.client.post(f"{PREFIX}/search/label", json={})
        self.assertEqual(response.status_code, 400)

    async def test_unknown_kind_is_validation_error(self):
        response = await self.client.post(f"{PREFIX}/search/widgets", json={})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["detail"], "Validation error")

    async def test_request_id_header(self):
        response = await self.client.post(f"{PREFIX}/search/marker", json={}, headers={"X-Request-ID": "abc"})
        self.assertEqual(response.headers["X-Request-ID"], "abc")


class TestEntityApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.scene = make(Scene, name="Holiday")
        self.marker = make(Marker, name="Opening", scene=self.scene.id)
        self.label = make(Label, name="Beach")
        await self.save(self.scene, self.marker, self.label)

    async def test_replace_relation(self):
        response = await self.client.put(
            f"{PREFIX}/entities/{self.marker.id}/relations/label",
            json={"ids": [self.label.id, self.label.id]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([edge["to_id"] for edge in response.json()], [self.label.id])
        self.assertEqual(self.docs(EntityKind.MARKER)[self.marker.id]["label_names"], ["Beach"])

        response = await self.client.get(f"{PREFIX}/entities/{self.marker.id}/relations/label")
        self.assertEqual([e["name"] for e in response.json()], ["Beach"])

    async def test_patch(self):
        response = await self.client.patch(f"{PREFIX}/entities/{self.marker.id}", json={"rating": 6})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["fields"]["rating"], 6)
        self.assertEqual(self.docs(EntityKind.MARKER)[self.marker.id]["rating"], 6)

    async def test_patch_out_of_range(self):
        response = await self.client.patch(f"{PREFIX}/entities/{self.marker.id}", json={"rating": 11})
        self.assertEqual(response.status_code, 422)

    async def test_patch_null_on_required_field(self):
        for body in ({"name": None}, {"time": None}, {"custom_fields": None}):
            with self.subTest(body=body):
                response = await self.client.patch(f"{PREFIX}/entities/{self.marker.id}", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "InvalidUpdate")
        self.assertEqual(self.docs(EntityKind.MARKER), {})

    async def test_patch_null_on_optional_field(self):
        response = await self.client.patch(f"{PREFIX}/entities/{self.marker.id}", json={"bookmark": None})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["fields"]["bookmark"])

    async def test_patch_field_of_other_kind(self):
        response = await self.client.patch(f"{PREFIX}/entities/{self.label.id}", json={"rating": 3})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidUpdate")

    async def test_delete(self):
        response = await self.client.delete(f"{PREFIX}/entities/{self.scene.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(set(response.json()["removed"]), {self.scene.id, self.marker.id})

    async def test_delete_missing(self):
        response = await self.client.delete(f"{PREFIX}/entities/{new_id(EntityKind.SCENE)}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "EntityNotFound")

    async def test_malformed_id(self):
        response = await self.client.delete(f"{PREFIX}/entities/garbage")
        self.assertEqual(response.status_code, 400)


class TestIndexingApi(ApiTestCase):

    async def test_inline_rebuild(self):
        await self.save(make(Scene, name="a"), make(Scene, name="b"))
        response = await self.client.post(f"{PREFIX}/indexing/scene/rebuild", params={"background": "false"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"collection": "scenes", "status": "completed", "indexed": 2, "task_id": None})
        self.assertEqual(len(self.docs(EntityKind.SCENE)), 2)

    async def test_background_rebuild_dispatches_task(self):
        with patch("worker.tasks.indexing.rebuild_index") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-1")
            response = await self.client.post(f"{PREFIX}/indexing/actor/rebuild")

        mock_task.delay.assert_called_once_with("actor")
        self.assertEqual(response.json()["status"], "dispatched")
        self.assertEqual(response.json()["task_id"], "task-1")

    async def test_health(self):
        response = await self.client.get("/health")
        self.assertEqual(response.json()["status"], "ok")


class TestServerEntryPoint(unittest.TestCase):

    def test_run_serves_app_with_uvicorn(self):
        from catalog import main

        with patch("uvicorn.run") as mock_run:
            main.run()
        mock_run.assert_called_once()
        self.assertEqual(mock_run.call_args[0][0], "catalog.main:app")


if __name__ == '__main__':
    unittest.main()
