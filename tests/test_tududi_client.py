import logging
import unittest
from datetime import datetime, timezone
from unittest.mock import Mock

import requests

logging.disable(logging.CRITICAL)


def _response(status_code=200, payload=None, content=b"x", text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.content = content
    resp.text = text
    resp.json = Mock(return_value=payload)
    return resp


def _client(*responses):
    from taskbridge.services.tududi_client import TududiClient

    session = Mock()
    session.headers = {}
    session.request = Mock(side_effect=list(responses))
    return TududiClient("http://tududi.local/api/v1/", "key", timeout=5, session=session), session


class TududiClientRequestTests(unittest.TestCase):
    def test_init_sets_bearer_auth_and_strips_url(self):
        client, session = _client()
        self.assertEqual(client.url, "http://tududi.local/api/v1")
        self.assertEqual(session.headers["Authorization"], "Bearer key")
        self.assertEqual(session.headers["Content-Type"], "application/json")

    def test_every_call_uses_timeout(self):
        client, session = _client(_response(payload=[]))
        client.list_projects()
        _, kwargs = session.request.call_args
        self.assertEqual(kwargs["timeout"], 5)
        self.assertEqual(
            session.request.call_args[0], ("GET", "http://tududi.local/api/v1/projects?status=all")
        )

    def test_non_2xx_raises_typed_error(self):
        from taskbridge.services.tududi_client import TududiAPIError

        client, _ = _client(_response(status_code=500, payload=None, content=b"boom"))
        with self.assertRaises(TududiAPIError) as ctx:
            client.create_project("widgets")
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.method, "POST")
        self.assertEqual(ctx.exception.endpoint, "/project")

    def test_transport_error_is_wrapped(self):
        from taskbridge.services.tududi_client import TududiAPIError

        client, session = _client()
        session.request = Mock(side_effect=requests.ConnectionError("refused"))
        with self.assertRaises(TududiAPIError) as ctx:
            client.list_projects()
        self.assertIsNone(ctx.exception.status)

    def test_get_404_is_not_logged_as_error(self):
        from taskbridge.services import tududi_client
        from taskbridge.services.tududi_client import TududiAPIError

        client, _ = _client(_response(status_code=404, payload=None, content=b""))
        logger = Mock()
        original = tududi_client.logger
        tududi_client.logger = logger
        try:
            with self.assertRaises(TududiAPIError):
                client._request("GET", "/projects?status=all")
        finally:
            tududi_client.logger = original
        logger.error.assert_not_called()


class TududiClientListTests(unittest.TestCase):
    def test_list_projects_accepts_bare_list(self):
        client, _ = _client(_response(payload=[{"id": 7, "name": "widgets", "status": "planned"}]))
        projects = client.list_projects()
        self.assertEqual([(p.id, p.name, p.status) for p in projects], [(7, "widgets", "planned")])

    def test_list_projects_accepts_wrapped_list(self):
        client, _ = _client(_response(payload={"projects": [{"id": 3, "name": "gadgets"}]}))
        self.assertEqual([p.id for p in client.list_projects()], [3])

    def test_unexpected_shape_raises_decode_error(self):
        from taskbridge.services.tududi_client import TududiDecodeError

        client, _ = _client(_response(payload={"message": "nope"}))
        with self.assertRaises(TududiDecodeError):
            client.list_projects()

    def test_malformed_project_record_is_decode_error(self):
        from taskbridge.services.tududi_client import TududiDecodeError

        client, _ = _client(_response(payload={"projects": [{"name": "widgets"}]}))
        with self.assertRaises(TududiDecodeError) as ctx:
            client.list_projects()
        self.assertEqual(ctx.exception.method, "GET")
        self.assertEqual(ctx.exception.endpoint, "/projects?status=all")

    def test_malformed_task_record_is_decode_error(self):
        from taskbridge.services.tududi_client import TududiDecodeError

        client, _ = _client(_response(payload=[{"id": 1, "name": "a", "project_id": "seven"}]))
        with self.assertRaises(TududiDecodeError):
            client.list_tasks()

    def test_list_tasks_decodes_mixed_status_encodings(self):
        from taskbridge.models.sink import TaskStatus

        payload = {
            "tasks": [
                {"id": 1, "name": "a", "status": 0, "project_id": 7},
                {"id": 2, "name": "b", "status": "done", "project_id": 7},
                {"id": 3, "name": "c", "status": "2", "project_id": 7},
                {"id": 4, "name": "d", "status": 3, "project_id": 7},
                {"id": 5, "name": "e", "status": "in_progress", "project_id": 7},
                {"id": 6, "name": "f", "project_id": None, "tags": [{"name": "widgets"}]},
            ]
        }
        client, _ = _client(_response(payload=payload))
        tasks = client.list_tasks()

        self.assertEqual(
            [t.status for t in tasks],
            [
                TaskStatus.OPEN,
                TaskStatus.DONE,
                TaskStatus.DONE,
                TaskStatus.DONE,
                TaskStatus.OPEN,
                TaskStatus.OPEN,
            ],
        )
        self.assertIsNone(tasks[5].project_id)
        self.assertEqual(tasks[5].tags, ["widgets"])

    def test_list_tasks_falls_back_to_unfiltered_listing_on_404(self):
        client, session = _client(
            _response(status_code=404, payload=None, content=b""),
            _response(payload=[{"id": 1, "name": "a", "status": 1, "project_id": 2}]),
        )
        tasks = client.list_tasks()
        self.assertEqual(len(tasks), 1)
        urls = [c[0][1] for c in session.request.call_args_list]
        self.assertEqual(
            urls,
            ["http://tududi.local/api/v1/tasks?type=all", "http://tududi.local/api/v1/tasks"],
        )


class TududiClientWriteTests(unittest.TestCase):
    def test_create_project_payload(self):
        from taskbridge.models.sink import ProjectStatus

        client, session = _client(_response(payload={"id": 12, "name": "widgets"}))
        project = client.create_project(
            "widgets", status=ProjectStatus.DONE, description="Widget factory"
        )

        self.assertEqual(project.id, 12)
        _, kwargs = session.request.call_args
        self.assertEqual(
            kwargs["json"],
            {
                "name": "widgets",
                "status": "done",
                "description": "Widget factory",
                "priority": "medium",
            },
        )

    def test_create_project_without_id_is_decode_error(self):
        from taskbridge.services.tududi_client import TududiDecodeError

        client, _ = _client(_response(payload={"ok": True}))
        with self.assertRaises(TududiDecodeError):
            client.create_project("widgets")

    def test_create_task_encodes_status_tags_and_due_date(self):
        from taskbridge.models.sink import Priority, TaskDraft, TaskStatus

        client, session = _client(_response(payload=None, content=b""))
        draft = TaskDraft(
            name="Fix crash",
            note="body",
            status=TaskStatus.DONE,
            priority=Priority.HIGH,
            project_id=7,
            tags=["widgets", "github"],
            due_date=datetime(2026, 1, 2, tzinfo=timezone.utc),
            uid="github-1-2",
        )
        task = client.create_task(draft)

        _, kwargs = session.request.call_args
        self.assertEqual(session.request.call_args[0][0], "POST")
        payload = kwargs["json"]
        self.assertEqual(payload["status"], 2)
        self.assertEqual(payload["priority"], "high")
        self.assertEqual(payload["project_id"], 7)
        self.assertEqual(payload["tags"], [{"name": "widgets"}, {"name": "github"}])
        self.assertEqual(payload["due_date"], "2026-01-02T00:00:00+00:00")
        self.assertEqual(payload["uid"], "github-1-2")
        # No body echoed back: task mirrors the draft.
        self.assertIsNone(task.id)
        self.assertEqual(task.status, TaskStatus.DONE)

    def test_create_task_with_malformed_echo_is_decode_error(self):
        from taskbridge.models.sink import Priority, TaskDraft, TaskStatus
        from taskbridge.services.tududi_client import TududiDecodeError

        client, _ = _client(_response(payload={"id": "not-a-number"}))
        with self.assertRaises(TududiDecodeError) as ctx:
            client.create_task(
                TaskDraft(name="x", note="", status=TaskStatus.OPEN, priority=Priority.MEDIUM, project_id=1)
            )
        self.assertEqual(ctx.exception.endpoint, "/task")

    def test_create_task_omits_optional_fields(self):
        from taskbridge.models.sink import Priority, TaskDraft, TaskStatus

        client, session = _client(_response(payload={"id": 99, "name": "x", "status": 0}))
        task = client.create_task(
            TaskDraft(name="x", note="", status=TaskStatus.OPEN, priority=Priority.MEDIUM, project_id=1)
        )
        payload = session.request.call_args[1]["json"]
        self.assertNotIn("uid", payload)
        self.assertNotIn("due_date", payload)
        self.assertEqual(payload["status"], 0)
        self.assertEqual(task.id, 99)

    def test_update_task_status_patches_only_status(self):
        from taskbridge.models.sink import TaskStatus

        client, session = _client(_response(payload=None, content=b""))
        client.update_task_status(5, TaskStatus.OPEN)
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("PATCH", "http://tududi.local/api/v1/task/5"))
        self.assertEqual(kwargs["json"], {"status": 0})


if __name__ == "__main__":
    unittest.main()
