"""Tududi API client wrapper"""
import logging
from typing import Any, Dict, List, Optional

import requests

from taskbridge.models.sink import (
    Priority,
    ProjectStatus,
    SinkProject,
    SinkTask,
    TaskDraft,
    TaskStatus,
)

logger = logging.getLogger(__name__)

# Tududi task status codes
STATUS_NOT_STARTED = 0
STATUS_IN_PROGRESS = 1
STATUS_DONE = 2
STATUS_ARCHIVED = 3
STATUS_WAITING = 4

_DONE_CODES = {STATUS_DONE, STATUS_ARCHIVED}
_DONE_NAMES = {"done", "completed", "archived"}


class TududiAPIError(RuntimeError):
    """Raised when a Tududi call fails (transport error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        *,
        method: str,
        endpoint: str,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.method = method
        self.endpoint = endpoint
        self.status = status


class TududiDecodeError(TududiAPIError):
    """Raised when a response body has none of the accepted shapes."""


def decode_task_status(raw: Any) -> TaskStatus:
    """Map Tududi's status field (int, numeric string or name) to TaskStatus.

    Archived counts as done so a closed issue never reopens an archived task.
    """
    if isinstance(raw, bool):
        return TaskStatus.OPEN
    if isinstance(raw, int):
        return TaskStatus.DONE if raw in _DONE_CODES else TaskStatus.OPEN
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value.isdigit():
            return decode_task_status(int(value))
        if value in _DONE_NAMES:
            return TaskStatus.DONE
    return TaskStatus.OPEN


def encode_task_status(status: TaskStatus) -> int:
    return STATUS_DONE if status == TaskStatus.DONE else STATUS_NOT_STARTED


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class TududiClient:
    """Wrapper for Tududi API operations.

    Every method is a single request with no retry; failures surface as
    TududiAPIError after being logged here.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Tududi client"""
        self.url = (url or "").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Perform one call; returns decoded JSON (or None for an empty body)."""
        try:
            response = self.session.request(
                method, f"{self.url}{endpoint}", json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Tududi request {method} {endpoint} failed: {e}")
            raise TududiAPIError(
                f"Tududi request {method} {endpoint} failed: {e}", method=method, endpoint=endpoint
            ) from e

        logger.debug(f"[DEBUG] {method} {endpoint} -> {response.status_code}")

        if response.status_code >= 400:
            logger.debug(f"[DEBUG] Error body: {response.text}")
            # A 404 on a read is an expected probe result, not an application error.
            if response.status_code != 404 or method != "GET":
                logger.error(f"API Error ({response.status_code}) on {method} {endpoint}")
            raise TududiAPIError(
                f"API Error {response.status_code} on {method} {endpoint}",
                method=method,
                endpoint=endpoint,
                status=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {method} {endpoint}: {e}")
            raise TududiDecodeError(
                f"Invalid JSON from {method} {endpoint}",
                method=method,
                endpoint=endpoint,
                status=response.status_code,
            ) from e

    @staticmethod
    def _unwrap_list(data: Any, key: str, *, method: str, endpoint: str) -> List[Dict[str, Any]]:
        """Accept both a bare list and an object wrapping the list under `key`."""
        if isinstance(data, dict) and isinstance(data.get(key), list):
            return data[key]
        if isinstance(data, list):
            return data
        raise TududiDecodeError(
            f"Unexpected response shape from {method} {endpoint}: {type(data).__name__}",
            method=method,
            endpoint=endpoint,
        )

    @staticmethod
    def _decode(decoder, data: Dict[str, Any], *, method: str, endpoint: str):
        """Run a record decoder, turning malformed fields into TududiDecodeError."""
        try:
            return decoder(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed record from {method} {endpoint}: {e!r}")
            raise TududiDecodeError(
                f"Malformed record from {method} {endpoint}: {e!r}",
                method=method,
                endpoint=endpoint,
            ) from e

    @staticmethod
    def _decode_project(data: Dict[str, Any]) -> SinkProject:
        return SinkProject(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            description=data.get("description") or "",
            status=_optional_str(data.get("status")),
        )

    @staticmethod
    def _decode_tags(raw: Any) -> List[str]:
        tags = []
        for tag in raw or []:
            name = tag.get("name") if isinstance(tag, dict) else tag
            if name:
                tags.append(str(name))
        return tags

    @classmethod
    def _decode_task(cls, data: Dict[str, Any]) -> SinkTask:
        project_id = data.get("project_id")
        return SinkTask(
            id=int(data["id"]) if data.get("id") is not None else None,
            name=str(data.get("name") or ""),
            status=decode_task_status(data.get("status")),
            project_id=int(project_id) if project_id is not None else None,
            uid=data.get("uid"),
            note=data.get("note") or "",
            priority=_optional_str(data.get("priority")),
            due_date=data.get("due_date"),
            tags=cls._decode_tags(data.get("tags")),
        )

    def list_projects(self) -> List[SinkProject]:
        """List all projects, whatever their status"""
        endpoint = "/projects?status=all"
        data = self._request("GET", endpoint)
        items = self._unwrap_list(data, "projects", method="GET", endpoint=endpoint)
        return [
            self._decode(self._decode_project, item, method="GET", endpoint=endpoint)
            for item in items
            if isinstance(item, dict)
        ]

    def list_tasks(self) -> List[SinkTask]:
        """List all tasks.

        Falls back to the unfiltered listing when the server does not know the
        `type=all` filter (404).
        """
        endpoint = "/tasks?type=all"
        try:
            data = self._request("GET", endpoint)
        except TududiAPIError as e:
            if e.status != 404:
                raise
            endpoint = "/tasks"
            data = self._request("GET", endpoint)
        items = self._unwrap_list(data, "tasks", method="GET", endpoint=endpoint)
        return [
            self._decode(self._decode_task, item, method="GET", endpoint=endpoint)
            for item in items
            if isinstance(item, dict)
        ]

    def create_project(
        self,
        name: str,
        *,
        status: ProjectStatus = ProjectStatus.PLANNED,
        description: str = "",
        priority: Priority = Priority.MEDIUM,
    ) -> SinkProject:
        """Create a project and return it with its sink-assigned id"""
        payload = {
            "name": name,
            "status": ProjectStatus(status).value,
            "description": description,
            "priority": Priority(priority).value,
        }
        data = self._request("POST", "/project", payload)
        if isinstance(data, dict) and isinstance(data.get("project"), dict):
            data = data["project"]
        if not isinstance(data, dict) or data.get("id") is None:
            raise TududiDecodeError(
                f"Project '{name}' created without an id in the response",
                method="POST",
                endpoint="/project",
            )
        project = self._decode(self._decode_project, data, method="POST", endpoint="/project")
        logger.info(f"Created project '{project.name}' (ID: {project.id})")
        return project

    def create_task(self, draft: TaskDraft) -> SinkTask:
        """Create a task.

        Tududi does not always echo the task back; in that case the returned
        SinkTask mirrors the draft with `id=None`.
        """
        payload: Dict[str, Any] = {
            "name": draft.name,
            "note": draft.note,
            "status": encode_task_status(draft.status),
            "priority": Priority(draft.priority).value,
            "project_id": draft.project_id,
            "tags": [{"name": tag} for tag in draft.tags],
        }
        if draft.uid:
            payload["uid"] = draft.uid
        if draft.due_date is not None:
            payload["due_date"] = draft.due_date.isoformat()

        data = self._request("POST", "/task", payload)
        if isinstance(data, dict) and isinstance(data.get("task"), dict):
            data = data["task"]
        if isinstance(data, dict) and data.get("id") is not None:
            task = self._decode(self._decode_task, data, method="POST", endpoint="/task")
        else:
            task = SinkTask(
                id=None,
                name=draft.name,
                status=draft.status,
                project_id=draft.project_id,
                uid=draft.uid,
                note=draft.note,
                priority=Priority(draft.priority).value,
                due_date=payload.get("due_date"),
                tags=list(draft.tags),
            )
        logger.info(f"Created task '{draft.name}' [Status: {draft.status.value}]")
        return task

    def update_task_status(self, task_id: int, status: TaskStatus) -> None:
        """Patch only the status of an existing task"""
        self._request("PATCH", f"/task/{int(task_id)}", {"status": encode_task_status(status)})
        logger.info(f"Updated task {task_id} status to {status.value}")
