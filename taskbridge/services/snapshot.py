"""Per-cycle snapshot of the sink's projects and tasks"""

import logging
from typing import Dict, Optional

from taskbridge.models.sink import SinkTask
from taskbridge.services.identity import DedupMode, normalize_name, task_dedup_key
from taskbridge.services.tududi_client import TududiAPIError, TududiClient

logger = logging.getLogger(__name__)


class CycleSnapshot:
    """Read-through/write-through index scoped to one sync cycle.

    The engine folds over the issue list sequentially and writes every project
    or task it creates back into these indexes, so later issues in the same
    cycle see them without another sink read. Discarded at cycle end.
    """

    def __init__(
        self,
        projects: Optional[Dict[str, int]] = None,
        tasks: Optional[Dict[str, SinkTask]] = None,
    ):
        self.projects: Dict[str, int] = dict(projects or {})
        self.tasks: Dict[str, SinkTask] = dict(tasks or {})

    def project_id(self, name: str) -> Optional[int]:
        return self.projects.get(normalize_name(name))

    def register_project(self, name: str, project_id: int) -> None:
        self.projects[normalize_name(name)] = project_id

    def find_task(self, key: str) -> Optional[SinkTask]:
        return self.tasks.get(key)

    def register_task(self, key: str, task: SinkTask) -> None:
        self.tasks[key] = task


class SnapshotLoader:
    """Reads the sink once per cycle; read failures degrade to empty indexes"""

    def __init__(self, client: TududiClient, dedup_mode: DedupMode = DedupMode.TITLE):
        self.client = client
        self.dedup_mode = dedup_mode

    def load_projects(self) -> Dict[str, int]:
        try:
            projects = self.client.list_projects()
        except TududiAPIError as e:
            logger.warning(f"Could not load Tududi projects, assuming none exist: {e}")
            return {}

        index: Dict[str, int] = {}
        for project in projects:
            key = normalize_name(project.name)
            if key in index:
                logger.debug(
                    f"Duplicate project name '{project.name}' (ID: {project.id}); keeping ID {index[key]}"
                )
                continue
            index[key] = project.id
        logger.info(f"Loaded {len(projects)} existing PROJECTS")
        return index

    def load_tasks(self) -> Dict[str, SinkTask]:
        try:
            tasks = self.client.list_tasks()
        except TududiAPIError as e:
            logger.warning(f"Could not load Tududi tasks, assuming none exist: {e}")
            return {}

        index: Dict[str, SinkTask] = {}
        for task in tasks:
            key = task_dedup_key(task, self.dedup_mode)
            if key is None:
                continue
            # First one wins; later duplicates are already a sink-side problem.
            index.setdefault(key, task)
        logger.info(
            f"Loaded {len(tasks)} existing TASKS for deduplication "
            f"({len(index)} indexed, mode={self.dedup_mode.value})"
        )
        return index

    def load(self) -> CycleSnapshot:
        return CycleSnapshot(projects=self.load_projects(), tasks=self.load_tasks())
