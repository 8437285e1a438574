"""Reconciliation engine: GitHub issues onto Tududi projects and tasks"""

import itertools
import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional

from taskbridge.models.issue import SourceIssue, SourceRepository
from taskbridge.models.sink import (
    Priority,
    ProjectStatus,
    SinkTask,
    TaskDraft,
    TaskStatus,
)
from taskbridge.models.sync_log import SyncAction, new_stats
from taskbridge.services.identity import (
    DedupMode,
    infer_priority,
    issue_dedup_key,
    issue_uid,
)
from taskbridge.services.snapshot import CycleSnapshot
from taskbridge.services.tududi_client import TududiAPIError, TududiClient

logger = logging.getLogger(__name__)


def target_status(issue: SourceIssue) -> TaskStatus:
    return TaskStatus.DONE if issue.is_closed else TaskStatus.OPEN


def needs_status_update(current: TaskStatus, target: TaskStatus) -> bool:
    """Drift rule: close what GitHub closed, reopen what GitHub reopened."""
    if target == TaskStatus.DONE:
        return current != TaskStatus.DONE
    return current == TaskStatus.DONE


def project_status_for(repository: Optional[SourceRepository]) -> ProjectStatus:
    if repository is not None and repository.archived:
        return ProjectStatus.DONE
    return ProjectStatus.PLANNED


def project_description_for(repo_name: str, repository: Optional[SourceRepository]) -> str:
    if repository is not None and repository.description:
        return repository.description
    return f"Imported GitHub Repository: {repo_name}"


def build_task_note(issue: SourceIssue) -> str:
    note = issue.body or ""
    note += f"\n\n**GitHub Source**: [Issue #{issue.number}]({issue.html_url})"
    return note


class Reconciler:
    """Decides create / update-status / skip for each source issue.

    Issues are processed strictly one at a time. In dry-run mode every
    mutation is logged instead of sent, and placeholder results (negative
    ids) are written into the snapshot so later issues resolve consistently.
    """

    def __init__(
        self,
        client: TududiClient,
        *,
        dedup_mode: DedupMode = DedupMode.TITLE,
        dry_run: bool = False,
        source_tag: str = "github",
    ):
        self.client = client
        self.dedup_mode = dedup_mode
        self.dry_run = dry_run
        self.source_tag = source_tag
        self._placeholder_ids = itertools.count(-1, -1)

    def reconcile(self, issues: Iterable[SourceIssue], snapshot: CycleSnapshot) -> Dict[str, int]:
        """Fold all issues into the sink; returns outcome counters"""
        stats = new_stats()
        for issue in issues:
            try:
                action = self.reconcile_issue(issue, snapshot, stats=stats)
            except TududiAPIError as e:
                # Logged by the client; the next cycle retries from fresh state.
                logger.error(f"Failed to sync issue #{issue.number} '{issue.title}': {e}")
                action = SyncAction.FAILED
            if action == SyncAction.FAILED:
                stats["errors"] += 1
            else:
                stats[action.value] += 1
        return stats

    def reconcile_issue(
        self,
        issue: SourceIssue,
        snapshot: CycleSnapshot,
        *,
        stats: Optional[Dict[str, int]] = None,
    ) -> SyncAction:
        repo_name = issue.repository.name if issue.repository else ""
        if not repo_name:
            logger.warning(f"Skipping issue #{issue.number} '{issue.title}': no repository name")
            return SyncAction.SKIPPED

        project_id = self._resolve_project(issue, repo_name, snapshot, stats)
        if project_id is None:
            return SyncAction.FAILED

        dedup_key = issue_dedup_key(issue, project_id, self.dedup_mode)
        if dedup_key is None:
            logger.warning(
                f"Skipping issue #{issue.number} in '{repo_name}': repository id unknown, "
                f"cannot build {self.dedup_mode.value} identity"
            )
            return SyncAction.SKIPPED

        desired = target_status(issue)
        existing = snapshot.find_task(dedup_key)
        if existing is not None:
            logger.debug(
                f"Dedup match: '{existing.name}' (ID: {existing.id}, "
                f"Status: {existing.status.value}, Target: {desired.value})"
            )
            if not needs_status_update(existing.status, desired):
                return SyncAction.SKIPPED
            if not self._update_status(existing, desired):
                return SyncAction.SKIPPED
            snapshot.register_task(dedup_key, replace(existing, status=desired))
            return SyncAction.UPDATED

        logger.debug(f"No dedup match for key: [{dedup_key}]")
        task = self._create_task(issue, repo_name, project_id, desired)
        snapshot.register_task(dedup_key, task)
        return SyncAction.CREATED

    def _resolve_project(
        self,
        issue: SourceIssue,
        repo_name: str,
        snapshot: CycleSnapshot,
        stats: Optional[Dict[str, int]],
    ) -> Optional[int]:
        project_id = snapshot.project_id(repo_name)
        if project_id is not None:
            return project_id

        status = project_status_for(issue.repository)
        description = project_description_for(repo_name, issue.repository)

        if self.dry_run:
            project_id = next(self._placeholder_ids)
            logger.info(
                f"[DRY RUN] Would create project: '{repo_name}' [Status: {status.value}] "
                f"(placeholder ID {project_id})"
            )
        else:
            logger.info(f"Project '{repo_name}' not found. Creating...")
            try:
                project = self.client.create_project(
                    repo_name, status=status, description=description, priority=Priority.MEDIUM
                )
            except TududiAPIError as e:
                logger.error(f"Skipping issue #{issue.number}: could not create project '{repo_name}': {e}")
                return None
            project_id = project.id

        snapshot.register_project(repo_name, project_id)
        if stats is not None:
            stats["projects_created"] += 1
        return project_id

    def _update_status(self, task: SinkTask, status: TaskStatus) -> bool:
        verb = "marked completed" if status == TaskStatus.DONE else "re-opened"
        if self.dry_run:
            logger.info(f"[DRY RUN] Would update Task {task.id} '{task.name}' status to {status.value}")
            return True
        if task.id is None:
            # Created earlier this cycle without an echoed id; the next cycle sees it.
            logger.warning(f"Cannot update task '{task.name}' yet: sink returned no id")
            return False
        logger.info(f"[UPDATE] Task '{task.name}' {verb} in GitHub.")
        self.client.update_task_status(task.id, status)
        return True

    def _create_task(
        self, issue: SourceIssue, repo_name: str, project_id: int, status: TaskStatus
    ) -> SinkTask:
        draft = TaskDraft(
            name=issue.title,
            note=build_task_note(issue),
            status=status,
            priority=infer_priority(issue.labels),
            project_id=project_id,
            tags=[repo_name, self.source_tag],
            due_date=issue.due_on,
            uid=issue_uid(issue) if self.dedup_mode == DedupMode.UID else None,
        )
        if self.dry_run:
            task_id = next(self._placeholder_ids)
            logger.info(
                f"[DRY RUN] Would create Task: '{draft.name}' in project {project_id} "
                f"[Status: {status.value}, Priority: {draft.priority.value}]"
            )
            return SinkTask(
                id=task_id,
                name=draft.name,
                status=status,
                project_id=project_id,
                uid=draft.uid,
                note=draft.note,
                priority=draft.priority.value,
                tags=list(draft.tags),
            )
        return self.client.create_task(draft)
