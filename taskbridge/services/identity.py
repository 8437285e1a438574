"""Identity and normalization helpers.

Everything here is pure: no I/O, no configuration lookups. Two dedup
strategies exist and a running instance must stick to exactly one of them
(see DedupMode); the snapshot indexes and the engine lookups are both keyed
through the functions below so they can never disagree.
"""

import enum
import re
from typing import Iterable, Optional

from taskbridge.models.issue import SourceIssue
from taskbridge.models.sink import Priority, SinkTask

UID_PREFIX = "github"
_UID_RE = re.compile(rf"^{UID_PREFIX}-(?P<repo_id>\d+)-(?P<number>\d+)$")
_HIGH_PRIORITY_MARKERS = ("urgent", "high")


class DedupMode(str, enum.Enum):
    """How a sink task is matched back to its source issue"""

    # "<project_id>|<normalized title>"
    TITLE = "title"
    # "github-<repository id>-<issue number>", persisted as the task uid
    UID = "uid"


def normalize_name(name: Optional[str]) -> str:
    """Lower-case, treat '-' and '_' as spaces, trim.

    Idempotent: normalize_name(normalize_name(x)) == normalize_name(x).
    """
    value = (name or "").lower()
    value = value.replace("-", " ").replace("_", " ")
    return value.strip()


def title_key(project_id: Optional[int], title: Optional[str]) -> str:
    return f"{project_id}|{normalize_name(title)}"


def issue_uid(issue: SourceIssue) -> Optional[str]:
    """Identity token for an issue, or None when its repository id is unknown."""
    repo = issue.repository
    if repo is None or repo.id is None:
        return None
    return f"{UID_PREFIX}-{int(repo.id)}-{int(issue.number)}"


def is_issue_uid(value: Optional[str]) -> bool:
    return bool(value) and _UID_RE.match(value) is not None


def issue_dedup_key(issue: SourceIssue, project_id: int, mode: DedupMode) -> Optional[str]:
    """Dedup key for a source issue, None if it cannot be identified in `mode`."""
    if mode == DedupMode.UID:
        return issue_uid(issue)
    return title_key(project_id, issue.title)


def task_dedup_key(task: SinkTask, mode: DedupMode) -> Optional[str]:
    """Dedup key for an existing sink task, None if the task is not indexable in `mode`."""
    if mode == DedupMode.UID:
        return task.uid if is_issue_uid(task.uid) else None
    if task.project_id is None:
        return None
    return title_key(task.project_id, task.name)


def infer_priority(labels: Iterable[str]) -> Priority:
    for label in labels or ():
        lowered = (label or "").lower()
        if any(marker in lowered for marker in _HIGH_PRIORITY_MARKERS):
            return Priority.HIGH
    return Priority.MEDIUM
