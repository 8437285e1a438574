"""Domain models"""

from taskbridge.models.issue import SourceIssue, SourceRepository
from taskbridge.models.sink import (
    Priority,
    ProjectStatus,
    SinkProject,
    SinkTask,
    TaskDraft,
    TaskStatus,
)
from taskbridge.models.sync_log import SyncAction, new_stats

__all__ = [
    "SourceRepository",
    "SourceIssue",
    "TaskStatus",
    "ProjectStatus",
    "Priority",
    "SinkProject",
    "SinkTask",
    "TaskDraft",
    "SyncAction",
    "new_stats",
]
