"""Sink (Tududi) project and task models"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


class TaskStatus(str, enum.Enum):
    """Engine-side task status.

    The sink's wire encoding (integers, strings, extra states) is translated
    to and from these two values inside the gateway only.
    """

    OPEN = "open"
    DONE = "done"


class ProjectStatus(str, enum.Enum):
    """Project lifecycle status as sent to the sink"""

    PLANNED = "planned"
    DONE = "done"


class Priority(str, enum.Enum):
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class SinkProject:
    id: int
    name: str
    description: str = ""
    status: Optional[str] = None


@dataclass(frozen=True)
class SinkTask:
    """Existing task as seen in a cycle snapshot.

    `id` is negative for tasks that were only simulated in dry-run mode, and
    None when the sink accepted a create without echoing the new task back.
    """

    id: Optional[int]
    name: str
    status: TaskStatus = TaskStatus.OPEN
    project_id: Optional[int] = None
    uid: Optional[str] = None
    note: str = ""
    priority: Optional[str] = None
    due_date: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TaskDraft:
    """Payload for a task the engine wants created"""

    name: str
    note: str
    status: TaskStatus
    priority: Priority
    project_id: int
    tags: List[str] = field(default_factory=list)
    due_date: Optional[datetime] = None
    uid: Optional[str] = None
