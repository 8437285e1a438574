"""Source issue model (GitHub)"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class SourceRepository:
    """Repository an issue belongs to.

    `id` is None when the repository could only be inferred from an issue's
    `repository_url` (search results carry no nested repository object).
    """

    name: str
    owner: Optional[str] = None
    id: Optional[int] = None
    archived: bool = False
    description: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}" if self.owner else self.name


@dataclass(frozen=True)
class SourceIssue:
    """Read-only issue record; lives for one sync cycle."""

    id: int
    number: int
    title: str
    repository: Optional[SourceRepository] = None
    body: str = ""
    labels: List[str] = field(default_factory=list)
    state: str = "open"
    html_url: str = ""
    due_on: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return (self.state or "").lower() == "closed"
