"""Sync outcome bookkeeping"""

import enum
from typing import Dict


class SyncAction(str, enum.Enum):
    """Outcome of reconciling one source issue"""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


STAT_KEYS = ("projects_created", "created", "updated", "skipped", "errors")


def new_stats() -> Dict[str, int]:
    return {key: 0 for key in STAT_KEYS}
