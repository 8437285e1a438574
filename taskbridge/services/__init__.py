"""Services"""

from taskbridge.services.github_client import GitHubClient
from taskbridge.services.reconciler import Reconciler
from taskbridge.services.snapshot import CycleSnapshot, SnapshotLoader
from taskbridge.services.sync_service import SyncService
from taskbridge.services.tududi_client import TududiClient

__all__ = [
    "GitHubClient",
    "TududiClient",
    "SnapshotLoader",
    "CycleSnapshot",
    "Reconciler",
    "SyncService",
]
