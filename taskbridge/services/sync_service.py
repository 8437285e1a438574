"""Issue synchronization service (one sync cycle)"""

import logging
from typing import Any, Dict, List, Set

from taskbridge.models.issue import SourceIssue
from taskbridge.models.sync_log import new_stats
from taskbridge.services.github_client import GitHubAPIError, GitHubClient
from taskbridge.services.identity import DedupMode
from taskbridge.services.reconciler import Reconciler
from taskbridge.services.snapshot import SnapshotLoader
from taskbridge.services.tududi_client import TududiClient

logger = logging.getLogger(__name__)

# Repository-level answers that mean "nothing to read here", not an outage.
_SKIPPABLE_REPO_STATUSES = (403, 404, 410)


class SyncService:
    """Runs one pass: fetch GitHub issues, load the Tududi snapshot, reconcile, summarize"""

    def __init__(
        self,
        github: GitHubClient,
        tududi: TududiClient,
        *,
        dedup_mode: DedupMode = DedupMode.TITLE,
        dry_run: bool = False,
        source_tag: str = "github",
        assigned_issue_limit: int = 50,
        repo_issue_page_size: int = 20,
    ):
        self.github = github
        self.tududi = tududi
        self.dedup_mode = dedup_mode
        self.dry_run = dry_run
        self.source_tag = source_tag
        self.assigned_issue_limit = assigned_issue_limit
        self.repo_issue_page_size = repo_issue_page_size

    @classmethod
    def from_settings(cls, settings) -> "SyncService":
        github = GitHubClient(
            settings.github_token,
            base_url=settings.github_api_url,
            timeout=settings.http_timeout_seconds,
        )
        tududi = TududiClient(
            settings.tududi_url,
            settings.tududi_api_key,
            timeout=settings.http_timeout_seconds,
        )
        return cls(
            github,
            tududi,
            dedup_mode=settings.dedup_mode,
            dry_run=settings.dry_run,
            source_tag=settings.source_tag,
            assigned_issue_limit=settings.assigned_issue_limit,
            repo_issue_page_size=settings.repo_issue_page_size,
        )

    def collect_issues(self) -> List[SourceIssue]:
        """Assigned issues first, then owned repositories' issues, unique by issue id.

        Raises GitHubAPIError when the source cannot be read.
        """
        login = self.github.get_current_user_login()
        seen: Set[int] = set()
        issues: List[SourceIssue] = []

        def _add(issue: SourceIssue) -> None:
            if issue.id in seen:
                return
            seen.add(issue.id)
            issues.append(issue)

        for issue in self.github.search_assigned_issues(login, limit=self.assigned_issue_limit):
            _add(issue)

        for repo in self.github.list_owned_repositories(login):
            try:
                repo_issues = self.github.list_repository_issues(
                    repo, state="all", per_page=self.repo_issue_page_size
                )
            except GitHubAPIError as e:
                if e.status not in _SKIPPABLE_REPO_STATUSES:
                    raise
                logger.warning(f"Error getting issues for {repo.name}: {e}")
                continue
            for issue in repo_issues:
                _add(issue)

        return issues

    def run_cycle(self) -> Dict[str, Any]:
        """Run one full sync cycle; never raises"""
        logger.info("--- Starting Sync Cycle ---")
        stats = new_stats()

        try:
            issues = self.collect_issues()
        except GitHubAPIError as e:
            logger.error(f"Sync cycle aborted, could not read GitHub: {e}")
            return {"status": "failed", "error": str(e), "stats": stats}

        logger.info(f"Processing {len(issues)} GitHub issues...")

        try:
            snapshot = SnapshotLoader(self.tududi, self.dedup_mode).load()
            reconciler = Reconciler(
                self.tududi,
                dedup_mode=self.dedup_mode,
                dry_run=self.dry_run,
                source_tag=self.source_tag,
            )
            stats = reconciler.reconcile(issues, snapshot)
        except Exception as e:
            logger.exception(f"Sync cycle failed: {e}")
            stats["errors"] += 1
            return {"status": "failed", "error": str(e), "stats": stats}

        prefix = "[DRY RUN] " if self.dry_run else ""
        logger.info(f"{prefix}Sync cycle completed: {stats}")
        return {"status": "success", "issues": len(issues), "stats": stats}
