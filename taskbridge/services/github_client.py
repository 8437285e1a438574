"""GitHub API client wrapper"""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from taskbridge.models.issue import SourceIssue, SourceRepository

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "taskbridge/1.0"
_RETRY_STATUSES = (429, 500, 502, 503, 504)


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


class GitHubClient:
    """Read-only wrapper for the GitHub issue endpoints the sync needs"""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitHub client"""
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            }
        )

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Best-effort retry predicate for transient GitHub failures."""
        return isinstance(exc, GitHubAPIError) and exc.status in _RETRY_STATUSES

    def _with_retries(self, fn, *, max_attempts: int = 3, base_delay_s: float = 0.5):
        """Run callable with small exponential backoff on transient errors."""
        attempt = 1
        while True:
            try:
                return fn()
            except GitHubAPIError as e:
                if attempt >= max_attempts or not self._should_retry(e):
                    raise
                time.sleep(base_delay_s * (2 ** (attempt - 1)))
                attempt += 1

    def _get_once(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = path if path.startswith("http") else f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GitHubAPIError(f"GitHub request GET {url} failed: {e}") from e
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API GET {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"GitHub API GET {url} returned invalid JSON", status=response.status_code
            ) from e

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._with_retries(lambda: self._get_once(path, params))

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        return datetime.fromisoformat(value.replace("Z", "+00:00"))

    @staticmethod
    def _to_repository(data: Dict[str, Any]) -> SourceRepository:
        owner = data.get("owner") or {}
        return SourceRepository(
            name=data.get("name") or "",
            owner=owner.get("login"),
            id=data.get("id"),
            archived=bool(data.get("archived", False)),
            description=data.get("description"),
        )

    @staticmethod
    def _repository_from_url(repository_url: str) -> SourceRepository:
        """Bare repository identity parsed from ".../repos/<owner>/<name>"."""
        parts = [p for p in (repository_url or "").rstrip("/").split("/") if p]
        name = parts[-1] if parts else ""
        owner = parts[-2] if len(parts) >= 2 else None
        return SourceRepository(name=name, owner=owner)

    @classmethod
    def _to_issue(cls, data: Dict[str, Any], repository: Optional[SourceRepository]) -> SourceIssue:
        milestone = data.get("milestone") or {}
        return SourceIssue(
            id=int(data["id"]),
            number=int(data["number"]),
            title=data.get("title") or "",
            repository=repository,
            body=data.get("body") or "",
            labels=[
                (label.get("name") if isinstance(label, dict) else str(label)) or ""
                for label in data.get("labels") or []
            ],
            state=data.get("state") or "open",
            html_url=data.get("html_url") or "",
            due_on=cls._parse_datetime(milestone.get("due_on")),
        )

    @staticmethod
    def _is_pull_request(data: Dict[str, Any]) -> bool:
        return "pull_request" in data

    def get_current_user_login(self) -> str:
        """Login of the authenticated user"""
        data = self._get("/user")
        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            raise GitHubAPIError("GitHub /user response carried no login")
        return login

    def get_repository(self, repository_url: str) -> SourceRepository:
        """Full repository detail for an API repository URL"""
        return self._to_repository(self._get(repository_url))

    def _resolve_repository(
        self, repository_url: str, cache: Dict[str, SourceRepository]
    ) -> SourceRepository:
        if repository_url in cache:
            return cache[repository_url]
        try:
            repo = self.get_repository(repository_url)
        except GitHubAPIError as e:
            logger.warning(f"Could not load repository {repository_url}: {e}")
            repo = self._repository_from_url(repository_url)
        cache[repository_url] = repo
        return repo

    def search_assigned_issues(
        self, login: str, *, limit: int = 50, state: str = "all"
    ) -> List[SourceIssue]:
        """Issues assigned to `login`, most recently updated first.

        All states by default, so an assigned issue closed in a repository the
        user does not own still reaches its task as a status change.
        """
        query = f"assignee:{login} is:issue"
        if state in ("open", "closed"):
            query += f" is:{state}"
        params = {
            "q": query,
            "sort": "updated",
            "order": "desc",
            "per_page": min(max(limit, 1), 100),
        }
        data = self._get("/search/issues", params)
        items = data.get("items") if isinstance(data, dict) else None

        repo_cache: Dict[str, SourceRepository] = {}
        issues: List[SourceIssue] = []
        for item in items or []:
            if len(issues) >= limit:
                break
            if self._is_pull_request(item):
                continue
            if isinstance(item.get("repository"), dict):
                repo = self._to_repository(item["repository"])
            else:
                repo = self._resolve_repository(item.get("repository_url") or "", repo_cache)
            issues.append(self._to_issue(item, repo))
        return issues

    def list_owned_repositories(self, login: str) -> List[SourceRepository]:
        """Repositories owned by `login` (not org or collaborator repos)"""
        data = self._get("/user/repos", {"type": "owner", "per_page": 100})
        repos = []
        for item in data or []:
            owner = (item.get("owner") or {}).get("login")
            if owner == login:
                repos.append(self._to_repository(item))
        return repos

    def list_repository_issues(
        self, repository: SourceRepository, *, state: str = "all", per_page: int = 20
    ) -> List[SourceIssue]:
        """One page of a repository's issues, pull requests removed"""
        params = {
            "state": state,
            "sort": "updated",
            "direction": "desc",
            "per_page": per_page,
        }
        data = self._get(f"/repos/{repository.full_name}/issues", params)
        return [
            self._to_issue(item, repository)
            for item in data or []
            if not self._is_pull_request(item)
        ]
