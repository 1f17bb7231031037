"""Commit source backed by the GitHub REST API.

Listing uses GET /repos/{owner}/{repo}/commits, which does not include
changed files, so each commit is then fetched individually with
GET /repos/{owner}/{repo}/commits/{sha}. Detail requests run concurrently
on a small thread pool; results keep the listing's order.

Rate limits:
- Installation tokens: 5000 requests/hour
- One listing request plus one request per commit per run
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from vibe_history.config import GitHubConfig
from vibe_history.errors import CommitFetchFailure
from vibe_history.logging import get_logger
from vibe_history.models import ChangedFile, Commit, Repository

logger = get_logger("github")

TokenProvider = Callable[[str], str]

# GitHub answers 409 for a repository without any commits
EMPTY_REPOSITORY_STATUS = 409


def static_token(token: str) -> TokenProvider:
    """Token provider that returns the same token for every installation."""
    return lambda installation_ref: token


def parse_github_date(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def commit_from_payload(data: dict[str, Any]) -> Commit:
    """Build a Commit from a GitHub commit (list or detail) payload."""
    info = data.get("commit") or {}
    author = info.get("author") or {}
    files = tuple(
        ChangedFile(
            path=f.get("filename", ""),
            lines_added=f.get("additions") or 0,
            lines_removed=f.get("deletions") or 0,
            status=f.get("status"),
        )
        for f in data.get("files") or []
    )
    return Commit(
        sha=data["sha"],
        message=info.get("message", ""),
        authored_at=parse_github_date(author.get("date")),
        files=files,
        author=author.get("name") or "Unknown",
    )


class GitHubCommitSource:
    """Lists recent commits, with changed files, through the GitHub API.

    Installation credentials are supplied by the host application through
    `token_provider`; this class never mints or stores them.
    """

    def __init__(
        self,
        config: GitHubConfig,
        token_provider: TokenProvider | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize with GitHub configuration.

        Args:
            config: GitHubConfig with API URL, timeouts and default token
            token_provider: Maps an installation ref to an access token
                            (defaults to the configured static token)
            transport: Optional httpx transport (used by tests)
        """
        self._config = config
        self._token_provider = token_provider or static_token(config.token)
        self._transport = transport

    def _client(self, installation_ref: str) -> httpx.Client:
        token = self._token_provider(installation_ref)
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return httpx.Client(
            base_url=self._config.api_url,
            headers=headers,
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        )

    def list_recent_commits(
        self,
        repository: Repository,
        installation_ref: str,
        since: datetime,
        limit: int,
    ) -> list[Commit]:
        """List commits authored since a point in time, newest first.

        Raises:
            CommitFetchFailure: On network errors or a non-success listing response
        """
        path = f"/repos/{repository.owner}/{repository.name}/commits"
        params = {
            "since": since.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "per_page": min(max(limit, 1), 100),
        }

        with self._client(installation_ref) as client:
            try:
                response = client.get(path, params=params)
            except httpx.HTTPError as e:
                raise CommitFetchFailure(
                    f"Could not reach GitHub while fetching commits for {repository.full_name}."
                ) from e

            if response.status_code == EMPTY_REPOSITORY_STATUS:
                return []
            if response.status_code in (401, 403, 404):
                raise CommitFetchFailure(
                    f"GitHub refused access to {repository.full_name} (HTTP {response.status_code})."
                )
            if response.is_error:
                raise CommitFetchFailure(
                    f"GitHub returned HTTP {response.status_code} while fetching commits for {repository.full_name}."
                )

            listing = response.json()[:limit]
            if not listing:
                return []

            workers = max(1, min(self._config.max_workers, len(listing)))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return list(pool.map(lambda item: self._detail(client, repository, item), listing))

    def _detail(self, client: httpx.Client, repository: Repository, item: dict[str, Any]) -> Commit:
        """Fetch changed files for one commit, falling back to listing data."""
        sha = item["sha"]
        try:
            response = client.get(f"/repos/{repository.owner}/{repository.name}/commits/{sha}")
            response.raise_for_status()
            return commit_from_payload(response.json())
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Failed to fetch commit details: repo=%s sha=%s error=%s", repository.full_name, sha, e)
            return commit_from_payload({**item, "files": []})
