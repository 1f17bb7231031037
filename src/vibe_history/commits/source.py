"""Commit source interface and lookback-window fetching."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from vibe_history.errors import CommitFetchFailure
from vibe_history.logging import get_logger
from vibe_history.models import Commit, Repository

logger = get_logger("commits")


class CommitSource(Protocol):
    """Source-control host that can list recent commits.

    Implementations raise CommitFetchFailure on network or authorization
    problems and return [] when no commits match.
    """

    def list_recent_commits(
        self,
        repository: Repository,
        installation_ref: str,
        since: datetime,
        limit: int,
    ) -> list[Commit]: ...


def window_start(lookback_days: int, now: datetime | None = None) -> datetime:
    """Start of the lookback window ending at now."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now - timedelta(days=lookback_days)


def fetch_commits(
    source: CommitSource,
    repository: Repository,
    installation_ref: str,
    since: datetime,
    limit: int,
) -> list[Commit]:
    """Fetch at most `limit` commits from the window starting at `since`, newest first.

    The source decides window membership. GitHub and `git log` both filter
    on committer date, so a rebased commit may carry an older author date.

    Raises:
        CommitFetchFailure: If the source fails for any reason
    """
    try:
        commits = source.list_recent_commits(repository, installation_ref, since, limit)
    except CommitFetchFailure:
        raise
    except Exception as e:
        logger.exception("Commit source failed: repo=%s", repository.full_name)
        raise CommitFetchFailure(f"Failed to fetch commits from {repository.full_name}.") from e

    commits = list(commits)[:limit]
    logger.info("Fetched commits: repo=%s count=%d since=%s", repository.full_name, len(commits), since.date())
    return commits
