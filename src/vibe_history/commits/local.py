"""Commit source that reads a local git clone."""

import subprocess
from datetime import datetime, timezone
from pathlib import Path

from vibe_history.errors import CommitFetchFailure
from vibe_history.logging import get_logger
from vibe_history.models import ChangedFile, Commit, Repository

logger = get_logger("git_local")

# Field and record separators that cannot appear in commit metadata
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = f"{RECORD_SEP}%H{FIELD_SEP}%aI{FIELD_SEP}%an{FIELD_SEP}%B{FIELD_SEP}"


def parse_numstat_line(line: str) -> ChangedFile | None:
    """Parse one `git log --numstat` line ("added<TAB>removed<TAB>path").

    Binary files report "-" for both counts. Renames are reported as
    "old => new" or "dir/{old => new}/file"; the new path is kept.
    """
    parts = line.split("\t")
    if len(parts) != 3:
        return None
    added, removed, path = parts
    if " => " in path:
        if "{" in path and "}" in path:
            prefix, rest = path.split("{", 1)
            inner, suffix = rest.split("}", 1)
            path = prefix + inner.split(" => ", 1)[1] + suffix
            path = path.replace("//", "/")
        else:
            path = path.split(" => ", 1)[1]
    return ChangedFile(
        path=path,
        lines_added=int(added) if added.isdigit() else 0,
        lines_removed=int(removed) if removed.isdigit() else 0,
    )


def parse_git_log(output: str) -> list[Commit]:
    """Parse output of `git log --numstat` run with LOG_FORMAT."""
    commits: list[Commit] = []
    for record in output.split(RECORD_SEP):
        if not record.strip():
            continue
        fields = record.split(FIELD_SEP)
        if len(fields) < 5:
            continue
        sha, date, author, message, numstat = fields[:5]
        files = tuple(
            f for f in (parse_numstat_line(line) for line in numstat.strip().splitlines()) if f is not None
        )
        commits.append(
            Commit(
                sha=sha.strip(),
                message=message.strip(),
                authored_at=datetime.fromisoformat(date.strip()).astimezone(timezone.utc),
                files=files,
                author=author or "Unknown",
            )
        )
    return commits


class LocalGitCommitSource:
    """Lists commits from a working copy with `git log`.

    The repository and installation arguments are accepted for interface
    compatibility; the clone at `repo_path` is always read.
    """

    def __init__(self, repo_path: Path) -> None:
        self._repo_path = Path(repo_path)

    def list_recent_commits(
        self,
        repository: Repository,
        installation_ref: str,
        since: datetime,
        limit: int,
    ) -> list[Commit]:
        if not self._repo_path.exists():
            raise CommitFetchFailure(f"Local repository not found: {self._repo_path}")

        cmd = [
            "git",
            "-C",
            str(self._repo_path),
            "log",
            f"--since={since.astimezone(timezone.utc).isoformat()}",
            f"--max-count={limit}",
            "--numstat",
            f"--format={LOG_FORMAT}",
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise CommitFetchFailure("git is not installed or could not be run.") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            # A repository without commits is not an error
            if "does not have any commits" in stderr:
                return []
            logger.debug("git log failed: path=%s stderr=%s", self._repo_path, stderr)
            raise CommitFetchFailure(f"Could not read git history from {self._repo_path}.")

        return parse_git_log(result.stdout)
