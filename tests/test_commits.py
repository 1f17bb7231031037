"""Tests for commit classification and lookback-window fetching."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from vibe_history.commits.classify import filter_code_commits, is_code_file
from vibe_history.commits.source import fetch_commits, window_start
from vibe_history.errors import CommitFetchFailure
from vibe_history.models import ChangedFile, Commit, Repository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
REPO = Repository("acme", "shop")


def make_commit(sha: str, *paths: str, days_ago: int = 1) -> Commit:
    return Commit(
        sha=sha,
        message=f"commit {sha}",
        authored_at=NOW - timedelta(days=days_ago),
        files=tuple(ChangedFile(path=p, lines_added=3, lines_removed=1) for p in paths),
    )


class TestIsCodeFile:
    """Tests for is_code_file()."""

    @pytest.mark.parametrize("path", ["src/app.py", "web/App.TSX", "cmd/main.go", "db/001_init.sql"])
    def test_code_files(self, path: str) -> None:
        assert is_code_file(path)

    @pytest.mark.parametrize(
        "path",
        ["README.md", "docs/guide.rst", "package-lock.json", "yarn.lock", "config.yaml", "dist/app.min.js", "types/index.d.ts"],
    )
    def test_non_code_files(self, path: str) -> None:
        assert not is_code_file(path)


class TestFilterCodeCommits:
    """Tests for filter_code_commits()."""

    def test_drops_docs_and_lockfile_commits(self) -> None:
        commits = [
            make_commit("a", "src/app.py", "README.md"),
            make_commit("b", "README.md"),
            make_commit("c", "package-lock.json", "package.json"),
            make_commit("d", "lib/util.ts"),
            make_commit("e"),
        ]

        assert [c.sha for c in filter_code_commits(commits)] == ["a", "d"]

    def test_commit_line_totals(self) -> None:
        commit = make_commit("a", "a.py", "b.py")
        assert (commit.lines_added, commit.lines_removed) == (6, 2)


class TestFetchCommits:
    """Tests for fetch_commits()."""

    def test_window_start(self) -> None:
        assert window_start(90, NOW) == NOW - timedelta(days=90)

    def test_passes_window_and_limit(self) -> None:
        source = MagicMock()
        source.list_recent_commits.return_value = [make_commit("a", "a.py")]
        since = window_start(90, NOW)

        commits = fetch_commits(source, REPO, "inst-1", since, 100)

        source.list_recent_commits.assert_called_once_with(REPO, "inst-1", since, 100)
        assert [c.sha for c in commits] == ["a"]

    def test_trusts_source_window_and_applies_limit(self) -> None:
        """A commit the source returns is kept even when its author date predates the window."""
        source = MagicMock()
        source.list_recent_commits.return_value = [
            make_commit("a", "a.py", days_ago=1),
            make_commit("rebased", "b.py", days_ago=120),
            make_commit("c", "d.py", days_ago=3),
        ]

        commits = fetch_commits(source, REPO, "inst-1", window_start(90, NOW), 2)

        assert [c.sha for c in commits] == ["a", "rebased"]

    def test_naive_author_dates_are_accepted(self) -> None:
        source = MagicMock()
        source.list_recent_commits.return_value = [
            Commit(sha="n", message="naive", authored_at=datetime(2026, 2, 28, 9, 0), files=()),
        ]

        assert [c.sha for c in fetch_commits(source, REPO, "inst-1", window_start(90, NOW), 100)] == ["n"]

    def test_empty_is_not_an_error(self) -> None:
        source = MagicMock()
        source.list_recent_commits.return_value = []

        assert fetch_commits(source, REPO, "inst-1", window_start(90, NOW), 100) == []

    def test_wraps_unexpected_errors(self) -> None:
        source = MagicMock()
        source.list_recent_commits.side_effect = RuntimeError("token=secret")

        with pytest.raises(CommitFetchFailure) as exc_info:
            fetch_commits(source, REPO, "inst-1", window_start(90, NOW), 100)

        assert "secret" not in exc_info.value.message
        assert "acme/shop" in exc_info.value.message

    def test_passes_through_commit_fetch_failure(self) -> None:
        source = MagicMock()
        source.list_recent_commits.side_effect = CommitFetchFailure("GitHub refused access")

        with pytest.raises(CommitFetchFailure, match="refused"):
            fetch_commits(source, REPO, "inst-1", window_start(90, NOW), 100)
