"""End-to-end correlation run: cache, parse, filter, fetch, correlate, store."""

import threading
import time
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Callable, ContextManager, Iterator

from vibe_history.cache.result_cache import ResultCache, create_store
from vibe_history.commits.classify import filter_code_commits
from vibe_history.commits.source import CommitSource, fetch_commits, window_start
from vibe_history.config import Config, CorrelationConfig
from vibe_history.correlator import Correlator
from vibe_history.errors import NoCommitsInWindow, RunTimeout
from vibe_history.logging import get_logger
from vibe_history.models import (
    AnalysisRequest,
    AnalysisResponse,
    CorrelationResult,
    Repository,
    RunContext,
    cache_key,
)
from vibe_history.oracle.client import CorrelationOracle
from vibe_history.relevance import filter_relevant
from vibe_history.transcript import normalize

logger = get_logger("pipeline")


class KeyedLocks:
    """One lock per key, created on demand (in-process single flight).

    A key's lock lives only while some thread holds or waits for it, so the
    table never grows beyond the number of keys currently in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._locks: dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for key for the duration of the block."""
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VibeHistoryPipeline:
    """Runs correlations for one account and repository at a time.

    Steps run strictly in order. Parse and commit-fetch failures abort the
    run; oracle failures yield an empty link list; cache failures are
    logged. The cache is read first and written only after a complete run.
    """

    def __init__(
        self,
        cache: ResultCache,
        commit_source: CommitSource,
        correlator: Correlator,
        config: CorrelationConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache = cache
        self._commit_source = commit_source
        self._correlator = correlator
        self._config = config or CorrelationConfig()
        self._clock = clock
        self._locks = KeyedLocks() if self._config.single_flight else None

    def run(self, context: RunContext, request: AnalysisRequest) -> AnalysisResponse:
        """Analyze a chat export against a repository's recent commits.

        Args:
            context: Account on whose behalf the run executes
            request: Repository, installation and chat upload

        Returns:
            AnalysisResponse, from the cache unless a refresh was forced

        Raises:
            ParseFailure: The chat export could not be parsed
            CommitFetchFailure: Commits could not be fetched
            NoCommitsInWindow: No code commits in the lookback window
            RunTimeout: The run exceeded its time budget
        """
        with self._gate(context.account_id, request.repository):
            return self._run(context, request)

    def _gate(self, account_id: str, repository: Repository) -> ContextManager:
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(cache_key(account_id, repository))

    def _run(self, context: RunContext, request: AnalysisRequest) -> AnalysisResponse:
        started = time.monotonic()
        repository = request.repository

        if not request.force_reanalyze:
            cached = self._cache.get(context.account_id, repository)
            if cached is not None:
                logger.info("Serving cached result: account=%s repo=%s", context.account_id, repository)
                return AnalysisResponse.from_result(cached, from_cache=True)

        run_at = self._clock()

        transcript = normalize(request.chat_file_bytes, request.chat_file_name)

        relevant = filter_relevant(transcript.messages)
        if not relevant:
            logger.warning(
                "No code-related messages found, correlating full transcript: repo=%s messages=%d",
                repository,
                len(transcript.messages),
            )
            relevant = list(transcript.messages)
        else:
            logger.info("Selected code-related messages: selected=%d total=%d", len(relevant), len(transcript.messages))

        since = window_start(self._config.lookback_days, run_at)
        commits = fetch_commits(
            self._commit_source,
            repository,
            request.installation_ref,
            since,
            self._config.commit_limit,
        )
        code_commits = filter_code_commits(commits)
        logger.info("Filtered code commits: code=%d total=%d", len(code_commits), len(commits))

        if not code_commits:
            raise NoCommitsInWindow(
                f"No code commits found in {repository} in the last {self._config.lookback_days} days."
            )

        self._check_deadline(started, "before correlation")
        links = self._correlator.correlate(relevant, code_commits, repository.full_name, run_at)
        self._check_deadline(started, "after correlation")

        result = CorrelationResult(
            repository=repository,
            account_id=context.account_id,
            links=links,
            total_messages=len(transcript.messages),
            total_commits=len(code_commits),
            analyzed_at=run_at.isoformat(),
            chat_file_name=request.chat_file_name,
            chat_file_size=len(request.chat_file_bytes),
            chat_format=transcript.format,
            chat_metadata=transcript.metadata,
        )
        self._cache.put(context.account_id, repository, result)
        return AnalysisResponse.from_result(result, from_cache=False)

    def _check_deadline(self, started: float, stage: str) -> None:
        elapsed = time.monotonic() - started
        if elapsed > self._config.run_timeout_seconds:
            logger.warning("Run abandoned: stage=%s elapsed=%.1fs", stage, elapsed)
            raise RunTimeout(f"Analysis took longer than {self._config.run_timeout_seconds} seconds and was abandoned.")

    def cached(self, context: RunContext, repository: Repository) -> AnalysisResponse | None:
        """Return the stored result for a repository without running anything."""
        result = self._cache.get(context.account_id, repository)
        if result is None:
            return None
        return AnalysisResponse.from_result(result, from_cache=True)

    def clear(self, context: RunContext, repository: Repository | None = None) -> int:
        """Delete stored results for one repository, or for the whole account.

        Returns:
            Number of results removed
        """
        if repository is not None:
            removed = int(self._cache.delete(context.account_id, repository))
        else:
            removed = self._cache.delete_account(context.account_id)
        logger.info("Cleared cached results: account=%s repo=%s removed=%d", context.account_id, repository, removed)
        return removed


def build_pipeline(
    config: Config,
    commit_source: CommitSource | None = None,
    oracle: CorrelationOracle | None = None,
) -> VibeHistoryPipeline:
    """Wire a pipeline from configuration.

    Defaults to the GitHub commit source and the Anthropic oracle.
    """
    if commit_source is None:
        from vibe_history.commits.github import GitHubCommitSource

        commit_source = GitHubCommitSource(config.github)
    if oracle is None:
        from vibe_history.oracle.client import AnthropicOracle

        oracle = AnthropicOracle(config.oracle)

    return VibeHistoryPipeline(
        cache=ResultCache(create_store(config)),
        commit_source=commit_source,
        correlator=Correlator(oracle, config.correlation.message_char_limit),
        config=config.correlation,
    )
