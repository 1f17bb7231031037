"""Correlation of chat messages with commits through the oracle."""

from datetime import datetime, timezone

from vibe_history.errors import NoCommitsInWindow, OracleError
from vibe_history.logging import get_logger
from vibe_history.models import ChatMessage, Commit, VibeLink
from vibe_history.oracle.client import CorrelationOracle
from vibe_history.oracle.decode import decode_links
from vibe_history.oracle.prompt import DEFAULT_MESSAGE_CHAR_LIMIT, build_prompt

logger = get_logger("correlator")


class Correlator:
    """Builds the prompt, calls the oracle once, and decodes its answer.

    Oracle failures degrade to an empty link list: the run still succeeds
    and reports its message and commit counts.
    """

    def __init__(self, oracle: CorrelationOracle, message_char_limit: int = DEFAULT_MESSAGE_CHAR_LIMIT) -> None:
        self._oracle = oracle
        self._message_char_limit = message_char_limit

    def correlate(
        self,
        messages: list[ChatMessage],
        commits: list[Commit],
        repository_label: str,
        run_at: datetime | None = None,
    ) -> list[VibeLink]:
        """Propose links between messages and commits.

        Args:
            messages: Code-relevant messages, in conversation order
            commits: Code commits from the lookback window
            repository_label: Repository name shown to the oracle
            run_at: Run timestamp used for link ids

        Returns:
            Validated links, possibly empty

        Raises:
            NoCommitsInWindow: If there are no commits to correlate against
        """
        if not commits:
            raise NoCommitsInWindow(f"No code commits found in {repository_label} in the lookback window.")

        if run_at is None:
            run_at = datetime.now(timezone.utc)

        prompt = build_prompt(messages, commits, repository_label, self._message_char_limit)
        logger.info(
            "Calling oracle: repo=%s messages=%d commits=%d prompt_chars=%d",
            repository_label,
            len(messages),
            len(commits),
            len(prompt),
        )

        try:
            response = self._oracle.complete(prompt)
        except OracleError as e:
            logger.warning("Oracle degraded, returning no links: repo=%s error=%s", repository_label, e)
            return []
        except Exception:
            logger.exception("Oracle degraded, returning no links: repo=%s", repository_label)
            return []

        result = decode_links(response, run_at)
        if not result.ok:
            logger.warning("Oracle degraded, returning no links: repo=%s error=%s", repository_label, result.error)
            return []

        logger.info("Correlated: repo=%s links=%d rejected=%d", repository_label, len(result.links), result.rejected)
        return result.links
