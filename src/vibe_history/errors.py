"""Error taxonomy for correlation runs.

Terminal errors derive from VibeHistoryError and carry a user-facing message
plus a hint for fixing the problem. They never include credentials or
tracebacks. OracleError and CachePersistFailure are absorbed inside the
pipeline and never reach callers.
"""


class VibeHistoryError(Exception):
    """Base class for errors surfaced to the caller."""

    hint: str = ""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if hint is not None:
            self.hint = hint

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, "hint": self.hint}


class ParseFailure(VibeHistoryError):
    """The chat export could not be recognised or contained no messages."""

    hint = "Re-export the chat from a supported tool and upload the exported file unchanged."


class CommitFetchFailure(VibeHistoryError):
    """The source-control host was unreachable or refused access."""

    hint = "Check that the GitHub App is still installed and has access to this repository."


class NoCommitsInWindow(VibeHistoryError):
    """No code commits exist in the lookback window."""

    hint = "Push recent code changes, or analyze a repository with activity in the lookback window."


class RunTimeout(VibeHistoryError):
    """The run exceeded its wall-clock budget and was abandoned."""

    hint = "Try again later, or upload a shorter chat export."


class OracleError(Exception):
    """The correlation oracle failed or answered in an unusable shape."""


class CachePersistFailure(Exception):
    """The result store rejected a write."""
