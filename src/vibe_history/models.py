"""Canonical data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A normalized message from any chat export."""

    role: str  # user, assistant
    content: str
    index: int  # Position in the parsed transcript
    timestamp: str | None = None  # ISO 8601, when the export carries one


@dataclass(frozen=True)
class ParsedTranscript:
    """Messages recovered from one chat export, in conversation order."""

    format: str  # claude_code, codex, chatgpt, json, cursor, plain_text
    messages: tuple[ChatMessage, ...]
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ChangedFile:
    path: str
    lines_added: int = 0
    lines_removed: int = 0
    status: str | None = None  # added, removed, modified, renamed


@dataclass(frozen=True)
class Commit:
    """A commit fetched from the source-control host."""

    sha: str
    message: str
    authored_at: datetime
    files: tuple[ChangedFile, ...] = ()
    author: str = "Unknown"

    @property
    def lines_added(self) -> int:
        return sum(f.lines_added for f in self.files)

    @property
    def lines_removed(self) -> int:
        return sum(f.lines_removed for f in self.files)


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> "Repository":
        """Parse an 'owner/name' string."""
        owner, sep, name = full_name.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Repository must be given as owner/name, got {full_name!r}")
        return cls(owner=owner, name=name)

    def __str__(self) -> str:
        return self.full_name


@dataclass
class CodeChange:
    file: str
    description: str
    timestamp: str | None = None
    commit_sha: str | None = None

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "description": self.description,
            "timestamp": self.timestamp,
            "commitSha": self.commit_sha,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CodeChange":
        return cls(
            file=data["file"],
            description=data.get("description", ""),
            timestamp=data.get("timestamp"),
            commit_sha=data.get("commitSha"),
        )


@dataclass
class VibeLink:
    """A proposed link between a conversation excerpt and code changes."""

    id: str
    chat_excerpt: str
    code_changes: list[CodeChange]
    reasoning: str
    confidence: int  # 0-100
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chatExcerpt": self.chat_excerpt,
            "codeChanges": [change.to_dict() for change in self.code_changes],
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VibeLink":
        return cls(
            id=data["id"],
            chat_excerpt=data["chatExcerpt"],
            code_changes=[CodeChange.from_dict(c) for c in data.get("codeChanges", [])],
            reasoning=data.get("reasoning", ""),
            confidence=int(data["confidence"]),
            timestamp=data["timestamp"],
        )


@dataclass
class CorrelationResult:
    """Outcome of one successful run; the unit of caching."""

    repository: Repository
    account_id: str
    links: list[VibeLink]
    total_messages: int
    total_commits: int
    analyzed_at: str
    chat_file_name: str = ""
    chat_file_size: int = 0
    chat_format: str = ""
    chat_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def cache_key(self) -> str:
        return cache_key(self.account_id, self.repository)

    def to_dict(self) -> dict:
        return {
            "accountId": self.account_id,
            "repoFullName": self.repository.full_name,
            "links": [link.to_dict() for link in self.links],
            "totalMessages": self.total_messages,
            "totalCommits": self.total_commits,
            "analyzedAt": self.analyzed_at,
            "chatFileName": self.chat_file_name,
            "chatFileSize": self.chat_file_size,
            "chatFormat": self.chat_format,
            "chatMetadata": dict(self.chat_metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CorrelationResult":
        return cls(
            repository=Repository.parse(data["repoFullName"]),
            account_id=data["accountId"],
            links=[VibeLink.from_dict(link) for link in data.get("links", [])],
            total_messages=int(data.get("totalMessages", 0)),
            total_commits=int(data.get("totalCommits", 0)),
            analyzed_at=data["analyzedAt"],
            chat_file_name=data.get("chatFileName", ""),
            chat_file_size=int(data.get("chatFileSize", 0)),
            chat_format=data.get("chatFormat", ""),
            chat_metadata=dict(data.get("chatMetadata") or {}),
        )


def cache_key(account_id: str, repository: Repository) -> str:
    """Stable key for one (account, repository) pair."""
    return f"{account_id}:{repository.full_name}"


@dataclass(frozen=True)
class RunContext:
    """Caller identity, resolved by the host application before a run."""

    account_id: str


@dataclass
class AnalysisRequest:
    repository: Repository
    installation_ref: str
    chat_file_bytes: bytes
    chat_file_name: str
    force_reanalyze: bool = False


@dataclass
class AnalysisResponse:
    links: list[VibeLink]
    total_messages: int
    total_commits: int
    analyzed_at: str
    from_cache: bool

    @classmethod
    def from_result(cls, result: CorrelationResult, from_cache: bool) -> "AnalysisResponse":
        return cls(
            links=result.links,
            total_messages=result.total_messages,
            total_commits=result.total_commits,
            analyzed_at=result.analyzed_at,
            from_cache=from_cache,
        )

    def to_dict(self) -> dict:
        return {
            "links": [link.to_dict() for link in self.links],
            "totalMessages": self.total_messages,
            "totalCommits": self.total_commits,
            "analyzedAt": self.analyzed_at,
            "fromCache": self.from_cache,
        }
