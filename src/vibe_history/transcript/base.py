"""Base parser interface and registry."""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable

from vibe_history.models import ASSISTANT, USER, ChatMessage

__all__ = [
    "ChatMessage",
    "TranscriptParser",
    "accumulate_turns",
    "ParserRegistry",
    "extract_text",
    "load_json",
    "map_role",
    "parse_timestamp",
]

USER_ROLES = {"user", "human", "you", "me"}
SKIPPED_ROLES = {"system", "developer"}


def map_role(role: Any) -> str | None:
    """Map an exporter's role name to a canonical role.

    Returns None for system/developer turns, which carry no conversation.
    Anything else that is not user-like is treated as the assistant.
    """
    name = str(role or "").strip().lower()
    if name in USER_ROLES:
        return USER
    if name in SKIPPED_ROLES:
        return None
    return ASSISTANT


def extract_text(content: Any) -> str:
    """Flatten a message content field into plain text.

    Handles plain strings, lists of content blocks (Claude/Codex/OpenAI
    style) and ChatGPT's {"parts": [...]} objects.
    """
    if content is None:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, dict):
        if "parts" in content:
            return extract_text(content["parts"])
        if "text" in content:
            return extract_text(content["text"])
        return ""

    if isinstance(content, list):
        text_parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                text_parts.append(block)
            elif isinstance(block, dict):
                block_type = block.get("type")
                if block_type in (None, "text", "input_text", "output_text"):
                    text_parts.append(str(block.get("text", "")))
                elif block_type == "tool_use":
                    text_parts.append(f"[Tool: {block.get('name', 'unknown')}]")
                elif block_type == "tool_result":
                    result_content = extract_text(block.get("content"))
                    if result_content:
                        text_parts.append(f"[Tool Result: {result_content[:200]}...]")
        return "\n".join(part for part in text_parts if part)

    return ""


def parse_timestamp(value: Any) -> str | None:
    """Normalize an exporter timestamp to an ISO 8601 UTC string.

    Accepts ISO strings (with or without a Z suffix) and Unix epochs in
    seconds or milliseconds. Unparseable values yield None.
    """
    if value is None or value == "":
        return None

    try:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > 1e11 else value
            dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        else:
            text = str(value)
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            dt = datetime.fromisoformat(text)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).isoformat()
    except (ValueError, OverflowError, OSError):
        return None


def load_json(text: str) -> Any:
    """Parse a whole document as JSON, returning None when it is not JSON."""
    try:
        return json.loads(text)
    except ValueError:
        return None


def iter_json_lines(text: str, limit: int | None = None):
    """Yield JSON objects from a JSONL document, skipping malformed lines."""
    seen = 0
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        seen += 1
        if limit is not None and seen > limit:
            return
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        if isinstance(entry, dict):
            yield entry


def accumulate_turns(
    lines: list[str],
    classify: Callable[[str], tuple[str, str] | None],
    skip: Callable[[str], bool] = lambda line: False,
) -> list[ChatMessage]:
    """Group lines of a text transcript into speaker turns.

    classify() returns (role, first line of content) for a line that opens a
    new turn, or None for a continuation line. Text before the first speaker
    marker is ignored. Turns that end up empty are dropped.

    Args:
        lines: Transcript lines
        classify: Speaker-marker detector
        skip: Predicate for lines to drop entirely (export banners etc.)

    Returns:
        Messages in source order
    """
    turns: list[tuple[str, list[str]]] = []

    for line in lines:
        line = line.rstrip()
        if skip(line.strip()):
            continue
        opened = classify(line.strip())
        if opened is not None:
            role, first = opened
            turns.append((role, [first] if first else []))
        elif turns:
            turns[-1][1].append(line)

    messages: list[ChatMessage] = []
    for role, body in turns:
        content = "\n".join(body).strip()
        if content:
            messages.append(ChatMessage(role=role, content=content, index=len(messages)))
    return messages


class TranscriptParser(ABC):
    """Base class for chat export parsers.

    Subclasses set `format_name` and `file_hints`, and implement detect()
    and parse(). detect() must be cheap and conservative; parse() returns
    messages in source order and may return an empty list.
    """

    format_name: str
    file_hints: tuple[str, ...] = ()

    def matches_hint(self, file_name: str) -> bool:
        """Whether the file name suggests this format."""
        lowered = file_name.lower()
        return any(hint in lowered for hint in self.file_hints)

    @abstractmethod
    def detect(self, text: str) -> bool:
        """Return True if the text has this format's structure."""

    @abstractmethod
    def parse(self, text: str) -> list[ChatMessage]:
        """Parse the text into chat messages."""

    def parse_with_metadata(self, text: str) -> tuple[list[ChatMessage], dict[str, Any]]:
        """Parse messages together with export-level metadata (model, conversation id).

        Formats that carry no metadata return an empty dict.
        """
        return self.parse(text), {}

    @staticmethod
    def _message(messages: list[ChatMessage], role: str, content: str, timestamp: str | None = None) -> None:
        messages.append(ChatMessage(role=role, content=content, index=len(messages), timestamp=timestamp))


class ParserRegistry:
    """Registry of parsers by format name, in detection priority order."""

    _parsers: dict[str, TranscriptParser] = {}

    @classmethod
    def register(cls, parser: TranscriptParser) -> None:
        """Register a parser."""
        cls._parsers[parser.format_name] = parser

    @classmethod
    def all_formats(cls) -> list[str]:
        """List all registered format names."""
        return list(cls._parsers.keys())

    @classmethod
    def candidates(cls, file_name: str) -> list[TranscriptParser]:
        """Parsers in the order they should be tried for a file.

        Parsers whose hints match the file name come first; the rest follow
        in registration order.
        """
        parsers = list(cls._parsers.values())
        hinted = [p for p in parsers if p.matches_hint(file_name)]
        return hinted + [p for p in parsers if p not in hinted]
