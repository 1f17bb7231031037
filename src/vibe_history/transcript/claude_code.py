"""Parser for Claude Code session logs.

Claude Code stores conversations as JSONL files at:
    ~/.claude/projects/<encoded-project-path>/<session-id>.jsonl

Each line is a JSON object with:
- type: "user", "assistant", "summary" or "queue-operation"
- message.role: "user" or "assistant"
- message.content: string or array of content blocks
- timestamp: ISO 8601 timestamp
- sessionId: UUID session identifier
"""

from vibe_history.models import ChatMessage
from vibe_history.transcript.base import (
    TranscriptParser,
    extract_text,
    iter_json_lines,
    map_role,
    parse_timestamp,
)

ENTRY_TYPES = {"user", "assistant", "summary", "queue-operation", "system"}


class ClaudeCodeParser(TranscriptParser):
    """Parser for Claude Code JSONL session logs."""

    format_name = "claude_code"
    file_hints = (".jsonl", "claude")

    def detect(self, text: str) -> bool:
        for entry in iter_json_lines(text, limit=20):
            if entry.get("type") in ENTRY_TYPES and ("sessionId" in entry or isinstance(entry.get("message"), dict)):
                return True
        return False

    def parse(self, text: str) -> list[ChatMessage]:
        messages: list[ChatMessage] = []

        for entry in iter_json_lines(text):
            # Only user and assistant entries carry conversation turns
            if entry.get("type") not in ("user", "assistant"):
                continue

            message = entry.get("message")
            if not isinstance(message, dict):
                continue

            role = map_role(message.get("role") or entry.get("type"))
            if role is None:
                continue

            content = extract_text(message.get("content"))
            if not content.strip():
                continue

            self._message(messages, role, content, parse_timestamp(entry.get("timestamp")))

        return messages
