"""Parser for Codex (OpenAI) session rollouts.

Codex stores conversations as JSONL files at:
    ~/.codex/sessions/<year>/<month>/<day>/rollout-*.jsonl

Each line is a JSON object with a type field:
- session_meta: Session metadata (id, cwd, timestamp)
- response_item: Contains messages with role and content
- event_msg: Event notifications including user_message and agent_message
- turn_context: Turn-level context information

Codex writes every turn twice (as a response_item and as an event_msg).
response_item messages are preferred; event_msg turns are used only when a
rollout has no response_item messages at all.
"""

from vibe_history.models import ASSISTANT, USER, ChatMessage
from vibe_history.transcript.base import (
    TranscriptParser,
    extract_text,
    iter_json_lines,
    map_role,
    parse_timestamp,
)

EVENT_TYPES = {"session_meta", "response_item", "event_msg", "turn_context"}
EVENT_ROLES = {"user_message": USER, "agent_message": ASSISTANT}


class CodexParser(TranscriptParser):
    """Parser for Codex JSONL rollout files."""

    format_name = "codex"
    file_hints = ("rollout-", "codex")

    def detect(self, text: str) -> bool:
        for entry in iter_json_lines(text, limit=20):
            if entry.get("type") in EVENT_TYPES and isinstance(entry.get("payload"), dict):
                return True
        return False

    def parse(self, text: str) -> list[ChatMessage]:
        items: list[tuple[str, str, str | None]] = []
        events: list[tuple[str, str, str | None]] = []

        for entry in iter_json_lines(text):
            payload = entry.get("payload")
            if not isinstance(payload, dict):
                continue
            ts = parse_timestamp(entry.get("timestamp"))

            if entry.get("type") == "response_item" and payload.get("type") == "message":
                role = map_role(payload.get("role"))
                content = extract_text(payload.get("content"))
                if role is None or not content.strip():
                    continue
                # Environment context is injected as a user turn
                if content.lstrip().startswith("<environment_context>"):
                    continue
                items.append((role, content, ts))

            elif entry.get("type") == "event_msg":
                role = EVENT_ROLES.get(payload.get("type"))
                content = payload.get("message") or ""
                if role and isinstance(content, str) and content.strip():
                    events.append((role, content, ts))

        messages: list[ChatMessage] = []
        for role, content, ts in items or events:
            self._message(messages, role, content, ts)
        return messages
