"""Parser for generic JSON chat exports.

Accepts the two shapes most chat tools and API clients produce:
- an array of {"role": ..., "content": ...} objects
- an object with a "messages" array of the same

Content may be a string or a list of content blocks (Claude API style).
"""

from typing import Any

from vibe_history.models import ChatMessage
from vibe_history.transcript.base import (
    TranscriptParser,
    extract_text,
    load_json,
    map_role,
    parse_timestamp,
)


def _message_list(data: Any) -> list | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("messages"), list):
        return data["messages"]
    return None


class JSONExportParser(TranscriptParser):
    """Parser for JSON arrays of role/content messages."""

    format_name = "json"
    file_hints = (".json",)

    def detect(self, text: str) -> bool:
        items = _message_list(load_json(text))
        if not items:
            return False
        return any(isinstance(item, dict) and "role" in item for item in items)

    def parse(self, text: str) -> list[ChatMessage]:
        return self._messages(load_json(text))

    def parse_with_metadata(self, text: str) -> tuple[list[ChatMessage], dict[str, Any]]:
        """Messages plus the model and conversation id, when the export records them."""
        data = load_json(text)
        return self._messages(data), self._metadata(data)

    def _messages(self, data: Any) -> list[ChatMessage]:
        messages: list[ChatMessage] = []

        for item in _message_list(data) or []:
            if not isinstance(item, dict) or "role" not in item:
                continue
            role = map_role(item.get("role"))
            if role is None:
                continue
            content = extract_text(item.get("content"))
            if not content.strip():
                continue
            ts = parse_timestamp(item.get("timestamp") or item.get("created_at"))
            self._message(messages, role, content, ts)

        return messages

    def _metadata(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            return {}
        meta = {
            "model": data.get("model"),
            "conversation_id": data.get("id") or data.get("conversation_id"),
        }
        return {k: v for k, v in meta.items() if isinstance(v, str) and v}
