"""Parser for ChatGPT data exports.

The ChatGPT "Export data" archive contains conversations.json: a list of
conversation objects, each with:
- title, create_time, update_time
- mapping: dict of node id -> {id, parent, children, message}
- current_node: id of the leaf on the branch the user last viewed
- message: {author: {role}, content: {content_type, parts: [...]}, create_time}

Regenerated answers create sibling branches. Only the main path (walked
from current_node back to the root) is kept, so alternates are dropped.

Single-conversation exports of the form {"model": "gpt-...", "messages": [...]}
are accepted too.

Exports are user-supplied, so nodes, authors and ids of the wrong type are
skipped rather than trusted.
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


def _is_mapping_conversation(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("mapping"), dict)


def _create_time(conversation: dict) -> float:
    value = conversation.get("create_time")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _main_path(conversation: dict) -> list[dict]:
    """Return mapping nodes from root to the current leaf."""
    nodes = {k: v for k, v in conversation["mapping"].items() if isinstance(v, dict)}
    node_id = conversation.get("current_node")

    if not isinstance(node_id, str) or node_id not in nodes:
        # No usable leaf: follow first children from the root instead
        roots = [n for n in nodes.values() if not n.get("parent")]
        path: list[dict] = []
        node = roots[0] if roots else None
        while node is not None and len(path) <= len(nodes):
            path.append(node)
            children = node.get("children")
            first = children[0] if isinstance(children, list) and children else None
            node = nodes.get(first) if isinstance(first, str) else None
        return path

    path = []
    seen: set[str] = set()
    while isinstance(node_id, str) and node_id in nodes and node_id not in seen:
        seen.add(node_id)
        node = nodes[node_id]
        path.append(node)
        node_id = node.get("parent")
    path.reverse()
    return path


class ChatGPTParser(TranscriptParser):
    """Parser for ChatGPT conversations.json exports."""

    format_name = "chatgpt"
    file_hints = ("chatgpt", "conversations.json")

    def detect(self, text: str) -> bool:
        data = load_json(text)
        if _is_mapping_conversation(data):
            return True
        if isinstance(data, list) and data and all(_is_mapping_conversation(c) for c in data):
            return True
        return (
            isinstance(data, dict)
            and isinstance(data.get("messages"), list)
            and str(data.get("model", "")).startswith("gpt")
        )

    def parse(self, text: str) -> list[ChatMessage]:
        return self._messages(load_json(text))

    def parse_with_metadata(self, text: str) -> tuple[list[ChatMessage], dict[str, Any]]:
        data = load_json(text)
        return self._messages(data), self._metadata(data)

    def _messages(self, data: Any) -> list[ChatMessage]:
        messages: list[ChatMessage] = []

        if isinstance(data, dict) and not _is_mapping_conversation(data):
            for msg in data.get("messages") or []:
                if not isinstance(msg, dict):
                    continue
                role = map_role(msg.get("role"))
                content = extract_text(msg.get("content"))
                if role and content.strip():
                    self._message(messages, role, content, parse_timestamp(msg.get("timestamp")))
            return messages

        conversations = [data] if isinstance(data, dict) else data
        if not isinstance(conversations, list):
            return messages
        # Oldest conversation first keeps the transcript chronological
        conversations = sorted((c for c in conversations if _is_mapping_conversation(c)), key=_create_time)

        for conversation in conversations:
            for node in _main_path(conversation):
                message = node.get("message")
                if not isinstance(message, dict):
                    continue
                author = message.get("author")
                if not isinstance(author, dict):
                    continue
                role = map_role(author.get("role"))
                content = extract_text(message.get("content"))
                if role is None or not content.strip():
                    continue
                self._message(messages, role, content, parse_timestamp(message.get("create_time")))

        return messages

    def _metadata(self, data: Any) -> dict[str, Any]:
        if isinstance(data, list):
            return {"conversations": len(data)}
        if not isinstance(data, dict):
            return {}
        meta = {
            "model": data.get("model") or data.get("default_model_slug"),
            "conversation_id": data.get("id") or data.get("conversation_id"),
            "title": data.get("title"),
        }
        return {k: v for k, v in meta.items() if isinstance(v, str) and v}
